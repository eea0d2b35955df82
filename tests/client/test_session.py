"""Tests for the session manager and write-token handling."""

import asyncio
from collections.abc import Callable

import httpx
import pytest

from tests.conftest import API_URL, FakeWiki, YieldingTransport
from wikisync.client.api import APIError, AuthenticationError, WikiClient
from wikisync.client.sync.session import Session, SessionManager


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def make_manager(
    transport: httpx.AsyncBaseTransport,
    sleep: Callable,
    clock: Callable[[], float] | None = None,
    password: str = "secret",
    max_attempts: int = 5,
) -> tuple[WikiClient, SessionManager]:
    client = WikiClient(API_URL, transport=transport)
    manager = SessionManager(
        client,
        "Admin",
        password,
        token_ttl=60.0,
        max_attempts=max_attempts,
        retry_delays=(0.0,),
        clock=clock or FakeClock(),
        sleep=sleep,
    )
    return client, manager


class TestSession:
    """Tests for Session dataclass."""

    def test_stale_without_token(self) -> None:
        """Should be stale before a token is fetched."""
        assert Session().is_stale(0.0, 60.0)

    def test_fresh_within_ttl(self) -> None:
        """Should be fresh until the ttl has elapsed."""
        session = Session(authenticated=True, token="t", token_obtained_at=100.0)
        assert not session.is_stale(159.9, 60.0)
        assert session.is_stale(160.0, 60.0)


class TestAuthenticate:
    """Tests for SessionManager.authenticate."""

    @pytest.mark.asyncio
    async def test_login_success(
        self, fake_wiki: FakeWiki, wiki_transport: httpx.MockTransport, fake_sleep: Callable
    ) -> None:
        """Should fetch a login token then log in."""
        client, manager = make_manager(wiki_transport, fake_sleep)
        async with client:
            result = await manager.authenticate()

        assert result["result"] == "Success"
        assert manager.session.authenticated
        assert fake_wiki.calls["login_token"] == 1
        assert fake_wiki.calls["login"] == 1

    @pytest.mark.asyncio
    async def test_login_rejected(
        self, fake_wiki: FakeWiki, wiki_transport: httpx.MockTransport, fake_sleep: Callable
    ) -> None:
        """Should raise AuthenticationError with the server reason and not retry."""
        client, manager = make_manager(wiki_transport, fake_sleep, password="wrong")
        async with client:
            with pytest.raises(AuthenticationError, match="Incorrect username or password"):
                await manager.authenticate()

        assert not manager.session.authenticated
        assert fake_wiki.calls["login"] == 1

    @pytest.mark.asyncio
    async def test_login_retries_server_errors(
        self, fake_wiki: FakeWiki, wiki_transport: httpx.MockTransport, fake_sleep: Callable
    ) -> None:
        """Should retry the whole handshake on a transient failure."""
        fake_wiki.fail("login", 502)
        client, manager = make_manager(wiki_transport, fake_sleep)
        async with client:
            await manager.authenticate()

        assert manager.session.authenticated
        assert fake_wiki.calls["login_token"] == 2
        assert fake_wiki.calls["login"] == 2


class TestGetToken:
    """Tests for SessionManager.get_token."""

    @pytest.mark.asyncio
    async def test_requires_login(
        self, wiki_transport: httpx.MockTransport, fake_sleep: Callable
    ) -> None:
        """Should refuse to fetch a token before login."""
        client, manager = make_manager(wiki_transport, fake_sleep)
        async with client:
            with pytest.raises(AuthenticationError, match="Not logged in"):
                await manager.get_token()

    @pytest.mark.asyncio
    async def test_caches_within_ttl(
        self, fake_wiki: FakeWiki, wiki_transport: httpx.MockTransport, fake_sleep: Callable
    ) -> None:
        """Should reuse the token until it is older than the ttl."""
        clock = FakeClock()
        client, manager = make_manager(wiki_transport, fake_sleep, clock=clock)
        async with client:
            await manager.authenticate()
            first = await manager.get_token()
            clock.now += 59.0
            second = await manager.get_token()
            clock.now += 1.0
            third = await manager.get_token()

        assert first == second
        assert third != first
        assert fake_wiki.calls["csrf_token"] == 2
        assert manager.refresh_count == 2

    @pytest.mark.asyncio
    async def test_force_refresh(
        self, fake_wiki: FakeWiki, wiki_transport: httpx.MockTransport, fake_sleep: Callable
    ) -> None:
        """Should fetch a new token when forced, replacing the old one."""
        client, manager = make_manager(wiki_transport, fake_sleep)
        async with client:
            await manager.authenticate()
            first = await manager.get_token()
            refreshed = await manager.refresh_token()

        assert refreshed != first
        assert manager.session.token == refreshed
        assert fake_wiki.calls["csrf_token"] == 2

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_coalesce(
        self,
        fake_wiki: FakeWiki,
        yielding_transport: YieldingTransport,
        fake_sleep: Callable,
    ) -> None:
        """Should perform one fetch when several tasks refresh at once."""
        client, manager = make_manager(yielding_transport, fake_sleep)
        async with client:
            await manager.authenticate()
            await manager.get_token()
            tokens = await asyncio.gather(*(manager.refresh_token() for _ in range(5)))

        assert len(set(tokens)) == 1
        assert fake_wiki.calls["csrf_token"] == 2

    @pytest.mark.asyncio
    async def test_fetch_without_retry(
        self, fake_wiki: FakeWiki, wiki_transport: httpx.MockTransport, fake_sleep: Callable
    ) -> None:
        """Should raise on the first failed fetch when retry is off."""
        client, manager = make_manager(wiki_transport, fake_sleep)
        async with client:
            await manager.authenticate()
            fake_wiki.fail("csrf_token", 503)
            with pytest.raises(APIError):
                await manager.get_token(retry=False)

        assert fake_wiki.calls["csrf_token"] == 1
        assert manager.session.token is None

    @pytest.mark.asyncio
    async def test_expire_token(
        self, fake_wiki: FakeWiki, wiki_transport: httpx.MockTransport, fake_sleep: Callable
    ) -> None:
        """Should refetch after the current token is expired."""
        client, manager = make_manager(wiki_transport, fake_sleep)
        async with client:
            await manager.authenticate()
            first = await manager.get_token()
            manager.expire_token(first)
            second = await manager.get_token()

        assert second != first
        assert fake_wiki.calls["csrf_token"] == 2

    @pytest.mark.asyncio
    async def test_expire_ignores_superseded_token(
        self, fake_wiki: FakeWiki, wiki_transport: httpx.MockTransport, fake_sleep: Callable
    ) -> None:
        """Should keep a newer token when an old one is reported rejected."""
        client, manager = make_manager(wiki_transport, fake_sleep)
        async with client:
            await manager.authenticate()
            first = await manager.get_token()
            second = await manager.refresh_token()
            manager.expire_token(first)
            third = await manager.get_token()

        assert third == second
        assert fake_wiki.calls["csrf_token"] == 2


class TestRefreshPeriodically:
    """Tests for the periodic refresh loop."""

    @pytest.mark.asyncio
    async def test_refreshes_until_cancelled(
        self, fake_wiki: FakeWiki, wiki_transport: httpx.MockTransport, fake_sleep: Callable
    ) -> None:
        """Should refresh on every tick and survive a failed refresh."""
        ticks = 0

        async def tick(delay: float) -> None:
            nonlocal ticks
            ticks += 1
            if ticks > 3:
                raise asyncio.CancelledError
            await asyncio.sleep(0)

        client, manager = make_manager(wiki_transport, fake_sleep, max_attempts=1)
        async with client:
            await manager.authenticate()
            await manager.get_token()
            fake_wiki.fail("csrf_token", 500)

            with pytest.raises(asyncio.CancelledError):
                await manager.refresh_periodically(30.0, sleep=tick)

        # First tick fails, the next two succeed
        assert fake_wiki.calls["csrf_token"] == 4
        assert manager.refresh_count == 3
