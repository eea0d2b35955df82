"""Authentication state and write-token management.

This module provides:
- Session: Authentication status and the current write token
- SessionManager: Login handshake, cached token with time-to-live,
  forced refresh and a periodic refresh loop

Every write operation obtains its token through SessionManager.get_token()
at submission time. Refreshing replaces the token wholesale, so requests
already in flight keep the value they were sent with.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from wikisync.client.api import AuthenticationError
from wikisync.client.sync.retry import DEFAULT_MAX_ATTEMPTS, with_retry
from wikisync.core.config import DEFAULT_RETRY_DELAYS

if TYPE_CHECKING:
    from wikisync.client.api import WikiClient

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = 60.0  # seconds


@dataclass
class Session:
    """Authentication state for one sync run.

    Attributes:
        authenticated: Whether login succeeded.
        token: Current write token, None until first fetched.
        token_obtained_at: Clock reading when the token was fetched.
    """

    authenticated: bool = False
    token: str | None = None
    token_obtained_at: float | None = None

    def is_stale(self, now: float, ttl: float) -> bool:
        """Check whether the token must be refreshed before use."""
        if self.token is None or self.token_obtained_at is None:
            return True
        return now - self.token_obtained_at >= ttl


class SessionManager:
    """Owns the session and the shared write token."""

    def __init__(
        self,
        client: WikiClient,
        username: str,
        password: str,
        token_ttl: float = DEFAULT_TOKEN_TTL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        """Initialize the session manager.

        Args:
            client: Wiki client carrying the session cookies.
            username: Account name.
            password: Account password.
            token_ttl: Token age in seconds after which it is refetched.
            max_attempts: Attempts for login and token fetches.
            retry_delays: Backoff schedule for login and token fetches.
            clock: Monotonic clock (replaced in tests).
            sleep: Awaitable sleep (replaced in tests).
        """
        self._client = client
        self._username = username
        self._password = password
        self._token_ttl = token_ttl
        self._max_attempts = max_attempts
        self._retry_delays = retry_delays
        self._clock = clock
        self._sleep = sleep
        self._session = Session()
        self._token_lock = asyncio.Lock()
        self._refresh_count = 0

    @property
    def session(self) -> Session:
        """Get the current session state."""
        return self._session

    @property
    def refresh_count(self) -> int:
        """Get number of token fetches performed."""
        return self._refresh_count

    async def authenticate(self) -> dict[str, Any]:
        """Log in with the configured credentials.

        Fetches a login token, then submits it with the credentials. The
        pair is retried as a single operation.

        Returns:
            The login section of the server response.

        Raises:
            AuthenticationError: If the server does not report success.
        """

        async def do_login() -> dict[str, Any]:
            login_token = await self._client.get_login_token()
            result = await self._client.login(self._username, self._password, login_token)
            if result.get("result") != "Success":
                reason = result.get("reason", result.get("result", "unknown"))
                raise AuthenticationError(f"Login failed: {reason}")
            return result

        result = await with_retry(
            do_login,
            "login",
            max_attempts=self._max_attempts,
            delays=self._retry_delays,
            sleep=self._sleep,
        )
        self._session.authenticated = True
        logger.info(f"Logged in as {self._username}")
        return result

    async def get_token(self, force: bool = False, retry: bool = True) -> str:
        """Return a write token, fetching a fresh one when needed.

        Args:
            force: Fetch a new token even if the cached one is fresh.
            retry: Retry a failed fetch with backoff. Callers that already
                run inside a retry loop pass False so a failed fetch counts
                as one of their own attempts.

        Raises:
            AuthenticationError: If called before authenticate().
        """
        if not self._session.authenticated:
            raise AuthenticationError("Not logged in")

        if not force and not self._session.is_stale(self._clock(), self._token_ttl):
            return self._session.token  # type: ignore[return-value]

        generation = self._refresh_count
        async with self._token_lock:
            # Another task refreshed while we waited for the lock
            if self._refresh_count != generation and self._session.token is not None:
                return self._session.token

            if retry:
                token = await with_retry(
                    self._client.get_csrf_token,
                    "get CSRF token",
                    max_attempts=self._max_attempts,
                    delays=self._retry_delays,
                    sleep=self._sleep,
                )
            else:
                token = await self._client.get_csrf_token()
            self._session.token = token
            self._session.token_obtained_at = self._clock()
            self._refresh_count += 1
            logger.debug("Write token refreshed")
            return token

    def expire_token(self, token: str | None = None) -> None:
        """Mark the cached token stale so the next get_token() refetches it.

        Args:
            token: The rejected token. Ignored if the cache already holds a
                newer one.
        """
        if token is not None and token != self._session.token:
            return
        self._session.token_obtained_at = None

    async def refresh_token(self) -> str:
        """Force a write-token refresh."""
        return await self.get_token(force=True)

    async def refresh_periodically(
        self,
        interval: float | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        """Refresh the token every interval seconds until cancelled.

        A failed refresh is logged and the loop keeps running; writes still
        recover through the token-rejected retry path.
        """
        interval = interval if interval is not None else self._token_ttl
        while True:
            await sleep(interval)
            try:
                await self.refresh_token()
                logger.info("✓ CSRF token refreshed")
            except Exception as e:
                logger.error(f"Failed to refresh CSRF token: {e}")
