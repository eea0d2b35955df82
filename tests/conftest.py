"""Shared fixtures: an in-memory wiki served through httpx.MockTransport."""

from __future__ import annotations

import asyncio
import hashlib
from collections import Counter
from collections.abc import Callable
from email.parser import BytesParser
from email.policy import default as default_policy
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from wikisync.core.config import SyncConfig

API_URL = "http://wiki.test/w/api.php"
USERNAME = "Admin"
PASSWORD = "secret"


def parse_form(request: httpx.Request) -> dict[str, Any]:
    """Decode an urlencoded or multipart request body."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        message = BytesParser(policy=default_policy).parsebytes(
            f"Content-Type: {content_type}\r\n\r\n".encode() + request.content
        )
        fields: dict[str, Any] = {}
        for part in message.iter_parts():
            name = part.get_param("name", header="content-disposition")
            payload = part.get_payload(decode=True)
            fields[name] = payload if part.get_filename() else payload.decode()
        return fields
    parsed = parse_qs(request.content.decode(), keep_blank_values=True)
    return {key: values[0] for key, values in parsed.items()}


class FakeWiki:
    """Minimal MediaWiki action API kept in memory.

    Failures can be queued per action (optionally per target title or file
    name). A queued failure is one of:
    - an int: HTTP status to answer with
    - "badtoken": API error for a rejected write token
    - a dict: JSON body to answer with
    - an exception class: raised as if the connection failed
    """

    def __init__(self, username: str = USERNAME, password: str = PASSWORD) -> None:
        self.username = username
        self.password = password
        self.pages: dict[str, str] = {}
        self.files: dict[str, bytes] = {}
        self.logged_in = False
        self.tokens_issued = 0
        self.valid_tokens: set[str] = set()
        self.calls: Counter[str] = Counter()
        self.edits: list[str] = []
        self.uploads: list[str] = []
        self.edit_tokens: list[str] = []
        self._failures: dict[tuple[str, str | None], list[Any]] = {}

    def fail(self, action: str, *failures: Any, target: str | None = None) -> None:
        """Queue failures for the next calls of an action."""
        self._failures.setdefault((action, target), []).extend(failures)

    def revoke_tokens(self) -> None:
        """Invalidate every write token issued so far."""
        self.valid_tokens.clear()

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            params: dict[str, Any] = dict(request.url.params)
        else:
            params = parse_form(request)
        action = self._action(params)
        target = params.get("title") or params.get("titles") or params.get("filename")
        self.calls[action] += 1

        failure = self._next_failure(action, target)
        if failure is not None:
            return self._failure_response(failure, request)
        return getattr(self, f"_{action}")(params)

    def _action(self, params: dict[str, Any]) -> str:
        action = str(params.get("action"))
        if action == "query":
            if params.get("meta") == "tokens":
                return "login_token" if params.get("type") == "login" else "csrf_token"
            if params.get("prop") == "revisions":
                return "page_content"
            if params.get("prop") == "imageinfo":
                return "file_info"
        return action

    def _next_failure(self, action: str, target: str | None) -> Any:
        for key in ((action, target), (action, None)):
            queued = self._failures.get(key)
            if queued:
                return queued.pop(0)
        return None

    def _failure_response(self, failure: Any, request: httpx.Request) -> httpx.Response:
        if isinstance(failure, int):
            return httpx.Response(failure, text="Server error")
        if failure == "badtoken":
            return httpx.Response(
                200,
                json={"error": {"code": "badtoken", "info": "Invalid CSRF token."}},
            )
        if isinstance(failure, dict):
            return httpx.Response(200, json=failure)
        raise failure("simulated network failure", request=request)

    # === Handlers ===

    def _login_token(self, params: dict[str, Any]) -> httpx.Response:
        return httpx.Response(200, json={"query": {"tokens": {"logintoken": "login-token+\\"}}})

    def _login(self, params: dict[str, Any]) -> httpx.Response:
        if params.get("lgname") == self.username and params.get("lgpassword") == self.password:
            self.logged_in = True
            return httpx.Response(200, json={"login": {"result": "Success", "lgusername": self.username}})
        return httpx.Response(
            200,
            json={"login": {"result": "Failed", "reason": "Incorrect username or password entered."}},
        )

    def _csrf_token(self, params: dict[str, Any]) -> httpx.Response:
        self.tokens_issued += 1
        token = f"csrf-{self.tokens_issued}+\\"
        self.valid_tokens.add(token)
        return httpx.Response(200, json={"query": {"tokens": {"csrftoken": token}}})

    def _page_content(self, params: dict[str, Any]) -> httpx.Response:
        title = params["titles"]
        if title not in self.pages:
            return httpx.Response(200, json={"query": {"pages": [{"title": title, "missing": True}]}})
        revision = {"slots": {"main": {"content": self.pages[title]}}}
        return httpx.Response(
            200,
            json={"query": {"pages": [{"pageid": 1, "title": title, "revisions": [revision]}]}},
        )

    def _file_info(self, params: dict[str, Any]) -> httpx.Response:
        title = params["titles"]
        name = title.removeprefix("File:")
        if name not in self.files:
            return httpx.Response(200, json={"query": {"pages": [{"title": title, "missing": True}]}})
        data = self.files[name]
        info = {"sha1": hashlib.sha1(data).hexdigest(), "size": len(data)}
        return httpx.Response(
            200,
            json={"query": {"pages": [{"pageid": 2, "title": title, "imageinfo": [info]}]}},
        )

    def _check_token(self, params: dict[str, Any]) -> httpx.Response | None:
        if params.get("token") not in self.valid_tokens:
            return httpx.Response(
                200,
                json={"error": {"code": "badtoken", "info": "Invalid CSRF token."}},
            )
        return None

    def _edit(self, params: dict[str, Any]) -> httpx.Response:
        rejected = self._check_token(params)
        if rejected is not None:
            return rejected
        title = params["title"]
        self.pages[title] = params["text"]
        self.edits.append(title)
        self.edit_tokens.append(params["token"])
        return httpx.Response(200, json={"edit": {"result": "Success", "title": title}})

    def _upload(self, params: dict[str, Any]) -> httpx.Response:
        rejected = self._check_token(params)
        if rejected is not None:
            return rejected
        filename = params["filename"]
        self.files[filename] = params["file"]
        self.uploads.append(filename)
        return httpx.Response(200, json={"upload": {"result": "Success", "filename": filename}})


class YieldingTransport(httpx.AsyncBaseTransport):
    """Fake-wiki transport that suspends once per request.

    httpx.MockTransport answers without ever giving up the event loop, so
    concurrent callers never overlap. This one yields before answering.
    """

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self._handler = handler

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        await asyncio.sleep(0)
        return self._handler(request)


@pytest.fixture
def fake_wiki() -> FakeWiki:
    """In-memory wiki accepting the default credentials."""
    return FakeWiki()


@pytest.fixture
def wiki_transport(fake_wiki: FakeWiki) -> httpx.MockTransport:
    """httpx transport answering from the fake wiki."""
    return httpx.MockTransport(fake_wiki.handler)


@pytest.fixture
def yielding_transport(fake_wiki: FakeWiki) -> YieldingTransport:
    """Fake-wiki transport that lets concurrent requests interleave."""
    return YieldingTransport(fake_wiki.handler)


@pytest.fixture
def page_root(tmp_path: Path) -> Path:
    """Empty root directory for a local page tree."""
    root = tmp_path / "mediawiki-pages"
    root.mkdir()
    return root


@pytest.fixture
def write_tree(page_root: Path) -> Callable[[dict[str, str | bytes]], Path]:
    """Create files under the page root from {relative path: content}."""

    def _write(files: dict[str, str | bytes]) -> Path:
        for relative_path, content in files.items():
            path = page_root / relative_path
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, str):
                path.write_text(content, encoding="utf-8")
            else:
                path.write_bytes(content)
        return page_root

    return _write


@pytest.fixture
def make_config(page_root: Path) -> Callable[..., SyncConfig]:
    """Build a SyncConfig for the fake wiki with no waiting."""

    def _make(**overrides: Any) -> SyncConfig:
        values: dict[str, Any] = {
            "api_url": API_URL,
            "username": USERNAME,
            "password": PASSWORD,
            "root": page_root,
            "submit_delay": 0.0,
            "retry_delays": (0.0,),
            "refresh_interval": 0.0,
        }
        values.update(overrides)
        return SyncConfig(**values)

    return _make


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested from the recording sleep."""
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]) -> Callable[[float], Any]:
    """Sleep that records the delay and only yields to the event loop."""

    async def _sleep(delay: float) -> None:
        sleeps.append(delay)
        await asyncio.sleep(0)

    return _sleep
