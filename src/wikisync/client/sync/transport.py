"""Retry-wrapped remote operations.

This module provides:
- WikiTransport: every wiki read and write wrapped by with_retry, with
  write tokens taken from the SessionManager on each attempt
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any, TypeVar

from wikisync.client.sync.retry import DEFAULT_MAX_ATTEMPTS, with_retry
from wikisync.core.config import DEFAULT_RETRY_DELAYS

if TYPE_CHECKING:
    from pathlib import Path

    from wikisync.client.api import RemoteFileInfo, WikiClient
    from wikisync.client.sync.session import SessionManager
    from wikisync.core.config import SyncConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WikiTransport:
    """Remote operations with retry, backoff and token recovery."""

    def __init__(
        self,
        client: WikiClient,
        sessions: SessionManager,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
        page_timeout: float = 30.0,
        file_timeout: float = 60.0,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        """Initialize the transport.

        Args:
            client: Raw wiki client.
            sessions: Session manager providing write tokens.
            max_attempts: Attempts per operation.
            retry_delays: Backoff schedule in seconds.
            page_timeout: Timeout for page edits in seconds.
            file_timeout: Timeout for file uploads in seconds.
            sleep: Awaitable sleep (replaced in tests).
        """
        self._client = client
        self._sessions = sessions
        self._max_attempts = max_attempts
        self._retry_delays = retry_delays
        self._page_timeout = page_timeout
        self._file_timeout = file_timeout
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: SyncConfig,
        client: WikiClient,
        sessions: SessionManager,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> WikiTransport:
        """Create a transport from a SyncConfig."""
        return cls(
            client,
            sessions,
            max_attempts=config.max_attempts,
            retry_delays=config.retry_delays,
            page_timeout=config.page_timeout,
            file_timeout=config.file_timeout,
            sleep=sleep,
        )

    async def _retry(self, operation: Callable[[], Awaitable[T]], label: str) -> T:
        return await with_retry(
            operation,
            label,
            max_attempts=self._max_attempts,
            delays=self._retry_delays,
            sleep=self._sleep,
        )

    async def _write(self, send: Callable[[str], Awaitable[T]], label: str) -> T:
        """Run a write, reading the token inside each attempt.

        A failed token fetch and a rejected token both use up one attempt of
        this loop. On rejection the sent token is expired, and the next
        attempt fetches a new one.
        """
        sent: list[str] = []

        async def attempt() -> T:
            token = await self._sessions.get_token(retry=False)
            sent.append(token)
            return await send(token)

        async def expire_sent_token() -> None:
            self._sessions.expire_token(sent[-1] if sent else None)

        return await with_retry(
            attempt,
            label,
            max_attempts=self._max_attempts,
            delays=self._retry_delays,
            refresh_token=expire_sent_token,
            sleep=self._sleep,
        )

    async def get_page_content(self, title: str) -> str | None:
        """Get page text, None if the page does not exist."""
        return await self._retry(
            lambda: self._client.get_page_content(title),
            f"get page content: {title}",
        )

    async def get_file_info(self, filename: str) -> RemoteFileInfo | None:
        """Get stored file metadata, None if the file does not exist."""
        return await self._retry(
            lambda: self._client.get_file_info(filename),
            f"get file info: {filename}",
        )

    async def edit_page(self, title: str, text: str) -> dict[str, Any]:
        """Create or replace a page."""
        return await self._write(
            lambda token: self._client.edit_page(
                title, text, token, timeout=self._page_timeout
            ),
            f"upload page: {title}",
        )

    async def upload_file(self, filename: str, path: Path) -> dict[str, Any]:
        """Upload a local file under the given destination name."""
        return await self._write(
            lambda token: self._client.upload_file(
                filename, path, token, timeout=self._file_timeout
            ),
            f"upload file: {filename}",
        )
