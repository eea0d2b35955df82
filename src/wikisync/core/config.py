"""Shared configuration for wikisync.

This module defines the configuration used by the wiki client, the session
manager and the sync orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_RETRY_DELAYS: tuple[float, ...] = (1.0, 2.0, 5.0, 10.0, 30.0)


@dataclass
class SyncConfig:
    """Configuration for synchronizing a local page tree to a wiki.

    Attributes:
        api_url: Wiki API endpoint (e.g., "http://localhost:8080/w/api.php").
        username: Account used to log in.
        password: Password (or bot password) for the account.
        root: Root directory of the local page tree.
        timeout: Default request timeout in seconds (reads, tokens, login).
        page_timeout: Timeout for page edits in seconds.
        file_timeout: Timeout for file uploads in seconds.
        max_concurrent: Maximum number of upload tasks in flight.
        submit_delay: Pause between task submissions in seconds.
        token_ttl: Age in seconds after which the write token is refreshed.
        refresh_interval: Period of the background token refresh during
            uploads in seconds; 0 disables it.
        max_attempts: Attempts per remote operation before giving up.
        retry_delays: Backoff schedule indexed by attempt number.
        media_dir: Name of the media subtree under root.
        home_section: Section whose page becomes the main page.
        page_extensions: File extensions treated as pages.
        site_name: Name used in headings of generated pages.
        verify_ssl: Whether to verify SSL certificates.
    """

    api_url: str
    username: str
    password: str
    root: Path = field(default_factory=lambda: Path("mediawiki-pages"))
    timeout: float = 30.0
    page_timeout: float = 30.0
    file_timeout: float = 60.0
    max_concurrent: int = 5
    submit_delay: float = 0.1
    token_ttl: float = 60.0
    refresh_interval: float = 60.0
    max_attempts: int = 5
    retry_delays: tuple[float, ...] = DEFAULT_RETRY_DELAYS
    media_dir: str = "Media"
    home_section: str = "Homepage"
    page_extensions: tuple[str, ...] = (".txt", ".md")
    site_name: str = "Wiki"
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize values and reject unusable settings."""
        self.api_url = self.api_url.strip()
        self.root = Path(self.root)
        self.retry_delays = tuple(self.retry_delays)
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if not self.retry_delays:
            raise ValueError("retry_delays must not be empty")

    @property
    def is_secure(self) -> bool:
        """Check if the API endpoint uses HTTPS."""
        return self.api_url.startswith("https://")
