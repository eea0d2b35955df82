"""HTTP client for the wiki action API.

This module provides:
- WikiClient: async HTTP client for the remote wiki (MediaWiki action API)
- Token, login, page and file operations
- Exception hierarchy mapping HTTP and API-level failures

Requests are not retried here; see wikisync.client.sync.transport.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from wikisync.core.config import SyncConfig

logger = logging.getLogger(__name__)

# API error code sent when the submitted write token is invalid or expired
BAD_TOKEN_CODE = "badtoken"


class WikiError(Exception):
    """Base exception for wikisync errors."""


class APIError(WikiError):
    """Base exception for API errors.

    Attributes:
        status_code: HTTP status of the response, None if no response arrived.
        code: API error code from the response body, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class AuthenticationError(APIError):
    """Login was rejected or no session is available."""


class TokenRejectedError(APIError):
    """The write token submitted with a request was rejected."""


@dataclass
class RemoteFileInfo:
    """File metadata reported by the wiki."""

    sha1: str
    size: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteFileInfo:
        """Create from an imageinfo record."""
        return cls(sha1=data["sha1"], size=int(data.get("size", 0)))


def _first_page(data: dict[str, Any]) -> dict[str, Any] | None:
    """Return the single page of a query response, None if it is missing.

    Handles both formatversion=2 (list of pages) and the legacy layout
    (pages keyed by page id, "-1" for missing pages).
    """
    pages = data.get("query", {}).get("pages")
    if not pages:
        return None
    if isinstance(pages, list):
        page = pages[0]
    else:
        page = next(iter(pages.values()))
    if "missing" in page or "invalid" in page:
        return None
    return dict(page)


def _revision_text(revision: dict[str, Any]) -> str | None:
    """Extract wikitext from a revision record."""
    slots = revision.get("slots")
    if slots:
        main = slots.get("main", {})
        return main.get("content", main.get("*"))
    return revision.get("content", revision.get("*"))


class WikiClient:
    """Async HTTP client for the wiki action API.

    Cookies set during login are kept on the underlying httpx client, so one
    WikiClient represents one authenticated session.
    """

    def __init__(
        self,
        api_url: str,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the wiki client.

        Args:
            api_url: Full URL of the API endpoint (e.g., ".../w/api.php").
            timeout: Default request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.
            transport: Optional httpx transport (used by tests).
        """
        self._api_url = api_url
        self._timeout = timeout
        self._client = httpx.AsyncClient(
            timeout=timeout,
            verify=verify_ssl,
            follow_redirects=True,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: SyncConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> WikiClient:
        """Create a client from a SyncConfig."""
        return cls(
            config.api_url,
            timeout=config.timeout,
            verify_ssl=config.verify_ssl,
            transport=transport,
        )

    @property
    def api_url(self) -> str:
        """Get the API endpoint URL."""
        return self._api_url

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> WikiClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.aclose()

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code >= 400:
            raise APIError(
                f"HTTP {response.status_code} from {self._api_url}",
                response.status_code,
            )
        data: dict[str, Any] = response.json()
        error = data.get("error")
        if error:
            code = error.get("code")
            info = error.get("info", code or "Unknown error")
            if code == BAD_TOKEN_CODE:
                raise TokenRejectedError(info, response.status_code, code)
            raise APIError(info, response.status_code, code)
        return data

    async def _get(self, params: dict[str, str]) -> dict[str, Any]:
        response = await self._client.get(
            self._api_url, params={**params, "format": "json"}
        )
        return self._handle_response(response)

    async def _post(
        self,
        data: dict[str, str],
        files: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        response = await self._client.post(
            self._api_url,
            data={**data, "format": "json"},
            files=files,
            timeout=timeout if timeout is not None else self._timeout,
        )
        return self._handle_response(response)

    # === Authentication ===

    async def get_login_token(self) -> str:
        """Fetch a login-purpose token."""
        data = await self._get({"action": "query", "meta": "tokens", "type": "login"})
        return str(data["query"]["tokens"]["logintoken"])

    async def login(self, username: str, password: str, login_token: str) -> dict[str, Any]:
        """Submit credentials with a login token.

        Returns:
            The "login" section of the response (result, reason, ...).
        """
        data = await self._post({
            "action": "login",
            "lgname": username,
            "lgpassword": password,
            "lgtoken": login_token,
        })
        return dict(data["login"])

    async def get_csrf_token(self) -> str:
        """Fetch a write token for the current session."""
        data = await self._get({"action": "query", "meta": "tokens"})
        return str(data["query"]["tokens"]["csrftoken"])

    # === Reads ===

    async def get_page_content(self, title: str) -> str | None:
        """Get the current wikitext of a page.

        Args:
            title: Full page title.

        Returns:
            Page text, or None if the page does not exist.
        """
        data = await self._get({
            "action": "query",
            "prop": "revisions",
            "titles": title,
            "rvprop": "content",
            "rvslots": "main",
            "formatversion": "2",
        })
        page = _first_page(data)
        if page is None or not page.get("revisions"):
            return None
        return _revision_text(page["revisions"][0])

    async def get_file_info(self, filename: str) -> RemoteFileInfo | None:
        """Get digest and size of a stored file.

        Args:
            filename: Destination file name (without the "File:" prefix).

        Returns:
            File metadata, or None if the file does not exist.
        """
        data = await self._get({
            "action": "query",
            "prop": "imageinfo",
            "titles": f"File:{filename}",
            "iiprop": "sha1|size",
            "formatversion": "2",
        })
        page = _first_page(data)
        if page is None or not page.get("imageinfo"):
            return None
        return RemoteFileInfo.from_dict(page["imageinfo"][0])

    # === Writes ===

    async def edit_page(
        self,
        title: str,
        text: str,
        token: str,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Create or replace a page.

        Returns:
            The "edit" section of the response.
        """
        data = await self._post(
            {
                "action": "edit",
                "title": title,
                "text": text,
                "token": token,
                "bot": "1",
            },
            timeout=timeout,
        )
        return dict(data.get("edit", {}))

    async def upload_file(
        self,
        filename: str,
        path: Path,
        token: str,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Upload a local file under the given destination name.

        The file is streamed from disk; no size limit is applied.

        Returns:
            The "upload" section of the response.
        """
        with open(path, "rb") as f:
            data = await self._post(
                {
                    "action": "upload",
                    "filename": filename,
                    "token": token,
                    "ignorewarnings": "1",
                },
                files={"file": (path.name, f, "application/octet-stream")},
                timeout=timeout,
            )
        return dict(data.get("upload", {}))
