"""Shared types and dataclasses for sync operations.

This module provides:
- UploadError, PageUploadError, FileUploadError: Exception classes
- PageArtifact, MediaArtifact: Local units to synchronize
- SyncStats: Counters for one sync run
- StructureMap: Pages confirmed present, grouped by section
- DerivedPage: A synthesized page ready for upload
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, NamedTuple

from wikisync.client.api import WikiError


class UploadError(WikiError):
    """The wiki answered a write without reporting success."""

    def __init__(self, target: str, response: dict[str, Any]) -> None:
        self.target = target
        self.response = response
        result = response.get("result", "no result")
        super().__init__(f"Upload of {target} failed: {result}")


class PageUploadError(UploadError):
    """Page edit was not accepted."""


class FileUploadError(UploadError):
    """File upload was not accepted."""


@dataclass(frozen=True)
class PageArtifact:
    """A local page file.

    Attributes:
        section: Top-level section the page belongs to.
        name: Leaf title (file name without extension).
        path: Absolute path to the page file.
    """

    section: str
    name: str
    path: Path

    @property
    def title(self) -> str:
        """Full wiki title of the page."""
        return f"{self.section}/{self.name}"

    def read_text(self) -> str:
        """Read the page text from disk."""
        return self.path.read_text(encoding="utf-8")


@dataclass(frozen=True)
class MediaArtifact:
    """A local media file.

    Attributes:
        section: Section the file belongs to.
        filename: File name inside the section's media directory.
        path: Absolute path to the file.
    """

    section: str
    filename: str
    path: Path

    @property
    def destination(self) -> str:
        """Destination file name on the wiki."""
        return f"{self.section}/{self.filename}"


@dataclass
class SyncStats:
    """Statistics for one sync run.

    Each field is incremented by exactly one task at its completion point.
    """

    files_discovered: int = 0
    files_uploaded: int = 0
    files_skipped: int = 0
    files_errored: int = 0
    pages_discovered: int = 0
    pages_uploaded: int = 0
    pages_skipped: int = 0
    pages_errored: int = 0

    @property
    def errors(self) -> int:
        """Total per-item errors."""
        return self.files_errored + self.pages_errored

    def summary_lines(self) -> list[str]:
        """Human-readable summary of the run."""
        return [
            f"Files: {self.files_uploaded} uploaded, {self.files_skipped} skipped, "
            f"{self.files_discovered} total",
            f"Pages: {self.pages_uploaded} uploaded, {self.pages_skipped} skipped, "
            f"{self.pages_discovered} total",
            f"Errors: {self.errors}",
        ]


class StructureMap:
    """Pages confirmed present on the wiki, grouped by section.

    Every local section is added up front, so a section whose pages all
    failed still maps to an empty list. Upload tasks register pages while
    they run. freeze() returns the settled structure and closes the map to
    further registrations, so derived pages are only built from a complete
    picture.
    """

    def __init__(self) -> None:
        self._sections: dict[str, list[str]] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        """Check whether the map was frozen."""
        return self._frozen

    def add_section(self, section: str) -> None:
        """Record a section, with or without pages.

        Raises:
            RuntimeError: If the map was already frozen.
        """
        if self._frozen:
            raise RuntimeError("Structure map is frozen; uploads have already settled")
        self._sections.setdefault(section, [])

    def register(self, section: str, page: str) -> None:
        """Record a page as present under a section.

        Raises:
            RuntimeError: If the map was already frozen.
        """
        if self._frozen:
            raise RuntimeError("Structure map is frozen; uploads have already settled")
        pages = self._sections.setdefault(section, [])
        if page not in pages:
            pages.append(page)

    def freeze(self) -> Mapping[str, tuple[str, ...]]:
        """Close the map and return {section: sorted pages}."""
        self._frozen = True
        return MappingProxyType({
            section: tuple(sorted(pages))
            for section, pages in sorted(self._sections.items())
        })


class DerivedPage(NamedTuple):
    """A page synthesized from the sync outcome."""

    title: str
    text: str
