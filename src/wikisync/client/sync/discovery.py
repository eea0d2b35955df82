"""Enumerate local artifacts to synchronize.

Layout of the local tree:

    root/
        Media/<section>/<file>        media files, one directory per section
        <section>/<page>.txt|.md      pages, one directory per section
        <section>/<section>.json      optional section descriptor

Discovery only lists the tree; nothing is read or hashed here.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path

from wikisync.client.sync.types import MediaArtifact, PageArtifact

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_DIR = "Media"
DEFAULT_PAGE_EXTENSIONS = (".txt", ".md")


def _visible_entries(directory: Path) -> list[Path]:
    """List entries of a directory in sorted order, hidden ones excluded."""
    return sorted(p for p in directory.iterdir() if not p.name.startswith("."))


def discover_media(root: Path, media_dir: str = DEFAULT_MEDIA_DIR) -> list[MediaArtifact]:
    """Find media files under root/<media_dir>/<section>/.

    Args:
        root: Root of the local tree.
        media_dir: Name of the media subtree.

    Returns:
        Media artifacts in section then file name order.
    """
    media_root = root / media_dir
    if not media_root.is_dir():
        logger.debug(f"No media directory at {media_root}")
        return []

    artifacts: list[MediaArtifact] = []
    for section_dir in _visible_entries(media_root):
        if not section_dir.is_dir():
            continue
        for file_path in _visible_entries(section_dir):
            if file_path.is_file():
                artifacts.append(MediaArtifact(
                    section=section_dir.name,
                    filename=file_path.name,
                    path=file_path,
                ))
    return artifacts


def discover_sections(root: Path, media_dir: str = DEFAULT_MEDIA_DIR) -> list[str]:
    """List section directory names under root, the media subtree excluded.

    Raises:
        FileNotFoundError: If root does not exist.
    """
    if not root.is_dir():
        raise FileNotFoundError(f"Page directory not found: {root}")
    return [
        entry.name
        for entry in _visible_entries(root)
        if entry.is_dir() and entry.name != media_dir
    ]


def discover_pages(
    root: Path,
    media_dir: str = DEFAULT_MEDIA_DIR,
    extensions: Iterable[str] = DEFAULT_PAGE_EXTENSIONS,
) -> list[PageArtifact]:
    """Find page files in every section directory except the media subtree.

    Args:
        root: Root of the local tree.
        media_dir: Name of the media subtree to skip.
        extensions: Page file extensions (matched case-sensitively).

    Returns:
        Page artifacts in section then page name order.

    Raises:
        FileNotFoundError: If root does not exist.
    """
    suffixes = tuple(extensions)
    artifacts: list[PageArtifact] = []
    for section in discover_sections(root, media_dir):
        section_dir = root / section
        for file_path in _visible_entries(section_dir):
            if file_path.is_file() and file_path.name.endswith(suffixes):
                artifacts.append(PageArtifact(
                    section=section,
                    name=file_path.stem,
                    path=file_path,
                ))
    return artifacts


def read_section_description(root: Path, section: str) -> str | None:
    """Read the description from a section's descriptor file.

    The descriptor is root/<section>/<section>.json with the shape
    {"list": {"description": "..."}}. A missing descriptor or one without a
    description yields None; a malformed one is logged and yields None.
    """
    descriptor = root / section / f"{section}.json"
    if not descriptor.is_file():
        return None
    try:
        data = json.loads(descriptor.read_text(encoding="utf-8"))
        description = data.get("list", {}).get("description")
    except (OSError, ValueError, AttributeError) as e:
        logger.error(f"Error reading list description for {section}: {e}")
        return None
    if not description:
        return None
    return str(description)
