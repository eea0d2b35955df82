"""Decide whether a local artifact is already represented on the wiki."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wikisync.client.api import RemoteFileInfo


def is_page_unchanged(existing_text: str | None, local_text: str) -> bool:
    """Check whether the wiki already holds exactly the local text.

    Any difference, whitespace included, counts as a change. A missing page
    (None) is always a change.
    """
    return existing_text is not None and existing_text == local_text


def is_file_unchanged(existing: RemoteFileInfo | None, local_sha1: str) -> bool:
    """Check whether the stored file has the same content digest.

    File names and other metadata are not compared.
    """
    return existing is not None and existing.sha1.lower() == local_sha1.lower()
