"""Content fingerprints for media files.

The wiki reports a SHA-1 digest for every stored file, so local files are
fingerprinted with the same algorithm.
"""

from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path

READ_BLOCK_SIZE = 64 * 1024


def compute_file_sha1(path: Path) -> str:
    """Compute the SHA-1 hash of a file.

    Reads the file in blocks to handle large files efficiently.

    Args:
        path: Path to the file to hash.

    Returns:
        Hexadecimal SHA-1 hash string (40 characters).
    """
    hasher = hashlib.sha1()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(READ_BLOCK_SIZE), b""):
            hasher.update(block)
    return hasher.hexdigest()


async def hash_file(path: Path) -> str:
    """Compute the SHA-1 hash of a file without blocking the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, compute_file_sha1, path)
