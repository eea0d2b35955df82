"""Core module - Shared configuration, hashing, and types."""

from wikisync.core.config import DEFAULT_RETRY_DELAYS, SyncConfig
from wikisync.core.hashing import compute_file_sha1, hash_file
from wikisync.core.types import RunState

__all__ = [
    # Config
    "DEFAULT_RETRY_DELAYS",
    "SyncConfig",
    # Hashing
    "compute_file_sha1",
    "hash_file",
    # Types
    "RunState",
]
