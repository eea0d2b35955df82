"""Synchronization of a local page tree to the wiki.

Architecture:
    discovery → TaskScheduler → per-artifact tasks → StructureMap → structure

Components:
- **SessionManager**: Login and the shared write token
- **WikiTransport**: Remote operations wrapped with retry and token recovery
- **TaskScheduler**: Bounded concurrency and submission pacing
- **differ**: Skip uploads whose content is already on the wiki
- **discovery**: Enumerate pages and media files
- **structure**: Navigation pages built from what was synchronized
- **SyncOrchestrator**: Runs the whole sequence

All public symbols are re-exported here.
"""

from wikisync.client.sync.differ import is_file_unchanged, is_page_unchanged
from wikisync.client.sync.discovery import (
    discover_media,
    discover_pages,
    read_section_description,
)
from wikisync.client.sync.engine import SyncOrchestrator, sync_wiki
from wikisync.client.sync.retry import (
    DEFAULT_MAX_ATTEMPTS,
    NETWORK_EXCEPTIONS,
    RetryAction,
    RetryDecision,
    backoff_delay,
    classify,
    is_transient,
    with_retry,
)
from wikisync.client.sync.scheduler import TaskScheduler
from wikisync.client.sync.session import Session, SessionManager
from wikisync.client.sync.structure import (
    INDEX_TITLE,
    MAIN_PAGE_TITLE,
    NAVIGATION_TEMPLATE_TITLE,
    SIDEBAR_TITLE,
    SITEMAP_TITLE,
    build_derived_pages,
    build_index,
    build_main_page,
    build_navigation_template,
    build_section_page,
    build_sidebar,
    build_sitemap,
)
from wikisync.client.sync.transport import WikiTransport
from wikisync.client.sync.types import (
    DerivedPage,
    FileUploadError,
    MediaArtifact,
    PageArtifact,
    PageUploadError,
    StructureMap,
    SyncStats,
    UploadError,
)

__all__ = [
    # Retry
    "DEFAULT_MAX_ATTEMPTS",
    "NETWORK_EXCEPTIONS",
    "RetryAction",
    "RetryDecision",
    "backoff_delay",
    "classify",
    "is_transient",
    "with_retry",
    # Session and transport
    "Session",
    "SessionManager",
    "WikiTransport",
    # Scheduling
    "TaskScheduler",
    # Diffing and discovery
    "is_file_unchanged",
    "is_page_unchanged",
    "discover_media",
    "discover_pages",
    "read_section_description",
    # Structure
    "INDEX_TITLE",
    "MAIN_PAGE_TITLE",
    "NAVIGATION_TEMPLATE_TITLE",
    "SIDEBAR_TITLE",
    "SITEMAP_TITLE",
    "build_derived_pages",
    "build_index",
    "build_main_page",
    "build_navigation_template",
    "build_section_page",
    "build_sidebar",
    "build_sitemap",
    # Types
    "DerivedPage",
    "FileUploadError",
    "MediaArtifact",
    "PageArtifact",
    "PageUploadError",
    "StructureMap",
    "SyncStats",
    "UploadError",
    # Orchestration
    "SyncOrchestrator",
    "sync_wiki",
]
