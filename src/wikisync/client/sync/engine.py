"""Sync orchestrator.

This module provides:
- SyncOrchestrator: Runs one synchronization of a local tree to the wiki
- sync_wiki: Convenience entry point owning the HTTP client

Run sequence:
    1. Authenticate (fatal on failure)
    2. Obtain the initial write token
    3. Submit one gated task per media file (hash, compare, upload)
    4. Submit one gated task per page (read, compare, edit)
    5. Wait for both batches to settle
    6. Publish navigation pages built from the settled structure map
    7. Publish the main page from the home section
    8. Report statistics

Errors inside a per-artifact task are logged and counted; they never stop
sibling tasks. Errors anywhere else propagate to the caller.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from wikisync.client.api import WikiClient
from wikisync.client.sync.differ import is_file_unchanged, is_page_unchanged
from wikisync.client.sync.discovery import (
    discover_media,
    discover_pages,
    discover_sections,
    read_section_description,
)
from wikisync.client.sync.scheduler import TaskScheduler
from wikisync.client.sync.session import SessionManager
from wikisync.client.sync.structure import (
    MAIN_PAGE_TITLE,
    build_derived_pages,
    build_main_page,
)
from wikisync.client.sync.transport import WikiTransport
from wikisync.client.sync.types import (
    FileUploadError,
    MediaArtifact,
    PageArtifact,
    PageUploadError,
    StructureMap,
    SyncStats,
)
from wikisync.core.hashing import hash_file

if TYPE_CHECKING:
    import httpx

    from wikisync.core.config import SyncConfig

logger = logging.getLogger(__name__)

SUCCESS = "Success"


class SyncOrchestrator:
    """Synchronizes a local page tree to the wiki.

    Usage:
        async with WikiClient.from_config(config) as client:
            stats = await SyncOrchestrator(config, client).run()
    """

    def __init__(
        self,
        config: SyncConfig,
        client: WikiClient,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Sync configuration.
            client: Wiki client (one per run; it carries the login cookies).
            sleep: Awaitable sleep used for backoff and pacing.
            clock: Monotonic clock used for token age.
        """
        self._config = config
        self._sessions = SessionManager(
            client,
            config.username,
            config.password,
            token_ttl=config.token_ttl,
            max_attempts=config.max_attempts,
            retry_delays=config.retry_delays,
            clock=clock,
            sleep=sleep,
        )
        self._transport = WikiTransport.from_config(config, client, self._sessions, sleep=sleep)
        self._scheduler = TaskScheduler(
            max_concurrent=config.max_concurrent,
            submit_delay=config.submit_delay,
            sleep=sleep,
        )
        self._stats = SyncStats()
        self._structure = StructureMap()

    @property
    def stats(self) -> SyncStats:
        """Get statistics of the current run."""
        return self._stats

    @property
    def sessions(self) -> SessionManager:
        """Get the session manager."""
        return self._sessions

    @property
    def scheduler(self) -> TaskScheduler:
        """Get the task scheduler."""
        return self._scheduler

    async def run(self) -> SyncStats:
        """Run a full synchronization.

        Returns:
            Final statistics.

        Raises:
            AuthenticationError: If login fails.
            Exception: Any error outside the per-artifact tasks.
        """
        try:
            logger.info("Starting wiki upload process...")
            await self._sessions.authenticate()
            logger.info("✓ Login successful")
            await self._sessions.get_token()
            logger.info("✓ CSRF token obtained")

            structure = await self._upload_artifacts()

            logger.info("Creating navigation and organization pages...")
            await self._publish_derived_pages(structure)
            await self._publish_main_page(structure)
        except Exception as e:
            logger.error(f"Fatal error: {e}")
            raise

        logger.info("Upload process completed:")
        for line in self._stats.summary_lines():
            logger.info(line)
        return self._stats

    async def _upload_artifacts(self) -> Mapping[str, Sequence[str]]:
        """Upload media and pages, then return the settled structure."""
        root = self._config.root
        media = discover_media(root, self._config.media_dir)
        pages = discover_pages(root, self._config.media_dir, self._config.page_extensions)
        for section in discover_sections(root, self._config.media_dir):
            self._structure.add_section(section)
        self._stats.files_discovered = len(media)
        self._stats.pages_discovered = len(pages)
        logger.info(f"Found {len(media)} media files and {len(pages)} pages in {root}")

        refresher: asyncio.Task[None] | None = None
        if self._config.refresh_interval > 0:
            refresher = asyncio.create_task(
                self._sessions.refresh_periodically(self._config.refresh_interval)
            )
        try:
            file_tasks = [
                await self._scheduler.submit(self._process_file, artifact)
                for artifact in media
            ]
            page_tasks = [
                await self._scheduler.submit(self._process_page, artifact)
                for artifact in pages
            ]
            await self._scheduler.wait(file_tasks)
            await self._scheduler.wait(page_tasks)
        finally:
            if refresher is not None:
                refresher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await refresher

        return self._structure.freeze()

    async def _process_file(self, artifact: MediaArtifact) -> None:
        destination = artifact.destination
        try:
            existing = await self._transport.get_file_info(destination)
            local_sha1 = await hash_file(artifact.path)

            if is_file_unchanged(existing, local_sha1):
                logger.info(f'⏭ Skipping file "{destination}" - identical file exists')
                self._stats.files_skipped += 1
                return

            logger.info(f"↑ Uploading file: {destination}")
            result = await self._transport.upload_file(destination, artifact.path)
            if result.get("result") != SUCCESS:
                raise FileUploadError(destination, result)

            logger.info(f'✓ File "{destination}" uploaded successfully')
            self._stats.files_uploaded += 1
        except Exception as e:
            logger.error(f'✗ Error processing file "{destination}": {e}')
            self._stats.files_errored += 1

    async def _process_page(self, artifact: PageArtifact) -> None:
        title = artifact.title
        try:
            loop = asyncio.get_running_loop()
            local_text = await loop.run_in_executor(None, artifact.read_text)
            existing = await self._transport.get_page_content(title)

            if is_page_unchanged(existing, local_text):
                logger.info(f'⏭ Skipping page "{title}" - identical content exists')
                self._stats.pages_skipped += 1
                self._structure.register(artifact.section, artifact.name)
                return

            created = existing is None
            logger.info(f"↑ {'Creating' if created else 'Updating'} page: {title}")
            await self._publish_page(title, local_text)

            logger.info(f'✓ Page "{title}" {"created" if created else "updated"} successfully')
            self._stats.pages_uploaded += 1
            self._structure.register(artifact.section, artifact.name)
        except Exception as e:
            logger.error(f'✗ Error processing page "{title}": {e}')
            self._stats.pages_errored += 1

    async def _publish_page(self, title: str, text: str) -> dict[str, Any]:
        """Edit a page and require a successful result."""
        result = await self._transport.edit_page(title, text)
        if result.get("result") != SUCCESS:
            raise PageUploadError(title, result)
        return result

    async def _publish_derived_pages(self, structure: Mapping[str, Sequence[str]]) -> None:
        descriptions = {
            section: read_section_description(self._config.root, section)
            for section in structure
        }
        derived = build_derived_pages(
            structure,
            self._config.site_name,
            home_section=self._config.home_section,
            descriptions=descriptions,
        )
        for page in derived:
            await self._publish_page(page.title, page.text)
            logger.info(f"✓ Created {page.title}")

    async def _publish_main_page(self, structure: Mapping[str, Sequence[str]]) -> bool:
        """Publish the main page from the home section.

        Returns:
            True if the main page was published.
        """
        home = self._config.home_section
        pages = structure.get(home)
        if not pages:
            logger.debug(f"No pages in {home}, main page left unchanged")
            return False

        leaf = home if home in pages else pages[0]
        home_title = f"{home}/{leaf}"
        content = await self._transport.get_page_content(home_title)
        if content is None:
            logger.warning(f"Home page {home_title} not found on the wiki, main page left unchanged")
            return False

        await self._publish_page(MAIN_PAGE_TITLE, build_main_page(content))
        logger.info("✓ Main page created successfully")
        return True


async def sync_wiki(
    config: SyncConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SyncStats:
    """Run one synchronization with a dedicated wiki client.

    Args:
        config: Sync configuration.
        transport: Optional httpx transport (used by tests).

    Returns:
        Final statistics.
    """
    async with WikiClient.from_config(config, transport=transport) as client:
        return await SyncOrchestrator(config, client).run()
