"""Cloud Download Monitor - materializes remote-only books while estimating progress."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from ...domain.shared.constants import DownloadConstants
from ...domain.shared.exceptions import DomainError, DownloadFailedError
from ...domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from ...domain.library.entities import Book, BookMetadata
    from ...domain.library.repository import BookRepository
    from ..interfaces.media import FileStatusProbe, Materializer, MetadataExtractor

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], Awaitable[None]]


class CloudDownloadMonitor:
    """Runs one materialization together with a once-per-tick progress poll.

    The poll loop estimates progress from the blocks allocated on disk and
    stops as soon as they cover the reported size, which may happen before the
    materializer itself returns. Only the materializer's outcome decides
    success or failure.
    """

    def __init__(
        self,
        *,
        materializer: Materializer,
        status_probe: FileStatusProbe,
        metadata_extractor: MetadataExtractor,
        book_repository: BookRepository,
        poll_interval: float = 1.0,
    ) -> None:
        self._materializer = materializer
        self._status_probe = status_probe
        self._metadata_extractor = metadata_extractor
        self._book_repo = book_repository
        self._poll_interval = poll_interval

    async def download(self, book: Book, on_progress: ProgressCallback) -> Book:
        """Make ``book`` local and return it refreshed from the local file.

        Raises:
            DownloadFailedError: If the book has no file or materialization failed.
            asyncio.CancelledError: If the download was cancelled.
        """
        path = book.file_path
        if not path:
            raise DownloadFailedError(book.id, ErrorMessages.DOWNLOAD_NO_FILE_PATH)

        reported_size = self._status_probe.reported_size(path) or 0
        if reported_size <= 0:
            logger.info(LogTemplates.DOWNLOAD_SIZE_UNKNOWN, path)
        logger.info(LogTemplates.DOWNLOAD_STARTED, book.id, reported_size)

        poller = asyncio.create_task(self._poll_progress(path, reported_size, on_progress))
        try:
            await self._materializer.materialize(path)
        except DomainError as e:
            raise DownloadFailedError(book.id, e.message) from e
        except Exception as e:
            raise DownloadFailedError(book.id, str(e) or type(e).__name__) from e
        finally:
            poller.cancel()
            await asyncio.gather(poller, return_exceptions=True)

        await on_progress(DownloadConstants.PROGRESS_COMPLETE)
        logger.info(LogTemplates.DOWNLOAD_COMPLETED, book.id)

        refreshed = await self._refresh_metadata(book, path)
        try:
            await self._book_repo.update_metadata(refreshed)
        except DomainError as e:
            logger.warning(LogTemplates.DOWNLOAD_SAVE_FAILED, book.id, e.message)
        return refreshed

    async def _poll_progress(
        self, path: str, reported_size: int, on_progress: ProgressCallback
    ) -> None:
        # Without a reported size there is no percentage to give
        if reported_size <= 0:
            return

        progress = 0.0
        while True:
            await asyncio.sleep(self._poll_interval)

            blocks = self._status_probe.allocated_blocks(path)
            if blocks is None:
                logger.debug(LogTemplates.DOWNLOAD_POLL_SKIPPED, path)
                continue
            if blocks <= 0:
                continue

            on_disk = blocks * DownloadConstants.STAT_BLOCK_SIZE
            estimate = min(on_disk / reported_size, DownloadConstants.PROGRESS_COMPLETE)
            if estimate > progress:
                progress = estimate
                await on_progress(progress)

            if on_disk >= reported_size:
                logger.debug(LogTemplates.DOWNLOAD_POLL_COMPLETE, path)
                return

    async def _refresh_metadata(self, book: Book, path: str) -> Book:
        metadata: BookMetadata | None
        try:
            metadata = await self._metadata_extractor.extract(path)
        except Exception:
            logger.exception(LogTemplates.DOWNLOAD_METADATA_FAILED, path)
            metadata = None

        if metadata is None:
            return book.model_copy(update={"is_cloud_only": False})
        return book.merged_with(metadata)
