"""Filesystem adapters: status reads and read-through materialization.

Cloud-synced folders (iCloud Drive, OneDrive, Dropbox "online only" files)
report the full logical size up front while the allocated block count grows
as bytes arrive. Reading a placeholder end to end makes the sync client
fetch it.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import TYPE_CHECKING

from shelf_playback.application.interfaces.media import FileStatusProbe, Materializer
from shelf_playback.domain.shared.exceptions import MaterializationError
from shelf_playback.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from ...config.settings import MediaSettings

logger = logging.getLogger(__name__)


class PosixFileStatusProbe(FileStatusProbe):
    def reported_size(self, path: str) -> int | None:
        try:
            return os.stat(path).st_size
        except OSError:
            return None

    def allocated_blocks(self, path: str) -> int | None:
        try:
            st = os.stat(path)
        except OSError:
            return None
        # st_blocks is always in 512-byte units; absent on Windows.
        return getattr(st, "st_blocks", None)


class ReadThroughMaterializer(Materializer):
    """Forces a download by reading every byte of the file in a worker thread."""

    def __init__(self, settings: MediaSettings) -> None:
        self._chunk_size = settings.read_chunk_bytes

    async def materialize(self, path: str) -> None:
        logger.info(LogTemplates.MATERIALIZE_STARTED, path)
        total = await asyncio.to_thread(self._read_through_sync, path)
        logger.info(LogTemplates.MATERIALIZE_DONE, path, total)

    def _read_through_sync(self, path: str) -> int:
        total = 0
        try:
            with open(path, "rb") as fh:
                while chunk := fh.read(self._chunk_size):
                    total += len(chunk)
        except FileNotFoundError as e:
            raise MaterializationError(path, ErrorMessages.FILE_NOT_FOUND.format(path=path)) from e
        except OSError as e:
            raise MaterializationError(path, str(e)) from e
        return total
