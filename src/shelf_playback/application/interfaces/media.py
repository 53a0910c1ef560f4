"""Port interfaces for media files: tag extraction, materialization, and status."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.library.entities import BookMetadata, ChapterInfo


class MetadataExtractor(ABC):
    """Reads chapter marks and tag metadata from a media file."""

    @abstractmethod
    async def extract_chapters(self, path: str) -> list[ChapterInfo]:
        """Return the file's chapters sorted by start time, or an empty list."""
        ...

    @abstractmethod
    async def extract(self, path: str) -> BookMetadata:
        """Return the file's tag metadata. Missing tags come back empty."""
        ...


class Materializer(ABC):
    """Makes a remote-only file's bytes fully present on local storage."""

    @abstractmethod
    async def materialize(self, path: str) -> None:
        """Return once every byte of ``path`` is local.

        Raises:
            MaterializationError: If the file could not be fetched.
        """
        ...


class FileStatusProbe(ABC):
    """Filesystem status reads used to estimate download progress."""

    @abstractmethod
    def reported_size(self, path: str) -> int | None:
        """Logical size the filesystem reports, or None when unreadable."""
        ...

    @abstractmethod
    def allocated_blocks(self, path: str) -> int | None:
        """Number of 512-byte blocks actually on disk, or None when unreadable."""
        ...
