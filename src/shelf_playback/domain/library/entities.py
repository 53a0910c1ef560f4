"""Core domain entities for the library bounded context."""

from __future__ import annotations

from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from shelf_playback.domain.shared.datetime_utils import utcnow
from shelf_playback.domain.shared.types import (
    BookIdStr,
    NonEmptyStr,
    NonNegativeFloat,
    NonNegativeInt,
    PlaybackSeconds,
    UtcDatetimeField,
)


class ChapterInfo(BaseModel):
    """Immutable chapter mark: where a chapter starts and what it is called."""

    model_config = ConfigDict(frozen=True, strict=True)

    start_time: PlaybackSeconds
    title: str


class BookMetadata(BaseModel):
    """Tag metadata read from a media file.

    Empty strings, ``None`` and zero mean "not found in the file".
    """

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    author: str | None = None
    genre: str | None = None
    year: NonNegativeInt = 0
    duration: NonNegativeFloat = 0.0
    cover_art_data: bytes | None = None
    has_chapters: bool = False


class Book(BaseModel):
    """In-memory snapshot of a library entry owned by the persistent store."""

    model_config = ConfigDict(strict=True, validate_assignment=True)

    id: BookIdStr
    title: str = ""
    author: str | None = None
    genre: str | None = None
    year: NonNegativeInt = 0
    duration: NonNegativeFloat = 0.0
    file_path: str | None = None
    cover_art_data: bytes | None = None

    is_cloud_only: bool = False
    has_chapters: bool = False
    is_hidden: bool = False
    metadata_loaded: bool = False

    @property
    def is_playable_locally(self) -> bool:
        return bool(self.file_path) and not self.is_cloud_only

    def merged_with(self, metadata: BookMetadata) -> Book:
        """Return a copy refreshed from freshly extracted metadata.

        A field is only overwritten when the new value is non-empty / non-zero;
        otherwise the existing value is kept. The chapter-presence flag always
        follows the file, and the book is no longer considered cloud-only.
        """
        return self.model_copy(
            update={
                "title": metadata.title or self.title,
                "author": metadata.author or self.author,
                "genre": metadata.genre or self.genre,
                "year": metadata.year if metadata.year > 0 else self.year,
                "duration": metadata.duration if metadata.duration > 0 else self.duration,
                "cover_art_data": metadata.cover_art_data or self.cover_art_data,
                "has_chapters": metadata.has_chapters,
                "is_cloud_only": False,
                "metadata_loaded": True,
            }
        )


class Bookmark(BaseModel):
    """A named position inside a book."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    book_id: BookIdStr
    timestamp: PlaybackSeconds
    name: NonEmptyStr
    note: str | None = None
    created_at: UtcDatetimeField = Field(default_factory=utcnow)

    @classmethod
    def create(cls, book_id: str, timestamp: float, name: str, note: str | None = None) -> Bookmark:
        """Create a new bookmark with a fresh identifier and creation time."""
        return cls(book_id=book_id, timestamp=max(0.0, timestamp), name=name, note=note or None)
