"""SQLite repository implementations."""

from shelf_playback.infrastructure.persistence.repositories.book_repository import (
    SQLiteBookRepository,
)
from shelf_playback.infrastructure.persistence.repositories.bookmark_repository import (
    SQLiteBookmarkRepository,
)

__all__ = [
    "SQLiteBookRepository",
    "SQLiteBookmarkRepository",
]
