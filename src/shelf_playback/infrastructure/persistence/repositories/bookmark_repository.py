"""SQLite implementation of the bookmark repository."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from uuid import UUID

from shelf_playback.domain.library.entities import Bookmark
from shelf_playback.domain.library.repository import BookmarkRepository
from shelf_playback.domain.shared.datetime_utils import UtcDateTime

if TYPE_CHECKING:
    from ..database import Database

logger = logging.getLogger(__name__)


class SQLiteBookmarkRepository(BookmarkRepository):
    def __init__(self, database: Database) -> None:
        self._db = database

    async def list_for_book(self, book_id: str) -> list[Bookmark]:
        rows = await self._db.fetch_all(
            "SELECT * FROM bookmarks WHERE book_id = ?",
            (book_id,),
        )
        return [self._row_to_bookmark(row) for row in rows]

    async def add(self, bookmark: Bookmark) -> None:
        await self._db.execute(
            """
            INSERT INTO bookmarks (id, book_id, timestamp, name, note, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                str(bookmark.id),
                bookmark.book_id,
                bookmark.timestamp,
                bookmark.name,
                bookmark.note,
                UtcDateTime(bookmark.created_at).iso,
            ),
        )

    async def delete(self, bookmark_id: UUID) -> bool:
        deleted = await self._db.execute(
            "DELETE FROM bookmarks WHERE id = ?",
            (str(bookmark_id),),
        )
        return deleted > 0

    async def count(self) -> int:
        row = await self._db.fetch_one("SELECT COUNT(*) AS n FROM bookmarks")
        return row["n"] if row else 0

    def _row_to_bookmark(self, row: dict[str, Any]) -> Bookmark:
        return Bookmark(
            id=UUID(row["id"]),
            book_id=row["book_id"],
            timestamp=float(row["timestamp"]),
            name=row["name"],
            note=row["note"],
            created_at=UtcDateTime.from_iso(row["created_at"]).dt,
        )
