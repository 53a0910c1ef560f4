"""SQLite implementation of the book repository."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from shelf_playback.domain.library.entities import Book
from shelf_playback.domain.library.repository import BookRepository
from shelf_playback.domain.shared.exceptions import EntityNotFoundError
from shelf_playback.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ..database import Database

logger = logging.getLogger(__name__)


class SQLiteBookRepository(BookRepository):
    def __init__(self, database: Database) -> None:
        self._db = database

    async def get(self, book_id: str) -> Book | None:
        row = await self._db.fetch_one("SELECT * FROM books WHERE id = ?", (book_id,))
        if row is None:
            return None
        return self._row_to_book(row)

    async def list_books(self) -> list[Book]:
        rows = await self._db.fetch_all("SELECT * FROM books ORDER BY title COLLATE NOCASE, id")
        return [self._row_to_book(row) for row in rows]

    async def save(self, book: Book) -> None:
        await self._db.execute(
            """
            INSERT INTO books (
                id, title, author, genre, year, duration, file_path, cover_art_data,
                is_cloud_only, has_chapters, is_hidden, metadata_loaded
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                title = excluded.title,
                author = excluded.author,
                genre = excluded.genre,
                year = excluded.year,
                duration = excluded.duration,
                file_path = excluded.file_path,
                cover_art_data = excluded.cover_art_data,
                is_cloud_only = excluded.is_cloud_only,
                has_chapters = excluded.has_chapters,
                is_hidden = excluded.is_hidden,
                metadata_loaded = excluded.metadata_loaded
            """,
            (
                book.id,
                book.title,
                book.author,
                book.genre,
                book.year,
                book.duration,
                book.file_path,
                book.cover_art_data,
                int(book.is_cloud_only),
                int(book.has_chapters),
                int(book.is_hidden),
                int(book.metadata_loaded),
            ),
        )
        logger.debug(LogTemplates.BOOK_SAVED, book.id)

    async def update_metadata(self, book: Book) -> None:
        updated = await self._db.execute(
            """
            UPDATE books SET
                title = ?, author = ?, genre = ?, year = ?, duration = ?,
                cover_art_data = ?, is_cloud_only = ?, has_chapters = ?, metadata_loaded = ?
            WHERE id = ?
            """,
            (
                book.title,
                book.author,
                book.genre,
                book.year,
                book.duration,
                book.cover_art_data,
                int(book.is_cloud_only),
                int(book.has_chapters),
                int(book.metadata_loaded),
                book.id,
            ),
        )
        if updated == 0:
            raise EntityNotFoundError("Book", book.id)
        logger.debug(LogTemplates.BOOK_UPDATED, book.id)

    async def count(self) -> int:
        row = await self._db.fetch_one("SELECT COUNT(*) AS n FROM books")
        return row["n"] if row else 0

    def _row_to_book(self, row: dict[str, Any]) -> Book:
        return Book(
            id=row["id"],
            title=row["title"],
            author=row["author"],
            genre=row["genre"],
            year=row["year"],
            duration=float(row["duration"]),
            file_path=row["file_path"],
            cover_art_data=row["cover_art_data"],
            is_cloud_only=bool(row["is_cloud_only"]),
            has_chapters=bool(row["has_chapters"]),
            is_hidden=bool(row["is_hidden"]),
            metadata_loaded=bool(row["metadata_loaded"]),
        )
