"""Bookmark Application Service - per-book bookmark list backed by the store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...domain.library.entities import Bookmark
from ...domain.shared.exceptions import DomainError
from ...domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ...domain.library.entities import Book
    from ...domain.library.repository import BookmarkRepository

logger = logging.getLogger(__name__)


class BookmarkService:
    """Keeps the in-memory bookmark list of one book in step with the store.

    The list is always sorted by timestamp and is replaced wholesale from the
    store after every mutation. When the store fails, the previous list is
    kept and the failure is logged.
    """

    def __init__(self, *, bookmark_repository: BookmarkRepository) -> None:
        self._bookmark_repo = bookmark_repository
        self._bookmarks: tuple[Bookmark, ...] = ()

    @property
    def bookmarks(self) -> tuple[Bookmark, ...]:
        return self._bookmarks

    def clear(self) -> None:
        self._bookmarks = ()

    async def load(self, book: Book) -> bool:
        """Replace the in-memory list with the book's stored bookmarks."""
        try:
            stored = await self._bookmark_repo.list_for_book(book.id)
        except DomainError as e:
            logger.warning(LogTemplates.BOOKMARK_LOAD_FAILED, book.id, e.message)
            return False

        self._bookmarks = tuple(sorted(stored, key=lambda b: b.timestamp))
        logger.debug(LogTemplates.BOOKMARKS_LOADED, len(self._bookmarks), book.id)
        return True

    async def add(
        self, book: Book, *, timestamp: float, name: str, note: str | None = None
    ) -> Bookmark | None:
        """Create a bookmark at ``timestamp``, persist it, and reload the list."""
        try:
            bookmark = Bookmark.create(book.id, timestamp, name, note)
            await self._bookmark_repo.add(bookmark)
        except DomainError as e:
            logger.warning(LogTemplates.BOOKMARK_ADD_FAILED, book.id, e.message)
            return None
        except ValueError as e:
            logger.warning(LogTemplates.BOOKMARK_ADD_FAILED, book.id, e)
            return None

        logger.info(LogTemplates.BOOKMARK_ADDED, bookmark.id, book.id, bookmark.timestamp)
        await self.load(book)
        return bookmark

    async def delete(self, book: Book, bookmark: Bookmark) -> bool:
        """Remove a bookmark from the store and reload the list."""
        try:
            deleted = await self._bookmark_repo.delete(bookmark.id)
        except DomainError as e:
            logger.warning(LogTemplates.BOOKMARK_DELETE_FAILED, bookmark.id, e.message)
            return False

        if deleted:
            logger.info(LogTemplates.BOOKMARK_DELETED, bookmark.id, book.id)
        await self.load(book)
        return deleted
