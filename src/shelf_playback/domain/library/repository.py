"""
Library Domain Repository Interfaces

Abstract base classes defining the contracts for data persistence.
Implementations live in the infrastructure layer and raise
PersistenceError when the underlying store fails.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from shelf_playback.domain.library.entities import Book, Bookmark


class Library(ABC):
    """Read-only view of the candidate books, used for random selection."""

    @abstractmethod
    async def list_books(self) -> list[Book]:
        """Return every book in the library, hidden ones included."""
        ...


class BookRepository(Library):
    """Abstract repository for library books."""

    @abstractmethod
    async def get(self, book_id: str) -> Book | None:
        """Retrieve a book by ID.

        Args:
            book_id: The store-assigned book identifier.

        Returns:
            The book if found, None otherwise.
        """
        ...

    @abstractmethod
    async def save(self, book: Book) -> None:
        """Insert or replace a book record."""
        ...

    @abstractmethod
    async def update_metadata(self, book: Book) -> None:
        """Persist the metadata fields of an existing book.

        Raises:
            EntityNotFoundError: If the book does not exist.
        """
        ...

    @abstractmethod
    async def count(self) -> int:
        ...


class BookmarkRepository(ABC):
    """Abstract repository for per-book bookmarks."""

    @abstractmethod
    async def list_for_book(self, book_id: str) -> list[Bookmark]:
        """Get every bookmark stored for a book, in no particular order."""
        ...

    @abstractmethod
    async def add(self, bookmark: Bookmark) -> None:
        """Create and durably save a bookmark."""
        ...

    @abstractmethod
    async def delete(self, bookmark_id: UUID) -> bool:
        """Delete a bookmark.

        Returns:
            True if the bookmark was deleted, False if it didn't exist.
        """
        ...

    @abstractmethod
    async def count(self) -> int:
        ...
