"""
Library Bounded Context

Books, chapters, bookmarks, and the chapter/time model.
"""

from shelf_playback.domain.library.chapters import (
    chapter_index,
    chapter_name,
    next_chapter_start,
    previous_chapter_start,
)
from shelf_playback.domain.library.entities import Book, BookMetadata, Bookmark, ChapterInfo
from shelf_playback.domain.library.repository import BookmarkRepository, BookRepository, Library

__all__ = [
    # Entities
    "Book",
    "BookMetadata",
    "Bookmark",
    "ChapterInfo",
    # Chapter model
    "chapter_index",
    "chapter_name",
    "next_chapter_start",
    "previous_chapter_start",
    # Repository
    "BookRepository",
    "BookmarkRepository",
    "Library",
]
