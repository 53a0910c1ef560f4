"""
Domain Layer

Contains pure business logic organized by bounded contexts:
- shared/: Cross-cutting types, events, and exceptions
- library/: Books, chapters, and bookmarks
- playback/: Sleep timer and playback modes
"""

from shelf_playback.domain.shared.exceptions import DomainError

__all__ = [
    "DomainError",
]
