"""
Shared Domain Kernel

Contains types, events, and exceptions shared across all bounded contexts.
"""

from shelf_playback.domain.shared.exceptions import (
    DomainError,
    DownloadFailedError,
    EntityNotFoundError,
    InvalidOperationError,
    MaterializationError,
    PersistenceError,
    ValidationError,
)

__all__ = [
    "DomainError",
    "ValidationError",
    "EntityNotFoundError",
    "InvalidOperationError",
    "PersistenceError",
    "MaterializationError",
    "DownloadFailedError",
]
