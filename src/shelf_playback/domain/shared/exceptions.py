"""Base exception classes for domain-level errors."""

from __future__ import annotations


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class ValidationError(DomainError):
    """Raised when domain validation fails."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field


class EntityNotFoundError(DomainError):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, identifier: str | int, message: str | None = None) -> None:
        msg = message or f"{entity_type} with id '{identifier}' not found"
        super().__init__(msg, code="ENTITY_NOT_FOUND")
        self.entity_type = entity_type
        self.identifier = identifier


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state


class PersistenceError(DomainError):
    """Raised when the persistent store fails to read or write a record."""

    def __init__(self, operation: str, message: str | None = None) -> None:
        msg = message or f"Persistent store failed during '{operation}'"
        super().__init__(msg, code="PERSISTENCE_ERROR")
        self.operation = operation


class MaterializationError(DomainError):
    """Raised by a materializer when a remote-only file cannot be made local."""

    def __init__(self, path: str, message: str | None = None) -> None:
        msg = message or f"Could not materialize '{path}'"
        super().__init__(msg, code="MATERIALIZATION_ERROR")
        self.path = path


class DownloadFailedError(DomainError):
    """Raised by the download monitor when a remote-only book could not be fetched."""

    def __init__(self, book_id: str, reason: str) -> None:
        super().__init__(reason, code="DOWNLOAD_FAILED")
        self.book_id = book_id
        self.reason = reason
