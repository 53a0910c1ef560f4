"""Domain event bus for publishing and subscribing to events.

The playback session controller publishes its own state changes here. This
stream is independent of the audio engine's change notifications.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from shelf_playback.domain.shared.datetime_utils import utcnow
from shelf_playback.domain.shared.types import (
    NonEmptyStr,
    NonNegativeFloat,
    NonNegativeInt,
    UnitInterval,
    UtcDatetimeField,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="DomainEvent")
EventHandler = Callable[[T], Awaitable[None]]


class DomainEvent(BaseModel):
    """Base class for all domain events."""

    model_config = ConfigDict(frozen=True)

    event_id: NonEmptyStr = Field(default_factory=lambda: str(uuid4()))
    occurred_at: UtcDatetimeField = Field(default_factory=utcnow)


# === Session Events ===


class BookOpened(DomainEvent):
    book_id: str = ""
    title: str = ""
    discover_mode: bool = False


class ChapterChanged(DomainEvent):
    book_id: str = ""
    chapter_index: NonNegativeInt = 0
    chapter_title: str = ""


class SessionCleared(DomainEvent):
    reason: str = ""


# === Discover Events ===


class DiscoverModeEntered(DomainEvent):
    book_id: str = ""


class DiscoverModeExited(DomainEvent):
    pass


# === Download Events ===


class DownloadProgressChanged(DomainEvent):
    book_id: str = ""
    progress: UnitInterval = 0.0


class DownloadFinished(DomainEvent):
    book_id: str = ""


class DownloadFailed(DomainEvent):
    book_id: str = ""
    reason: str = ""


# === Sleep Timer Events ===


class SleepTimerFired(DomainEvent):
    book_id: str = ""
    end_of_chapter: bool = False
    position: NonNegativeFloat = 0.0


# === Bookmark Events ===


class BookmarksChanged(DomainEvent):
    book_id: str = ""
    count: NonNegativeInt = 0


# === Event Bus ===


class EventBus:
    """In-memory pub/sub event bus for domain events.

    Handlers are called concurrently. Exceptions in handlers are logged
    but do not prevent other handlers from running.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[EventHandler[Any]]] = defaultdict(list)

    def subscribe(self, event_type: type[T], handler: EventHandler[T]) -> None:
        self._handlers[event_type].append(handler)
        logger.debug("Subscribed handler to: %s", event_type.__name__)

    def unsubscribe(self, event_type: type[T], handler: EventHandler[T]) -> None:
        handlers = self._handlers[event_type]
        if handler in handlers:
            handlers.remove(handler)
            logger.debug("Unsubscribed handler from %s", event_type.__name__)

    async def publish(self, event: DomainEvent) -> None:
        event_type = type(event)
        handlers = self._handlers.get(event_type, [])

        if not handlers:
            logger.debug("No handlers for %s", event_type.__name__)
            return

        logger.debug("Publishing %s to %d handlers", event_type.__name__, len(handlers))

        async def safe_call(handler: EventHandler[Any]) -> None:
            try:
                await handler(event)
            except Exception as e:
                logger.exception("Error in handler for %s: %s", event_type.__name__, e)

        async with asyncio.TaskGroup() as tg:
            for handler in list(handlers):
                tg.create_task(safe_call(handler))

    def clear(self) -> None:
        """Remove all handlers."""
        self._handlers.clear()
        logger.debug("Cleared all event handlers")


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get or create the global event bus singleton."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Reset the global event bus (for testing)."""
    global _event_bus
    if _event_bus is not None:
        _event_bus.clear()
    _event_bus = None
