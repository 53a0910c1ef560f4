"""Port interface for the audio playback engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.library.entities import Book

ChangeListener = Callable[[], None]
Unsubscribe = Callable[[], None]


class AudioEngine(ABC):
    """Interface for the engine that actually decodes and plays audio.

    The engine owns its own clock. The session controller only calls the
    commands below, reads the snapshot properties, and listens to the change
    stream. Listeners must be invoked on the event loop thread.
    """

    # ---- Commands ----

    @abstractmethod
    async def play(self, book: Book) -> None:
        """Load a book and start playing it from its saved position."""
        ...

    @abstractmethod
    async def pause(self) -> None: ...

    @abstractmethod
    async def stop(self) -> None: ...

    @abstractmethod
    async def toggle_play_pause(self) -> None: ...

    @abstractmethod
    async def seek(self, time: float) -> None:
        """Move the playhead to ``time`` seconds into the current book."""
        ...

    @abstractmethod
    async def skip_forward(self) -> None: ...

    @abstractmethod
    async def skip_backward(self) -> None: ...

    @abstractmethod
    async def set_speed(self, rate: float) -> None: ...

    # ---- Read-only snapshot ----

    @property
    @abstractmethod
    def current_time(self) -> float: ...

    @property
    @abstractmethod
    def duration(self) -> float:
        """Total duration in seconds, or 0 while still unknown."""
        ...

    @property
    @abstractmethod
    def is_playing(self) -> bool: ...

    @property
    @abstractmethod
    def playback_rate(self) -> float: ...

    # ---- Controller-settable state ----

    @property
    @abstractmethod
    def skip_position_save(self) -> bool: ...

    @skip_position_save.setter
    @abstractmethod
    def skip_position_save(self, value: bool) -> None:
        """When True the engine must not persist playback position."""
        ...

    @abstractmethod
    def report_error(self, message: str) -> None:
        """Show a human-readable playback error to the listener."""
        ...

    # ---- Change notifications ----

    @abstractmethod
    def subscribe(self, listener: ChangeListener) -> Unsubscribe:
        """Register a listener called after every engine state change."""
        ...
