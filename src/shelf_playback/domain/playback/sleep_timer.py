"""Sleep timer state machine.

The timer itself never touches the audio engine: ``tick`` and
``check_chapter`` return True exactly when playback should pause, and the
session controller acts on that signal.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from shelf_playback.domain.playback.value_objects import SleepTimerState
from shelf_playback.domain.shared.constants import PlaybackConstants
from shelf_playback.domain.shared.datetime_utils import format_clock
from shelf_playback.domain.shared.exceptions import InvalidOperationError, ValidationError
from shelf_playback.domain.shared.messages import ErrorMessages
from shelf_playback.domain.shared.types import NonNegativeInt


class SleepTimer(BaseModel):
    """Idle, counting down once per second, or armed for the next chapter boundary."""

    model_config = ConfigDict(strict=True)

    state: SleepTimerState = SleepTimerState.IDLE
    remaining_seconds: NonNegativeInt = 0

    # Chapter index seen at the last end-of-chapter check
    chapter_index: NonNegativeInt | None = None

    @property
    def is_active(self) -> bool:
        return self.state.is_active

    @property
    def is_end_of_chapter(self) -> bool:
        return self.state == SleepTimerState.END_OF_CHAPTER

    @property
    def is_counting_down(self) -> bool:
        return self.state == SleepTimerState.COUNTING_DOWN

    @property
    def remaining_formatted(self) -> str:
        """Remaining time as ``M:SS``; minutes are never split into hours."""
        return format_clock(self.remaining_seconds)

    def _transition_to(self, new_state: SleepTimerState) -> None:
        if not self.state.can_transition_to(new_state):
            raise InvalidOperationError(
                operation=f"transition to {new_state.value}",
                current_state=self.state.value,
            )
        self.state = new_state

    def start_fixed(self, minutes: int) -> None:
        if minutes <= 0:
            raise ValidationError(ErrorMessages.INVALID_SLEEP_MINUTES, field="minutes")
        self.cancel()
        self._transition_to(SleepTimerState.COUNTING_DOWN)
        self.remaining_seconds = minutes * PlaybackConstants.SECONDS_PER_MINUTE

    def start_end_of_chapter(self, current_index: int | None) -> None:
        self.cancel()
        self._transition_to(SleepTimerState.END_OF_CHAPTER)
        self.chapter_index = current_index

    def cancel(self) -> None:
        self._transition_to(SleepTimerState.IDLE)
        self.remaining_seconds = 0
        self.chapter_index = None

    def tick(self) -> bool:
        """Advance the countdown by one second.

        Returns True once, on the tick that reaches zero, after which the
        timer is idle. Ticks outside the countdown state do nothing.
        """
        if not self.is_counting_down:
            return False
        self.remaining_seconds = max(0, self.remaining_seconds - 1)
        if self.remaining_seconds == 0:
            self.cancel()
            return True
        return False

    def check_chapter(self, index: int | None) -> bool:
        """Evaluate the end-of-chapter condition against a fresh chapter index.

        Returns True, and goes idle, when playback has moved forward into a
        later chapter than the one seen at the last check. Moving backward only
        updates the recorded index.
        """
        if not self.is_end_of_chapter or index is None:
            return False
        recorded = self.chapter_index
        if recorded is None:
            self.chapter_index = index
            return False
        if index > recorded:
            self.cancel()
            return True
        self.chapter_index = index
        return False
