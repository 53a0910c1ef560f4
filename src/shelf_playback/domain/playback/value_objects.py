"""Immutable value objects for the playback bounded context."""

from __future__ import annotations

from enum import Enum


class SleepTimerState(Enum):
    """Sleep timer state with enforced transitions.

    State transitions:
    - IDLE -> COUNTING_DOWN (start a fixed timer)
    - IDLE -> END_OF_CHAPTER (arm for the next chapter boundary)
    - COUNTING_DOWN -> IDLE (cancel, or countdown reached zero)
    - END_OF_CHAPTER -> IDLE (cancel, or boundary crossed)

    Restarting a running timer always goes through IDLE first.
    """

    IDLE = "idle"
    COUNTING_DOWN = "counting_down"
    END_OF_CHAPTER = "end_of_chapter"

    def can_transition_to(self, target: SleepTimerState) -> bool:
        """Check if transition to target state is valid."""
        valid_transitions = {
            SleepTimerState.IDLE: {
                SleepTimerState.IDLE,
                SleepTimerState.COUNTING_DOWN,
                SleepTimerState.END_OF_CHAPTER,
            },
            SleepTimerState.COUNTING_DOWN: {SleepTimerState.IDLE},
            SleepTimerState.END_OF_CHAPTER: {SleepTimerState.IDLE},
        }
        return target in valid_transitions.get(self, set())

    @property
    def is_active(self) -> bool:
        return self != SleepTimerState.IDLE


class PlaybackMode(Enum):
    """Whether the session is regular listening or discover mode."""

    NORMAL = "normal"
    DISCOVER = "discover"  # random book, random position, no position saving


def speed_label(rate: float) -> str:
    """Render a playback rate for display: ``1x``, ``1.5x``, ``0.75x``."""
    if rate == int(rate):
        return f"{int(rate)}x"
    return f"{rate:.2g}x"
