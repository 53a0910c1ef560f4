"""
Playback Bounded Context

Sleep timer state machine and playback mode value objects.
"""

from shelf_playback.domain.playback.sleep_timer import SleepTimer
from shelf_playback.domain.playback.value_objects import PlaybackMode, SleepTimerState, speed_label

__all__ = [
    "SleepTimer",
    "SleepTimerState",
    "PlaybackMode",
    "speed_label",
]
