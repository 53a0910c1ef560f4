"""Mapping between playback time and chapter position.

All functions take the chapter list as given by the extractor, sorted
ascending by start time, and only ever scan it linearly.
"""

from __future__ import annotations

from collections.abc import Sequence

from shelf_playback.domain.library.entities import ChapterInfo
from shelf_playback.domain.shared.constants import PlaybackConstants


def chapter_index(time: float, chapters: Sequence[ChapterInfo]) -> int | None:
    """Index of the last chapter whose start is at or before ``time``.

    Falls back to 0 when ``time`` precedes every chapter, and returns None for
    an empty chapter list. Chapters sharing a start time resolve to the later one.
    """
    if not chapters:
        return None
    found = 0
    for index, chapter in enumerate(chapters):
        if chapter.start_time <= time:
            found = index
    return found


def chapter_name(time: float, chapters: Sequence[ChapterInfo]) -> str | None:
    index = chapter_index(time, chapters)
    if index is None:
        return None
    return chapters[index].title


def next_chapter_start(index: int, chapters: Sequence[ChapterInfo]) -> float | None:
    """Start time of the chapter after ``index``, or None at the end of the list."""
    following = index + 1
    if 0 <= following < len(chapters):
        return chapters[following].start_time
    return None


def previous_chapter_start(
    time: float, index: int, chapters: Sequence[ChapterInfo]
) -> float | None:
    """Where "previous chapter" should seek to.

    More than ``CHAPTER_RESTART_THRESHOLD_SECONDS`` into the current chapter
    restarts it; otherwise goes to the previous chapter's start. Returns None
    when there is nowhere to go.
    """
    if 0 <= index < len(chapters):
        current = chapters[index]
        if time - current.start_time > PlaybackConstants.CHAPTER_RESTART_THRESHOLD_SECONDS:
            return current.start_time

    previous = index - 1
    if 0 <= previous < len(chapters):
        return chapters[previous].start_time
    return None
