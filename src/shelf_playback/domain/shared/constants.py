"""Centralized constants for playback rules, database schema, and other shared values.

This module provides reusable constants that reduce magic numbers and strings.
"""

from __future__ import annotations


class PlaybackConstants:
    """Fixed playback rules. These are not configurable."""

    # previous_chapter restarts the current chapter once this far into it
    CHAPTER_RESTART_THRESHOLD_SECONDS = 3.0

    # Discover mode seeks into this slice of the total duration
    DISCOVER_MIN_FRACTION = 0.1
    DISCOVER_MAX_FRACTION = 0.8

    SECONDS_PER_MINUTE = 60

    SPEED_PRESETS: tuple[float, ...] = (0.5, 0.75, 1.0, 1.25, 1.5, 1.75, 2.0, 2.5, 3.0)


class DownloadConstants:
    """Filesystem constants used for progress estimation."""

    # POSIX st_blocks is always counted in 512-byte units
    STAT_BLOCK_SIZE = 512
    PROGRESS_COMPLETE = 1.0


class DatabaseTables:
    """Database table names."""

    BOOKS = "books"
    BOOKMARKS = "bookmarks"


class SQLPragmas:
    """SQLite pragma statements applied to every connection."""

    JOURNAL_MODE_WAL = "PRAGMA journal_mode=WAL"
    FOREIGN_KEYS_ON = "PRAGMA foreign_keys=ON"
    BUSY_TIMEOUT = "PRAGMA busy_timeout={timeout}"
