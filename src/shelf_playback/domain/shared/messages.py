"""Centralized message constants for error messages, validation, and user feedback."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Time Validation Errors
    TIMEZONE_REQUIRED_UTC_DATETIME = "UtcDateTime requires a timezone-aware datetime"
    INVALID_SLEEP_MINUTES = "Sleep timer minutes must be positive"

    # Download Errors (surfaced on the audio engine's error surface)
    DOWNLOAD_FAILED = "Download failed: {reason}"
    DOWNLOAD_NO_FILE_PATH = "Book has no file path"
    DOWNLOAD_CANCELLED = "Download was cancelled"

    # Media Errors
    FFPROBE_FAILED = "ffprobe exited with status {code}"
    FILE_NOT_FOUND = "File not found: {path}"

    # Configuration Errors
    INVALID_DATABASE_URL = "Database URL must start with sqlite://"
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"
    INVALID_SLEEP_PRESETS = "Sleep timer presets must be positive minutes"


class LogTemplates:
    """Log message templates for structured logging.

    Use these with logger.info(), logger.error(), etc. and pass values as parameters
    for proper log formatting and structured logging support.
    """

    # Database Lifecycle
    DATABASE_INITIALIZED = "Database initialized at %s"
    DATABASE_CLOSED = "Database manager closed"

    # Repository Operations
    BOOK_SAVED = "Saved book %s"
    BOOK_UPDATED = "Updated metadata for book %s"
    BOOKMARK_ADDED = "Added bookmark %s to book %s at %.1fs"
    BOOKMARK_DELETED = "Deleted bookmark %s from book %s"
    BOOKMARKS_LOADED = "Loaded %d bookmarks for book %s"
    BOOKMARK_ADD_FAILED = "Failed to add bookmark to book %s: %s"
    BOOKMARK_DELETE_FAILED = "Failed to delete bookmark %s: %s"
    BOOKMARK_LOAD_FAILED = "Failed to load bookmarks for book %s: %s"

    # Session Operations
    SESSION_STARTED = "Playback session started"
    SESSION_CLOSED = "Playback session closed"
    BOOK_OPENING = "Opening book %s (cloud_only=%s)"
    BOOK_ALREADY_DOWNLOADING = "Book %s is already downloading, ignoring open request"
    BOOK_PLAYING_LOCAL = "Playing local book %s"
    CHAPTERS_LOADED = "Loaded %d chapters for book %s"
    CHAPTERS_LOAD_FAILED = "Failed to load chapters for book %s"
    CHAPTER_CHANGED = "Chapter changed to %d (%s)"
    ENGINE_CHANGE_FAILED = "Error handling engine change notification"

    # Discover Mode
    DISCOVER_NO_LIBRARY = "Discover mode requested without a library"
    DISCOVER_LIBRARY_FAILED = "Could not list library for discover mode: %s"
    DISCOVER_NO_ELIGIBLE = "Discover mode found no eligible books"
    DISCOVER_STARTED = "Discover mode picked book %s"
    DISCOVER_SEEK = "Discover mode seeking to %.1fs of %.1fs"
    DISCOVER_DURATION_UNKNOWN = "Duration unknown after grace period, skipping discover seek"
    DISCOVER_EXITED = "Discover mode exited"

    # Sleep Timer
    SLEEP_TIMER_STARTED = "Sleep timer started for %d minutes"
    SLEEP_TIMER_END_OF_CHAPTER = "Sleep timer armed for end of chapter %d"
    SLEEP_TIMER_CANCELLED = "Sleep timer cancelled"
    SLEEP_TIMER_FIRED = "Sleep timer fired (%s), pausing playback"

    # Download Monitor
    DOWNLOAD_STARTED = "Starting download of book %s (%d bytes reported)"
    DOWNLOAD_SIZE_UNKNOWN = "Reported size unavailable for %s, progress will not be reported"
    DOWNLOAD_SUPERSEDED = "Cancelling download of book %s in favour of %s"
    DOWNLOAD_POLL_SKIPPED = "Status read failed for %s, skipping progress tick"
    DOWNLOAD_POLL_COMPLETE = "Allocated bytes cover %s, poll loop done"
    DOWNLOAD_COMPLETED = "Download of book %s completed"
    DOWNLOAD_FAILED = "Download of book %s failed: %s"
    DOWNLOAD_CANCELLED = "Download of book %s cancelled (superseded=%s)"
    DOWNLOAD_SAVE_FAILED = "Failed to persist refreshed metadata for book %s: %s"
    DOWNLOAD_METADATA_FAILED = "Failed to re-extract metadata for %s"

    # Media Adapters
    MATERIALIZE_STARTED = "Materializing %s"
    MATERIALIZE_DONE = "Materialized %s (%d bytes read)"
    TAGS_READ_FAILED = "Could not read tags from %s: %r"
    FFPROBE_MISSING = "ffprobe not found at %s, chapter support disabled"
    FFPROBE_FAILED = "ffprobe failed for %s: %s"

    # Application Lifecycle
    APP_STARTING = "Initializing playback store (environment=%s)"
    APP_READY = "Store ready: %d books, %d bookmarks"
    APP_FATAL_ERROR = "Fatal error: %s"
