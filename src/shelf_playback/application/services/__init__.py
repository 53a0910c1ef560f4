"""Application services orchestrating the playback session."""

from shelf_playback.application.services.bookmark_service import BookmarkService
from shelf_playback.application.services.download_monitor import CloudDownloadMonitor
from shelf_playback.application.services.session_controller import PlaybackSessionController

__all__ = [
    "BookmarkService",
    "CloudDownloadMonitor",
    "PlaybackSessionController",
]
