"""Configuration and dependency wiring."""

from shelf_playback.config.settings import Settings, clear_settings_cache, get_settings

__all__ = ["Settings", "clear_settings_cache", "get_settings"]
