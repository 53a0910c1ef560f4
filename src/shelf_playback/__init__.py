"""Playback session core for a local audiobook library."""

__version__ = "0.1.0"
