"""Ports consumed by the application layer."""

from shelf_playback.application.interfaces.audio_engine import AudioEngine
from shelf_playback.application.interfaces.media import (
    FileStatusProbe,
    Materializer,
    MetadataExtractor,
)

__all__ = [
    "AudioEngine",
    "FileStatusProbe",
    "Materializer",
    "MetadataExtractor",
]
