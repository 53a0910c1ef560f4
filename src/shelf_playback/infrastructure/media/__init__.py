"""Media file adapters."""

from shelf_playback.infrastructure.media.filesystem import (
    PosixFileStatusProbe,
    ReadThroughMaterializer,
)
from shelf_playback.infrastructure.media.mutagen_extractor import MutagenMetadataExtractor

__all__ = [
    "MutagenMetadataExtractor",
    "PosixFileStatusProbe",
    "ReadThroughMaterializer",
]
