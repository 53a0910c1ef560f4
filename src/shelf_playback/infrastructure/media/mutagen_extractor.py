"""Tag and chapter extraction backed by mutagen and ffprobe."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import TYPE_CHECKING, Any

import mutagen
from mutagen.mp4 import MP4

from shelf_playback.application.interfaces.media import MetadataExtractor
from shelf_playback.domain.library.entities import BookMetadata, ChapterInfo
from shelf_playback.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from ...config.settings import MediaSettings

logger = logging.getLogger(__name__)

MP4_SUFFIXES = (".m4b", ".m4a", ".mp4")
_YEAR_PATTERN = re.compile(r"(\d{4})")

# Easy-tag keys are shared across formats; MP4 atoms need their own names.
_MP4_TAG_KEYS = {
    "title": "\xa9nam",
    "author": "\xa9ART",
    "genre": "\xa9gen",
    "date": "\xa9day",
}
_EASY_TAG_KEYS = {
    "title": "title",
    "author": "artist",
    "genre": "genre",
    "date": "date",
}


def _first_text(tags: Any, key: str) -> str | None:
    if tags is None:
        return None
    value = tags.get(key)
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_year(value: str | None) -> int:
    if not value:
        return 0
    match = _YEAR_PATTERN.search(value)
    return int(match.group(1)) if match else 0


class MutagenMetadataExtractor(MetadataExtractor):
    """Reads tags with mutagen and chapter marks with ``ffprobe -show_chapters``."""

    def __init__(self, settings: MediaSettings) -> None:
        self._ffprobe_path = settings.ffprobe_path
        self._ffprobe_timeout = settings.ffprobe_timeout_s

    async def extract(self, path: str) -> BookMetadata:
        fields = await asyncio.to_thread(self._read_tags_sync, path)
        chapters = await self.extract_chapters(path)
        return BookMetadata(**fields, has_chapters=bool(chapters))

    async def extract_chapters(self, path: str) -> list[ChapterInfo]:
        output = await self._run_ffprobe(path)
        if output is None:
            return []
        return self._parse_chapters(output, path)

    # ── tags ──

    def _read_tags_sync(self, path: str) -> dict[str, Any]:
        try:
            if path.lower().endswith(MP4_SUFFIXES):
                return self._read_mp4(path)
            return self._read_generic(path)
        except (mutagen.MutagenError, OSError) as e:
            logger.warning(LogTemplates.TAGS_READ_FAILED, path, e)
            return {}

    def _read_mp4(self, path: str) -> dict[str, Any]:
        audio = MP4(path)
        tags = audio.tags
        cover: bytes | None = None
        if tags is not None:
            covers = tags.get("covr") or []
            if covers:
                cover = bytes(covers[0])
        return {
            "title": _first_text(tags, _MP4_TAG_KEYS["title"]),
            "author": _first_text(tags, _MP4_TAG_KEYS["author"]),
            "genre": _first_text(tags, _MP4_TAG_KEYS["genre"]),
            "year": _parse_year(_first_text(tags, _MP4_TAG_KEYS["date"])),
            "duration": max(0.0, float(audio.info.length or 0.0)),
            "cover_art_data": cover,
        }

    def _read_generic(self, path: str) -> dict[str, Any]:
        easy = mutagen.File(path, easy=True)
        if easy is None:
            return {}
        tags = easy.tags
        duration = float(getattr(easy.info, "length", 0.0) or 0.0)
        return {
            "title": _first_text(tags, _EASY_TAG_KEYS["title"]),
            "author": _first_text(tags, _EASY_TAG_KEYS["author"]),
            "genre": _first_text(tags, _EASY_TAG_KEYS["genre"]),
            "year": _parse_year(_first_text(tags, _EASY_TAG_KEYS["date"])),
            "duration": max(0.0, duration),
            "cover_art_data": self._read_embedded_picture(path),
        }

    def _read_embedded_picture(self, path: str) -> bytes | None:
        audio = mutagen.File(path)
        if audio is None:
            return None
        pictures = getattr(audio, "pictures", None)
        if pictures:
            return bytes(pictures[0].data)
        tags = audio.tags
        if tags is None or not hasattr(tags, "getall"):
            return None
        frames = tags.getall("APIC")
        return bytes(frames[0].data) if frames else None

    # ── chapters ──

    async def _run_ffprobe(self, path: str) -> bytes | None:
        try:
            process = await asyncio.create_subprocess_exec(
                self._ffprobe_path,
                "-v",
                "quiet",
                "-print_format",
                "json",
                "-show_chapters",
                path,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except FileNotFoundError:
            logger.warning(LogTemplates.FFPROBE_MISSING, self._ffprobe_path)
            return None

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=self._ffprobe_timeout)
        except TimeoutError:
            logger.warning(LogTemplates.FFPROBE_FAILED, path, "timed out")
            return None
        finally:
            # Cancellation and timeouts both leave the child running
            if process.returncode is None:
                process.kill()
                await process.wait()

        if process.returncode != 0:
            logger.warning(
                LogTemplates.FFPROBE_FAILED,
                path,
                ErrorMessages.FFPROBE_FAILED.format(code=process.returncode),
            )
            return None
        return stdout

    def _parse_chapters(self, output: bytes, path: str) -> list[ChapterInfo]:
        try:
            data = json.loads(output or b"{}")
        except json.JSONDecodeError as e:
            logger.warning(LogTemplates.FFPROBE_FAILED, path, e)
            return []

        chapters: list[ChapterInfo] = []
        for raw in data.get("chapters", []):
            try:
                start = max(0.0, float(raw["start_time"]))
            except (KeyError, TypeError, ValueError):
                continue
            title = (raw.get("tags") or {}).get("title") or f"Chapter {len(chapters) + 1}"
            chapters.append(ChapterInfo(start_time=start, title=str(title)))

        chapters.sort(key=lambda c: c.start_time)
        return chapters
