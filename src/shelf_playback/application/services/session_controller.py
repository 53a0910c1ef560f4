"""Playback Session Controller - owns the listening session and orchestrates its parts.

All session state lives on the event loop and is mutated only by this class.
Background work (chapter extraction, downloads, the sleep countdown, the
discover-mode seek) runs as tasks on the same loop; the blocking
materialization primitive is pushed to a worker thread by its adapter.
Engine change notifications are queued and handled one at a time, in order.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ...config.settings import SessionSettings
from ...domain.library.chapters import (
    chapter_index,
    chapter_name,
    next_chapter_start,
    previous_chapter_start,
)
from ...domain.playback.sleep_timer import SleepTimer
from ...domain.playback.value_objects import PlaybackMode, speed_label
from ...domain.shared.constants import PlaybackConstants
from ...domain.shared.events import (
    BookmarksChanged,
    BookOpened,
    ChapterChanged,
    DiscoverModeEntered,
    DiscoverModeExited,
    DomainEvent,
    DownloadFailed,
    DownloadFinished,
    DownloadProgressChanged,
    EventBus,
    SessionCleared,
    SleepTimerFired,
    get_event_bus,
)
from ...domain.shared.exceptions import DomainError, DownloadFailedError
from ...domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from ...domain.library.entities import Book, Bookmark, ChapterInfo
    from ...domain.library.repository import Library
    from ..interfaces.audio_engine import AudioEngine, Unsubscribe
    from ..interfaces.media import MetadataExtractor
    from .bookmark_service import BookmarkService
    from .download_monitor import CloudDownloadMonitor

logger = logging.getLogger(__name__)


@dataclass
class _Download:
    """One in-flight download. ``superseded`` marks a deliberate cancellation."""

    book_id: str
    task: asyncio.Task[None] | None = None
    superseded: bool = False


class PlaybackSessionController:
    """Coordinates opening books, chapters, downloads, sleep timer, and bookmarks."""

    def __init__(
        self,
        *,
        audio_engine: AudioEngine,
        metadata_extractor: MetadataExtractor,
        bookmark_service: BookmarkService,
        download_monitor: CloudDownloadMonitor,
        library: Library | None = None,
        settings: SessionSettings | None = None,
        event_bus: EventBus | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._audio_engine = audio_engine
        self._metadata_extractor = metadata_extractor
        self._bookmarks = bookmark_service
        self._download_monitor = download_monitor
        # Non-owning lookup handle; discover mode is unavailable without it
        self._library = library
        self._settings = settings or SessionSettings()
        self._event_bus = event_bus or get_event_bus()
        self._rng = rng or random.Random()

        self._current_book: Book | None = None
        self._chapters: tuple[ChapterInfo, ...] = ()
        self._current_chapter_index = 0
        self._mode = PlaybackMode.NORMAL

        # Transient download state, never persisted
        self._download: _Download | None = None
        self._downloading_book_id: str | None = None
        self._download_progress = 0.0

        self._sleep_timer = SleepTimer()

        self._changes: asyncio.Queue[None] = asyncio.Queue()
        self._unsubscribe: Unsubscribe | None = None
        self._consumer_task: asyncio.Task[None] | None = None
        self._chapter_task: asyncio.Task[None] | None = None
        self._sleep_task: asyncio.Task[None] | None = None
        self._discover_seek_task: asyncio.Task[None] | None = None

    # === Lifecycle ===

    def start(self) -> None:
        """Subscribe to the engine's change stream and start handling it."""
        if self._consumer_task is not None:
            return
        self._unsubscribe = self._audio_engine.subscribe(self._on_engine_changed)
        self._consumer_task = asyncio.create_task(self._consume_engine_changes())
        logger.info(LogTemplates.SESSION_STARTED)

    async def close(self) -> None:
        """Stop listening and cancel every background task this session owns."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        if self._download is not None:
            self._download.superseded = True

        tasks = [
            self._consumer_task,
            self._chapter_task,
            self._sleep_task,
            self._discover_seek_task,
            self._download.task if self._download else None,
        ]
        pending = [t for t in tasks if t is not None and not t.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        self._consumer_task = None
        self._sleep_timer.cancel()
        self._reset_session()
        logger.info(LogTemplates.SESSION_CLOSED)

    # === Read-only state ===

    @property
    def audio_engine(self) -> AudioEngine:
        return self._audio_engine

    @property
    def current_book(self) -> Book | None:
        return self._current_book

    @property
    def chapters(self) -> tuple[ChapterInfo, ...]:
        return self._chapters

    @property
    def current_chapter_index(self) -> int:
        return self._current_chapter_index

    @property
    def current_chapter_name(self) -> str | None:
        return chapter_name(self._audio_engine.current_time, self._chapters)

    @property
    def bookmarks(self) -> tuple[Bookmark, ...]:
        return self._bookmarks.bookmarks

    @property
    def is_discover_mode(self) -> bool:
        return self._mode == PlaybackMode.DISCOVER

    @property
    def downloading_book_id(self) -> str | None:
        return self._downloading_book_id

    @property
    def download_progress(self) -> float:
        return self._download_progress

    @property
    def sleep_timer(self) -> SleepTimer:
        return self._sleep_timer

    @property
    def sleep_timer_remaining_formatted(self) -> str:
        return self._sleep_timer.remaining_formatted

    @property
    def sleep_timer_presets(self) -> tuple[int, ...]:
        return self._settings.sleep_timer_presets

    @property
    def speed_label(self) -> str:
        return speed_label(self._audio_engine.playback_rate)

    @property
    def speed_presets(self) -> tuple[float, ...]:
        return PlaybackConstants.SPEED_PRESETS

    # === Opening books ===

    async def open_book(self, book: Book) -> None:
        """Open a book for playback, downloading it first when it is remote-only."""
        if self._downloading_book_id == book.id:
            logger.debug(LogTemplates.BOOK_ALREADY_DOWNLOADING, book.id)
            return

        if self.is_discover_mode:
            self._leave_discover_mode()

        logger.info(LogTemplates.BOOK_OPENING, book.id, book.is_cloud_only)
        self._current_book = book

        if book.is_cloud_only:
            await self._start_download_and_play(book)
            await self._publish(BookOpened(book_id=book.id, title=book.title))
            return

        self._supersede_download()
        await self._publish(BookOpened(book_id=book.id, title=book.title))
        await self._play_local(book)

    async def _play_local(self, book: Book) -> None:
        logger.info(LogTemplates.BOOK_PLAYING_LOCAL, book.id)
        self._load_chapters(book)
        await self._load_bookmarks(book)
        await self._audio_engine.play(book)

    def _load_chapters(self, book: Book) -> None:
        """Start chapter extraction in the background; the list fills in later."""
        if self._chapter_task is not None and not self._chapter_task.done():
            self._chapter_task.cancel()
        self._chapter_task = None
        self._chapters = ()
        self._current_chapter_index = 0

        if book.has_chapters and book.file_path:
            self._chapter_task = asyncio.create_task(self._fetch_chapters(book, book.file_path))

    async def _fetch_chapters(self, book: Book, path: str) -> None:
        try:
            chapters = await self._metadata_extractor.extract_chapters(path)
        except Exception:
            logger.exception(LogTemplates.CHAPTERS_LOAD_FAILED, book.id)
            return

        if self._current_book is None or self._current_book.id != book.id:
            return
        self._chapters = tuple(chapters)
        logger.debug(LogTemplates.CHAPTERS_LOADED, len(self._chapters), book.id)

    async def _load_bookmarks(self, book: Book) -> None:
        if await self._bookmarks.load(book):
            await self._publish(BookmarksChanged(book_id=book.id, count=len(self.bookmarks)))

    # === Downloads ===

    async def _start_download_and_play(self, book: Book) -> None:
        # Download state must be in place before the first suspension point
        self._downloading_book_id = book.id
        self._download_progress = 0.0
        self._supersede_download(replacement_id=book.id)

        download = _Download(book_id=book.id)
        download.task = asyncio.create_task(self._download_and_play(book, download))
        self._download = download
        await self._publish(DownloadProgressChanged(book_id=book.id, progress=0.0))

    def _supersede_download(self, replacement_id: str | None = None) -> None:
        """Cancel the in-flight download, if any, without reporting a failure."""
        previous = self._download
        if previous is None or previous.task is None or previous.task.done():
            return
        logger.info(LogTemplates.DOWNLOAD_SUPERSEDED, previous.book_id, replacement_id)
        previous.superseded = True
        previous.task.cancel()
        if self._download is previous and replacement_id is None:
            self._clear_download_state(previous)

    async def _download_and_play(self, book: Book, download: _Download) -> None:
        async def on_progress(progress: float) -> None:
            if self._download is not download:
                return
            self._download_progress = max(self._download_progress, progress)
            await self._publish(
                DownloadProgressChanged(book_id=book.id, progress=self._download_progress)
            )

        try:
            refreshed = await self._download_monitor.download(book, on_progress)
        except asyncio.CancelledError:
            logger.info(LogTemplates.DOWNLOAD_CANCELLED, book.id, download.superseded)
            if not download.superseded:
                self._fail_download(book, ErrorMessages.DOWNLOAD_CANCELLED)
            self._clear_download_state(download)
            raise
        except DownloadFailedError as e:
            self._fail_download(book, e.reason)
            self._clear_download_state(download)
            await self._publish(DownloadFailed(book_id=book.id, reason=e.reason))
            return

        self._clear_download_state(download)
        await self._publish(DownloadFinished(book_id=book.id))

        if self._current_book is None or self._current_book.id != book.id:
            return
        self._current_book = refreshed
        await self._play_local(refreshed)

    def _fail_download(self, book: Book, reason: str) -> None:
        logger.warning(LogTemplates.DOWNLOAD_FAILED, book.id, reason)
        self._audio_engine.report_error(ErrorMessages.DOWNLOAD_FAILED.format(reason=reason))
        if self._current_book is not None and self._current_book.id == book.id:
            self._reset_session()

    def _clear_download_state(self, download: _Download) -> None:
        if self._download is not download:
            return
        self._download = None
        self._downloading_book_id = None
        self._download_progress = 0.0

    # === Engine change notifications ===

    def _on_engine_changed(self) -> None:
        self._changes.put_nowait(None)

    async def _consume_engine_changes(self) -> None:
        while True:
            await self._changes.get()
            try:
                await self._handle_engine_change()
            except Exception:
                logger.exception(LogTemplates.ENGINE_CHANGE_FAILED)
            finally:
                self._changes.task_done()

    async def _handle_engine_change(self) -> None:
        # The sleep check must see the freshly computed chapter index
        await self.update_current_chapter()
        await self._check_end_of_chapter_sleep_timer()

    async def update_current_chapter(self) -> None:
        """Recompute the current chapter index from the engine's position."""
        index = chapter_index(self._audio_engine.current_time, self._chapters)
        if index is None or index == self._current_chapter_index:
            return
        self._current_chapter_index = index
        title = self._chapters[index].title
        logger.debug(LogTemplates.CHAPTER_CHANGED, index, title)
        book_id = self._current_book.id if self._current_book else ""
        await self._publish(ChapterChanged(book_id=book_id, chapter_index=index, chapter_title=title))

    # === Chapter navigation ===

    async def go_to_chapter(self, chapter: ChapterInfo) -> None:
        await self._audio_engine.seek(chapter.start_time)

    async def next_chapter(self) -> None:
        target = next_chapter_start(self._current_chapter_index, self._chapters)
        if target is not None:
            await self._audio_engine.seek(target)

    async def previous_chapter(self) -> None:
        """Restart the current chapter, or go back one when near its start."""
        target = previous_chapter_start(
            self._audio_engine.current_time, self._current_chapter_index, self._chapters
        )
        if target is not None:
            await self._audio_engine.seek(target)

    # === Sleep timer ===

    async def start_sleep_timer(self, minutes: int) -> None:
        """Pause playback after ``minutes`` minutes."""
        self._sleep_timer.start_fixed(minutes)
        self._cancel_sleep_task()
        self._sleep_task = asyncio.create_task(self._run_sleep_countdown())
        logger.info(LogTemplates.SLEEP_TIMER_STARTED, minutes)

    async def start_sleep_timer_end_of_chapter(self) -> None:
        """Pause playback when it crosses into the next chapter."""
        self._cancel_sleep_task()
        index = chapter_index(self._audio_engine.current_time, self._chapters)
        self._sleep_timer.start_end_of_chapter(index)
        logger.info(LogTemplates.SLEEP_TIMER_END_OF_CHAPTER, index if index is not None else -1)

    async def cancel_sleep_timer(self) -> None:
        self._cancel_sleep_task()
        self._sleep_timer.cancel()
        logger.info(LogTemplates.SLEEP_TIMER_CANCELLED)

    def _cancel_sleep_task(self) -> None:
        if self._sleep_task is not None and not self._sleep_task.done():
            self._sleep_task.cancel()
        self._sleep_task = None

    async def _run_sleep_countdown(self) -> None:
        while self._sleep_timer.is_counting_down:
            await asyncio.sleep(self._settings.sleep_tick_interval_s)
            if self._sleep_timer.tick():
                logger.info(LogTemplates.SLEEP_TIMER_FIRED, "countdown")
                await self._audio_engine.pause()
                await self._publish_sleep_fired(end_of_chapter=False)

    async def _check_end_of_chapter_sleep_timer(self) -> None:
        if (
            not self._sleep_timer.is_end_of_chapter
            or not self._chapters
            or not self._audio_engine.is_playing
        ):
            return

        index = self._current_chapter_index
        if self._sleep_timer.check_chapter(index):
            logger.info(LogTemplates.SLEEP_TIMER_FIRED, "end of chapter")
            await self._audio_engine.pause()
            await self._audio_engine.seek(self._chapters[index].start_time)
            await self._publish_sleep_fired(end_of_chapter=True)

    async def _publish_sleep_fired(self, *, end_of_chapter: bool) -> None:
        await self._publish(
            SleepTimerFired(
                book_id=self._current_book.id if self._current_book else "",
                end_of_chapter=end_of_chapter,
                position=max(0.0, self._audio_engine.current_time),
            )
        )

    # === Discover mode ===

    async def discover_random_book(self) -> None:
        """Play a random visible book from a random point 10-80% of the way in."""
        if self._library is None:
            logger.debug(LogTemplates.DISCOVER_NO_LIBRARY)
            return

        try:
            books = await self._library.list_books()
        except DomainError as e:
            logger.warning(LogTemplates.DISCOVER_LIBRARY_FAILED, e.message)
            return

        eligible = [b for b in books if not b.is_hidden]
        if not eligible:
            logger.info(LogTemplates.DISCOVER_NO_ELIGIBLE)
            return

        book = self._rng.choice(eligible)
        logger.info(LogTemplates.DISCOVER_STARTED, book.id)

        self._supersede_download()
        self._cancel_discover_seek()
        self._mode = PlaybackMode.DISCOVER
        self._audio_engine.skip_position_save = True
        self._current_book = book
        await self._publish(BookOpened(book_id=book.id, title=book.title, discover_mode=True))

        self._load_chapters(book)
        await self._load_bookmarks(book)
        await self._audio_engine.play(book)
        await self._publish(DiscoverModeEntered(book_id=book.id))

        self._discover_seek_task = asyncio.create_task(self._seek_to_random_position(book))

    async def _seek_to_random_position(self, book: Book) -> None:
        await asyncio.sleep(self._settings.discover_seek_delay_s)
        if not self.is_discover_mode or self._current_book is None or self._current_book.id != book.id:
            return

        duration = self._audio_engine.duration
        if duration <= 0:
            logger.info(LogTemplates.DISCOVER_DURATION_UNKNOWN)
            return

        position = self._rng.uniform(
            duration * PlaybackConstants.DISCOVER_MIN_FRACTION,
            duration * PlaybackConstants.DISCOVER_MAX_FRACTION,
        )
        logger.info(LogTemplates.DISCOVER_SEEK, position, duration)
        await self._audio_engine.seek(position)

    async def exit_discover_mode(self) -> None:
        """Leave discover mode, stop playback, and clear the session."""
        self._leave_discover_mode()
        await self._audio_engine.stop()
        self._reset_session()
        logger.info(LogTemplates.DISCOVER_EXITED)
        await self._publish(DiscoverModeExited())
        await self._publish(SessionCleared(reason="discover mode exited"))

    def _leave_discover_mode(self) -> None:
        self._cancel_discover_seek()
        self._mode = PlaybackMode.NORMAL
        self._audio_engine.skip_position_save = False

    def _cancel_discover_seek(self) -> None:
        if self._discover_seek_task is not None and not self._discover_seek_task.done():
            self._discover_seek_task.cancel()
        self._discover_seek_task = None

    # === Bookmarks ===

    async def add_bookmark(self, name: str, note: str | None = None) -> Bookmark | None:
        """Bookmark the current position. Does nothing without a current book."""
        book = self._current_book
        if book is None:
            return None
        bookmark = await self._bookmarks.add(
            book, timestamp=self._audio_engine.current_time, name=name, note=note
        )
        if bookmark is not None:
            await self._publish(BookmarksChanged(book_id=book.id, count=len(self.bookmarks)))
        return bookmark

    async def delete_bookmark(self, bookmark: Bookmark) -> bool:
        book = self._current_book
        if book is None:
            return False
        deleted = await self._bookmarks.delete(book, bookmark)
        if deleted:
            await self._publish(BookmarksChanged(book_id=book.id, count=len(self.bookmarks)))
        return deleted

    async def jump_to_bookmark(self, bookmark: Bookmark) -> None:
        await self._audio_engine.seek(bookmark.timestamp)

    # === Helpers ===

    def _reset_session(self) -> None:
        if self._chapter_task is not None and not self._chapter_task.done():
            self._chapter_task.cancel()
        self._chapter_task = None
        self._current_book = None
        self._chapters = ()
        self._current_chapter_index = 0
        self._bookmarks.clear()

    async def _publish(self, event: DomainEvent) -> None:
        await self._event_bus.publish(event)
