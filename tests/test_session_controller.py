"""
Unit Tests for PlaybackSessionController

Tests for:
- Opening local and cloud-only books
- Download supersession, duplicate opens, and failure reporting
- Chapter tracking driven by engine change notifications
- Sleep timer (fixed countdown and end of chapter)
- Discover mode entry, random seek, and exit
- Bookmark operations with and without a current book
- Session shutdown
"""

import asyncio

import pytest
import pytest_asyncio

from fakes import InMemoryBookmarkRepository, StaticLibrary, wait_until
from shelf_playback.application.services.bookmark_service import BookmarkService
from shelf_playback.application.services.download_monitor import CloudDownloadMonitor
from shelf_playback.application.services.session_controller import PlaybackSessionController
from shelf_playback.domain.library.entities import Book, BookMetadata
from shelf_playback.domain.shared.events import (
    BookOpened,
    ChapterChanged,
    DiscoverModeEntered,
    DownloadFailed,
    DownloadFinished,
    DownloadProgressChanged,
    EventBus,
    SessionCleared,
    SleepTimerFired,
)
from shelf_playback.domain.shared.exceptions import PersistenceError, ValidationError


class EventRecorder:
    def __init__(self, bus: EventBus, *event_types) -> None:
        self.events: list = []
        for event_type in event_types:
            bus.subscribe(event_type, self._record)

    async def _record(self, event) -> None:
        self.events.append(event)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def bookmark_repo():
    return InMemoryBookmarkRepository()


@pytest.fixture
def library():
    return StaticLibrary()


@pytest.fixture
def download_monitor(materializer, status_probe, metadata_extractor, session_settings):
    from unittest.mock import AsyncMock

    return CloudDownloadMonitor(
        materializer=materializer,
        status_probe=status_probe,
        metadata_extractor=metadata_extractor,
        book_repository=AsyncMock(),
        poll_interval=session_settings.download_poll_interval_s,
    )


@pytest_asyncio.fixture
async def controller(
    audio_engine,
    metadata_extractor,
    bookmark_repo,
    download_monitor,
    library,
    session_settings,
    event_bus,
):
    session = PlaybackSessionController(
        audio_engine=audio_engine,
        metadata_extractor=metadata_extractor,
        bookmark_service=BookmarkService(bookmark_repository=bookmark_repo),
        download_monitor=download_monitor,
        library=library,
        settings=session_settings,
        event_bus=event_bus,
    )
    session.start()
    yield session
    await session.close()


async def _open_with_chapters(controller, book) -> None:
    await controller.open_book(book)
    await wait_until(lambda: len(controller.chapters) == 4)


# =============================================================================
# Opening books
# =============================================================================


class TestOpenLocalBook:
    async def test_plays_and_loads_chapters_in_background(
        self, controller, audio_engine, metadata_extractor, local_book
    ):
        """Should start playback and fill in chapters once extraction finishes."""
        await _open_with_chapters(controller, local_book)

        assert controller.current_book == local_book
        assert audio_engine.played == [local_book]
        assert metadata_extractor.chapter_calls == [local_book.file_path]
        assert controller.current_chapter_index == 0
        assert controller.downloading_book_id is None

    async def test_book_without_chapter_flag_skips_extraction(
        self, controller, metadata_extractor, local_book
    ):
        book = local_book.model_copy(update={"has_chapters": False})

        await controller.open_book(book)
        await asyncio.sleep(0.02)

        assert metadata_extractor.chapter_calls == []
        assert controller.chapters == ()

    async def test_loads_bookmarks_sorted(self, controller, bookmark_repo, local_book):
        from shelf_playback.domain.library.entities import Bookmark

        for ts in (300.0, 10.0, 120.5):
            await bookmark_repo.add(Bookmark.create(local_book.id, ts, f"at {ts}"))

        await controller.open_book(local_book)

        assert [b.timestamp for b in controller.bookmarks] == [10.0, 120.5, 300.0]

    async def test_publishes_book_opened(self, controller, event_bus, local_book):
        recorder = EventRecorder(event_bus, BookOpened)

        await controller.open_book(local_book)

        assert [e.book_id for e in recorder.events] == [local_book.id]
        assert recorder.events[0].discover_mode is False


class TestOpenCloudBook:
    async def test_download_then_play_refreshed_book(
        self, controller, audio_engine, materializer, metadata_extractor, cloud_book, event_bus
    ):
        """Should materialize first, then play the merged local copy."""
        metadata_extractor.metadata = BookMetadata(title="Real Title", has_chapters=True)
        recorder = EventRecorder(event_bus, DownloadFinished)

        await controller.open_book(cloud_book)

        assert controller.downloading_book_id == cloud_book.id
        assert controller.download_progress == 0.0
        assert audio_engine.played == []

        await wait_until(lambda: materializer.started)
        materializer.release(cloud_book.file_path)
        await wait_until(lambda: audio_engine.played)

        played = audio_engine.played[0]
        assert played.title == "Real Title"
        assert played.is_cloud_only is False
        assert controller.current_book == played
        assert controller.downloading_book_id is None
        assert controller.download_progress == 0.0
        assert len(recorder.events) == 1
        assert audio_engine.errors == []

    async def test_duplicate_open_is_noop(self, controller, materializer, cloud_book):
        """Should not start a second download for the book already downloading."""
        await controller.open_book(cloud_book)
        await controller.open_book(cloud_book)
        await wait_until(lambda: materializer.started)
        await asyncio.sleep(0.02)

        assert materializer.started == [cloud_book.file_path]
        assert controller.downloading_book_id == cloud_book.id

    async def test_second_cloud_book_supersedes_silently(
        self, controller, audio_engine, materializer, cloud_book
    ):
        """Should cancel A's download without a failure report when B is opened."""
        other = Book(id="book-cloud-2", file_path="/library/other.m4b", is_cloud_only=True)

        await controller.open_book(cloud_book)
        await wait_until(lambda: materializer.started)
        await controller.open_book(other)
        await wait_until(lambda: materializer.cancelled)

        assert materializer.cancelled == [cloud_book.file_path]
        assert controller.downloading_book_id == other.id
        assert controller.current_book == other
        assert audio_engine.errors == []

        await wait_until(lambda: len(materializer.started) == 2)
        materializer.release(other.file_path)
        await wait_until(lambda: audio_engine.played)
        assert [b.id for b in audio_engine.played] == [other.id]

    async def test_local_book_supersedes_download(
        self, controller, audio_engine, materializer, cloud_book, local_book
    ):
        await controller.open_book(cloud_book)
        await wait_until(lambda: materializer.started)
        await controller.open_book(local_book)
        await wait_until(lambda: materializer.cancelled)

        assert controller.downloading_book_id is None
        assert controller.download_progress == 0.0
        assert audio_engine.played == [local_book]
        assert audio_engine.errors == []

    async def test_failure_reports_error_and_clears_session(
        self, controller, audio_engine, materializer, cloud_book, event_bus
    ):
        recorder = EventRecorder(event_bus, DownloadFailed)

        await controller.open_book(cloud_book)
        await wait_until(lambda: materializer.started)
        materializer.fail(cloud_book.file_path, "network unreachable")
        await wait_until(lambda: audio_engine.errors)

        assert audio_engine.errors == ["Download failed: network unreachable"]
        assert audio_engine.played == []
        assert controller.current_book is None
        assert controller.downloading_book_id is None
        await wait_until(lambda: recorder.events)
        assert recorder.events[0].reason == "network unreachable"

    async def test_progress_is_reported_while_downloading(
        self, controller, materializer, status_probe, cloud_book
    ):
        status_probe.size = 4096
        status_probe._blocks = [2, 4]

        await controller.open_book(cloud_book)
        await wait_until(lambda: controller.download_progress >= 0.25)

        assert 0.0 < controller.download_progress <= 1.0
        materializer.release(cloud_book.file_path)

    async def test_progress_resets_when_superseded_mid_download(
        self, controller, materializer, status_probe, cloud_book, event_bus
    ):
        """Should climb monotonically for A, then start from zero for B."""
        recorder = EventRecorder(event_bus, DownloadProgressChanged)
        other = Book(id="book-cloud-2", file_path="/library/other.m4b", is_cloud_only=True)
        status_probe.size = 4096
        status_probe._blocks = [2, 4]

        await controller.open_book(cloud_book)
        await wait_until(lambda: controller.download_progress >= 0.5)

        first = [e.progress for e in recorder.events if e.book_id == cloud_book.id]
        assert first == sorted(first)
        assert max(first) == 0.5

        # Nothing lands on disk for B
        status_probe._blocks = [0]
        await controller.open_book(other)

        assert controller.downloading_book_id == other.id
        assert controller.download_progress == 0.0
        await wait_until(lambda: materializer.cancelled)
        await asyncio.sleep(0.03)
        assert controller.download_progress == 0.0

        materializer.release(other.file_path)


# =============================================================================
# Chapter tracking
# =============================================================================


class TestChapterTracking:
    async def test_engine_change_updates_chapter(
        self, controller, audio_engine, local_book, event_bus
    ):
        """Should recompute the chapter index when the engine reports a change."""
        recorder = EventRecorder(event_bus, ChapterChanged)
        await _open_with_chapters(controller, local_book)

        audio_engine.time = 150.0
        audio_engine.notify()
        await wait_until(lambda: controller.current_chapter_index == 1)

        assert controller.current_chapter_name == "Middle"
        await wait_until(lambda: recorder.events)
        assert recorder.events[0].chapter_index == 1

    async def test_notifications_are_handled_in_order(self, controller, audio_engine, local_book):
        await _open_with_chapters(controller, local_book)

        for t in (150.0, 250.0, 350.0):
            audio_engine.time = t
            audio_engine.notify()
        await wait_until(lambda: controller.current_chapter_index == 3)

    async def test_empty_chapter_list_keeps_index(self, controller, audio_engine, local_book):
        book = local_book.model_copy(update={"has_chapters": False})
        await controller.open_book(book)

        audio_engine.time = 500.0
        await controller.update_current_chapter()

        assert controller.current_chapter_index == 0
        assert controller.current_chapter_name is None

    async def test_next_and_previous_chapter(self, controller, audio_engine, local_book):
        await _open_with_chapters(controller, local_book)
        audio_engine.time = 150.0
        await controller.update_current_chapter()

        await controller.next_chapter()
        assert audio_engine.seeks[-1] == 200.0

        audio_engine.time = 201.0
        await controller.update_current_chapter()
        await controller.previous_chapter()
        assert audio_engine.seeks[-1] == 100.0

    async def test_next_chapter_at_end_does_nothing(self, controller, audio_engine, local_book):
        await _open_with_chapters(controller, local_book)
        audio_engine.time = 350.0
        await controller.update_current_chapter()

        await controller.next_chapter()

        assert audio_engine.seeks == []

    async def test_go_to_chapter(self, controller, audio_engine, local_book):
        await _open_with_chapters(controller, local_book)

        await controller.go_to_chapter(controller.chapters[2])

        assert audio_engine.seeks == [200.0]


# =============================================================================
# Sleep timer
# =============================================================================


class TestSleepTimer:
    async def test_fixed_timer_pauses_once(self, controller, audio_engine, local_book, event_bus):
        """One minute at a 10 ms tick should pause exactly once."""
        recorder = EventRecorder(event_bus, SleepTimerFired)
        await controller.open_book(local_book)

        await controller.start_sleep_timer(1)
        assert controller.sleep_timer_remaining_formatted == "1:00"
        await wait_until(lambda: audio_engine.pause_calls == 1, timeout=5.0)
        await asyncio.sleep(0.05)

        assert audio_engine.pause_calls == 1
        assert controller.sleep_timer.is_active is False
        await wait_until(lambda: recorder.events)
        assert recorder.events[0].end_of_chapter is False

    async def test_cancel_stops_countdown(self, controller, audio_engine, local_book):
        await controller.open_book(local_book)
        await controller.start_sleep_timer(1)

        await controller.cancel_sleep_timer()
        await asyncio.sleep(0.05)

        assert controller.sleep_timer.is_active is False
        assert controller.sleep_timer_remaining_formatted == "0:00"
        assert audio_engine.pause_calls == 0

    async def test_rejected_restart_keeps_running_countdown(
        self, controller, audio_engine, local_book
    ):
        """An invalid restart should leave the running countdown ticking to its pause."""
        await controller.open_book(local_book)
        await controller.start_sleep_timer(1)

        with pytest.raises(ValidationError):
            await controller.start_sleep_timer(0)

        assert controller.sleep_timer.is_counting_down
        await wait_until(lambda: controller.sleep_timer.remaining_seconds < 60)
        await wait_until(lambda: audio_engine.pause_calls == 1, timeout=5.0)
        assert controller.sleep_timer.is_active is False

    async def test_end_of_chapter_pauses_at_boundary(
        self, controller, audio_engine, local_book, event_bus
    ):
        """Crossing from chapter 2 into chapter 3 should pause and seek to its start."""
        recorder = EventRecorder(event_bus, SleepTimerFired)
        await _open_with_chapters(controller, local_book)
        audio_engine.time = 250.0
        await controller.update_current_chapter()
        await controller.start_sleep_timer_end_of_chapter()

        audio_engine.time = 300.5
        audio_engine.notify()
        await wait_until(lambda: audio_engine.pause_calls == 1)

        assert audio_engine.seeks[-1] == 300.0
        assert controller.sleep_timer.is_active is False
        await wait_until(lambda: recorder.events)
        assert recorder.events[0].end_of_chapter is True

    async def test_rewind_does_not_pause(self, controller, audio_engine, local_book):
        await _open_with_chapters(controller, local_book)
        audio_engine.time = 250.0
        await controller.update_current_chapter()
        await controller.start_sleep_timer_end_of_chapter()

        audio_engine.time = 150.0
        audio_engine.notify()
        await wait_until(lambda: controller.current_chapter_index == 1)
        await asyncio.sleep(0.02)

        assert audio_engine.pause_calls == 0
        assert controller.sleep_timer.is_end_of_chapter

    async def test_no_check_while_paused(self, controller, audio_engine, local_book):
        await _open_with_chapters(controller, local_book)
        audio_engine.time = 250.0
        await controller.update_current_chapter()
        await controller.start_sleep_timer_end_of_chapter()

        audio_engine.playing = False
        audio_engine.time = 300.5
        audio_engine.notify()
        await wait_until(lambda: controller.current_chapter_index == 3)
        await asyncio.sleep(0.02)

        assert audio_engine.pause_calls == 0
        assert controller.sleep_timer.is_end_of_chapter

    async def test_presets_come_from_settings(self, controller):
        assert controller.sleep_timer_presets == (15, 30, 45, 60)


# =============================================================================
# Discover mode
# =============================================================================


class TestDiscoverMode:
    async def test_picks_visible_book_and_seeks_into_range(
        self, controller, audio_engine, library, event_bus
    ):
        """Should never pick a hidden book and seek within [0.1, 0.8] of duration."""
        visible = Book(id="visible", title="Visible", file_path="/library/v.m4b")
        library.books = [
            Book(id="hidden", file_path="/library/h.m4b", is_hidden=True),
            visible,
        ]
        audio_engine.total = 1000.0
        recorder = EventRecorder(event_bus, DiscoverModeEntered)

        await controller.discover_random_book()
        await wait_until(lambda: audio_engine.seeks)

        assert audio_engine.played == [visible]
        assert controller.is_discover_mode
        assert audio_engine.skip_position_save is True
        assert 100.0 <= audio_engine.seeks[0] <= 800.0
        assert [e.book_id for e in recorder.events] == ["visible"]

    @pytest.mark.parametrize("hidden_only", [True, False])
    async def test_no_eligible_books_is_noop(self, controller, audio_engine, library, hidden_only):
        if hidden_only:
            library.books = [Book(id="hidden", is_hidden=True)]

        await controller.discover_random_book()

        assert audio_engine.played == []
        assert controller.is_discover_mode is False
        assert controller.current_book is None

    async def test_without_library_is_noop(
        self, audio_engine, metadata_extractor, bookmark_repo, download_monitor, session_settings
    ):
        session = PlaybackSessionController(
            audio_engine=audio_engine,
            metadata_extractor=metadata_extractor,
            bookmark_service=BookmarkService(bookmark_repository=bookmark_repo),
            download_monitor=download_monitor,
            settings=session_settings,
            event_bus=EventBus(),
        )

        await session.discover_random_book()

        assert audio_engine.played == []
        assert session.is_discover_mode is False

    async def test_unknown_duration_skips_seek(self, controller, audio_engine, library):
        library.books = [Book(id="only", file_path="/library/o.m4b")]
        audio_engine.total = 0.0

        await controller.discover_random_book()
        await asyncio.sleep(0.05)

        assert audio_engine.played
        assert audio_engine.seeks == []

    async def test_exit_stops_and_clears(self, controller, audio_engine, library, event_bus):
        library.books = [Book(id="only", file_path="/library/o.m4b")]
        recorder = EventRecorder(event_bus, SessionCleared)
        await controller.discover_random_book()

        await controller.exit_discover_mode()

        assert controller.is_discover_mode is False
        assert audio_engine.skip_position_save is False
        assert audio_engine.stop_calls == 1
        assert controller.current_book is None
        assert controller.chapters == ()
        assert controller.bookmarks == ()
        await wait_until(lambda: recorder.events)

    async def test_open_book_leaves_discover_mode(
        self, controller, audio_engine, library, local_book
    ):
        library.books = [Book(id="only", file_path="/library/o.m4b")]
        await controller.discover_random_book()

        await controller.open_book(local_book)

        assert controller.is_discover_mode is False
        assert audio_engine.skip_position_save is False
        assert controller.current_book == local_book

    async def test_library_failure_is_noop(self, controller, audio_engine, library):
        async def broken():
            raise PersistenceError("query", "disk I/O error")

        library.list_books = broken

        await controller.discover_random_book()

        assert audio_engine.played == []


# =============================================================================
# Bookmarks
# =============================================================================


class TestBookmarks:
    async def test_add_without_book_is_silent_noop(self, controller, bookmark_repo):
        assert await controller.add_bookmark("intro") is None
        assert bookmark_repo.items == {}

    async def test_delete_without_book_is_noop(self, controller, bookmark_repo):
        from shelf_playback.domain.library.entities import Bookmark

        stray = Bookmark.create("elsewhere", 5.0, "stray")
        await bookmark_repo.add(stray)

        assert await controller.delete_bookmark(stray) is False
        assert stray.id in bookmark_repo.items

    async def test_add_at_current_position_and_jump(self, controller, audio_engine, local_book):
        await controller.open_book(local_book)
        audio_engine.time = 120.5

        bookmark = await controller.add_bookmark("intro", note="the good part")

        assert bookmark is not None
        assert bookmark.timestamp == 120.5
        assert [b.name for b in controller.bookmarks] == ["intro"]

        await controller.jump_to_bookmark(bookmark)
        assert audio_engine.seeks[-1] == 120.5

    async def test_delete_refreshes_list(self, controller, audio_engine, local_book):
        await controller.open_book(local_book)
        audio_engine.time = 30.0
        first = await controller.add_bookmark("first")
        audio_engine.time = 60.0
        await controller.add_bookmark("second")

        assert await controller.delete_bookmark(first) is True
        assert [b.name for b in controller.bookmarks] == ["second"]


# =============================================================================
# Lifecycle and display
# =============================================================================


class TestLifecycle:
    async def test_close_cancels_download_silently(
        self, controller, audio_engine, materializer, cloud_book
    ):
        await controller.open_book(cloud_book)
        await wait_until(lambda: materializer.started)

        await controller.close()

        assert materializer.cancelled == [cloud_book.file_path]
        assert audio_engine.errors == []
        assert controller.downloading_book_id is None
        assert audio_engine.listener_count == 0

    async def test_speed_label_follows_engine(self, controller, audio_engine):
        await audio_engine.set_speed(1.5)
        assert controller.speed_label == "1.5x"
        await audio_engine.set_speed(1.0)
        assert controller.speed_label == "1x"
        assert 1.0 in controller.speed_presets

