import pytest
import pytest_asyncio

from fakes import FakeAudioEngine, FakeMaterializer, FakeMetadataExtractor, FakeStatusProbe
from shelf_playback.domain.library.entities import Book, ChapterInfo

# ============================================================================
# Event Bus
# ============================================================================


@pytest.fixture(autouse=True)
def fresh_event_bus():
    """Give every test its own global event bus."""
    from shelf_playback.domain.shared.events import reset_event_bus

    reset_event_bus()
    yield
    reset_event_bus()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def in_memory_database():
    """Create an in-memory SQLite database for testing."""
    from shelf_playback.infrastructure.persistence.database import Database

    db = Database(":memory:")
    await db.initialize()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def book_repository(in_memory_database):
    from shelf_playback.infrastructure.persistence.repositories.book_repository import (
        SQLiteBookRepository,
    )

    return SQLiteBookRepository(in_memory_database)


@pytest_asyncio.fixture
async def bookmark_repository(in_memory_database):
    from shelf_playback.infrastructure.persistence.repositories.bookmark_repository import (
        SQLiteBookmarkRepository,
    )

    return SQLiteBookmarkRepository(in_memory_database)


# ============================================================================
# Domain Entity Fixtures
# ============================================================================


@pytest.fixture
def local_book():
    """A fully local book with chapters."""
    return Book(
        id="book-local",
        title="The Local Book",
        author="A. Writer",
        duration=3600.0,
        file_path="/library/local.m4b",
        has_chapters=True,
        metadata_loaded=True,
    )


@pytest.fixture
def cloud_book():
    """A book whose bytes are still in the cloud."""
    return Book(
        id="book-cloud",
        title="Cloud Placeholder",
        file_path="/library/cloud.m4b",
        is_cloud_only=True,
    )


@pytest.fixture
def sample_chapters():
    return [
        ChapterInfo(start_time=0.0, title="Opening"),
        ChapterInfo(start_time=100.0, title="Middle"),
        ChapterInfo(start_time=200.0, title="Climax"),
        ChapterInfo(start_time=300.0, title="Ending"),
    ]


# ============================================================================
# Adapter Fakes
# ============================================================================


@pytest.fixture
def audio_engine():
    return FakeAudioEngine()


@pytest.fixture
def metadata_extractor(sample_chapters):
    return FakeMetadataExtractor(chapters=sample_chapters)


@pytest.fixture
def materializer():
    return FakeMaterializer()


@pytest.fixture
def status_probe():
    return FakeStatusProbe()


@pytest.fixture
def session_settings():
    from shelf_playback.config.settings import SessionSettings

    return SessionSettings(
        download_poll_interval_s=0.01,
        sleep_tick_interval_s=0.01,
        discover_seek_delay_s=0.0,
    )
