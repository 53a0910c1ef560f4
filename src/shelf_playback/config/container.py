"""Dependency Injection Container

Manages the application's dependency graph, providing lazy initialization
and lifecycle management for the store, media adapters, and services.
Components are created on-demand and cached for reuse. The audio engine is
supplied by the host application, so session controllers are built per engine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from ..application.interfaces.audio_engine import AudioEngine
    from ..application.interfaces.media import FileStatusProbe, Materializer, MetadataExtractor
    from ..application.services.bookmark_service import BookmarkService
    from ..application.services.download_monitor import CloudDownloadMonitor
    from ..application.services.session_controller import PlaybackSessionController
    from ..domain.library.repository import BookmarkRepository, BookRepository
    from ..domain.shared.events import EventBus
    from ..infrastructure.persistence.database import Database
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    Components are lazily initialized when first accessed.
    """

    settings: Settings
    event_bus: EventBus | None = None

    # Persistence layer
    _database: Database | None = None
    _book_repository: BookRepository | None = None
    _bookmark_repository: BookmarkRepository | None = None

    # Media adapters
    _metadata_extractor: MetadataExtractor | None = None
    _status_probe: FileStatusProbe | None = None
    _materializer: Materializer | None = None

    # Application services
    _bookmark_service: BookmarkService | None = None
    _download_monitor: CloudDownloadMonitor | None = None

    _controllers: list[PlaybackSessionController] = field(default_factory=list)

    # === Database ===

    @property
    def database(self) -> Database:
        """Get the database connection manager."""
        if self._database is None:
            from ..infrastructure.persistence.database import Database

            self._database = Database(self.settings.database.url, settings=self.settings.database)
        return self._database

    # === Repositories ===

    @property
    def book_repository(self) -> BookRepository:
        """Get the book repository (also the library used by discover mode)."""
        if self._book_repository is None:
            from ..infrastructure.persistence.repositories.book_repository import (
                SQLiteBookRepository,
            )

            self._book_repository = SQLiteBookRepository(self.database)
        return self._book_repository

    @property
    def bookmark_repository(self) -> BookmarkRepository:
        if self._bookmark_repository is None:
            from ..infrastructure.persistence.repositories.bookmark_repository import (
                SQLiteBookmarkRepository,
            )

            self._bookmark_repository = SQLiteBookmarkRepository(self.database)
        return self._bookmark_repository

    # === Media Adapters ===

    @property
    def metadata_extractor(self) -> MetadataExtractor:
        if self._metadata_extractor is None:
            from ..infrastructure.media.mutagen_extractor import MutagenMetadataExtractor

            self._metadata_extractor = MutagenMetadataExtractor(self.settings.media)
        return self._metadata_extractor

    @property
    def status_probe(self) -> FileStatusProbe:
        if self._status_probe is None:
            from ..infrastructure.media.filesystem import PosixFileStatusProbe

            self._status_probe = PosixFileStatusProbe()
        return self._status_probe

    @property
    def materializer(self) -> Materializer:
        if self._materializer is None:
            from ..infrastructure.media.filesystem import ReadThroughMaterializer

            self._materializer = ReadThroughMaterializer(self.settings.media)
        return self._materializer

    # === Application Services ===

    @property
    def bookmark_service(self) -> BookmarkService:
        """Get the bookmark application service."""
        if self._bookmark_service is None:
            from ..application.services.bookmark_service import BookmarkService

            self._bookmark_service = BookmarkService(bookmark_repository=self.bookmark_repository)
        return self._bookmark_service

    @property
    def download_monitor(self) -> CloudDownloadMonitor:
        """Get the cloud download monitor."""
        if self._download_monitor is None:
            from ..application.services.download_monitor import CloudDownloadMonitor

            self._download_monitor = CloudDownloadMonitor(
                materializer=self.materializer,
                status_probe=self.status_probe,
                metadata_extractor=self.metadata_extractor,
                book_repository=self.book_repository,
                poll_interval=self.settings.session.download_poll_interval_s,
            )
        return self._download_monitor

    def create_session_controller(self, audio_engine: AudioEngine) -> PlaybackSessionController:
        """Build a session controller bound to ``audio_engine``.

        The caller starts it; ``shutdown`` closes every controller built here.
        """
        from ..application.services.session_controller import PlaybackSessionController

        controller = PlaybackSessionController(
            audio_engine=audio_engine,
            metadata_extractor=self.metadata_extractor,
            bookmark_service=self.bookmark_service,
            download_monitor=self.download_monitor,
            library=self.book_repository,
            settings=self.settings.session,
            event_bus=self.event_bus,
        )
        self._controllers.append(controller)
        return controller

    # === Lifecycle ===

    async def initialize(self) -> None:
        """Initialize all async resources."""
        await self.database.initialize()

    async def shutdown(self) -> None:
        """Shutdown and cleanup all resources."""
        for controller in self._controllers:
            try:
                await controller.close()
            except Exception as exc:
                logger.warning("Failed closing playback session: %r", exc)
        self._controllers.clear()

        if self._database is not None:
            await self._database.close()


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)
