#!/usr/bin/env python3
"""Entry point that prepares the playback store.

Sets up logging, creates the SQLite schema if needed, and reports how many
books and bookmarks the store holds. Host applications embed the session
controller through ``Container.create_session_controller``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import logging.config
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from shelf_playback.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from shelf_playback.config.container import Container

_LOGGING_CONFIG_PATH = Path(__file__).resolve().parents[2] / "logging_config.json"


def setup_logging(log_level: str = "INFO") -> None:
    resolved_level = getattr(logging, log_level.upper(), logging.INFO)

    try:
        with open(_LOGGING_CONFIG_PATH) as f:
            config = json.load(f)
        logging.config.dictConfig(config)
    except (FileNotFoundError, json.JSONDecodeError, ValueError):
        logging.warning("Could not load %s, falling back to basic config", _LOGGING_CONFIG_PATH)
        logging.basicConfig(
            level=resolved_level,
            format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    logging.getLogger().setLevel(resolved_level)


async def initialize_store(container: Container) -> tuple[int, int]:
    """Create the schema and return ``(book_count, bookmark_count)``."""
    await container.initialize()
    try:
        books = await container.book_repository.count()
        bookmarks = await container.bookmark_repository.count()
    finally:
        await container.shutdown()
    return books, bookmarks


def main() -> int:
    from shelf_playback.config.settings import get_settings

    settings = get_settings()
    setup_logging(settings.log_level)

    logger = logging.getLogger(__name__)
    logger.info(LogTemplates.APP_STARTING, settings.environment)

    from shelf_playback.config.container import create_container

    container = create_container(settings)

    try:
        books, bookmarks = asyncio.run(initialize_store(container))
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        logger.exception(LogTemplates.APP_FATAL_ERROR, e)
        return 1

    logger.info(LogTemplates.APP_READY, books, bookmarks)
    return 0


def cli() -> None:
    """Console script entry point (used by pyproject.toml [project.scripts])."""
    sys.exit(main())


if __name__ == "__main__":
    cli()  # pragma: no cover
