"""Logging setup for the Archivist CLI."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from archivist.config.models import LoggingSettings

ROOT_LOGGER_NAME = "archivist"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(
    settings: LoggingSettings,
    *,
    console: Console | None = None,
    level_override: str | None = None,
) -> logging.Logger:
    """Attach console and optional rotating file handlers to the package logger.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        settings: Logging section of the configuration.
        console: Console the rich handler writes to (stderr by default).
        level_override: Level taking precedence over ``settings.level``.

    Returns:
        logging.Logger: The configured ``archivist`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    level_name = (level_override or settings.level).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown logging level '{level_name}'")

    for handler in list(logger.handlers):
        if getattr(handler, "_archivist_handler", False):
            logger.removeHandler(handler)
            handler.close()

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    handlers: list[logging.Handler] = [rich_handler]

    if settings.file:
        log_path = Path(settings.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=settings.max_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        handlers.append(file_handler)

    for handler in handlers:
        handler._archivist_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    logger.setLevel(level)
    logger.propagate = False
    return logger


__all__ = ["configure_logging", "ROOT_LOGGER_NAME"]
