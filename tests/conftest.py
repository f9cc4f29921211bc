"""Shared fixtures for the Archivist test suite."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterator

import pytest

from archivist.logs import ROOT_LOGGER_NAME

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _restore_archivist_logger() -> Iterator[None]:
    """Undo handlers installed by CLI runs so caplog keeps seeing records."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_file() -> Callable[..., Path]:
    """Return a helper writing a file whose mtime is ``age_days`` before ``NOW``."""

    def _make(
        directory: Path,
        name: str,
        *,
        content: str = "data",
        age_days: float = 1.0,
        mtime: datetime | None = None,
    ) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        path.write_text(content, encoding="utf-8")
        stamp = (mtime or NOW - timedelta(days=age_days)).timestamp()
        os.utime(path, (stamp, stamp))
        return path

    return _make
