"""Catalog data models."""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from .versioning import (
    MAX_VERSION_NUMBER,
    base_file_name,
    extract_version_number,
    is_versioned_file_name,
)

DEFAULT_PRIORITY = 99


class DirectoryRole(str, Enum):
    """The part a directory plays in an archive job."""

    PRIMARY = "primary"
    SOURCE = "source"
    DESTINATION = "destination"


class FileRecord(BaseModel):
    """Point-in-time snapshot of one file found in a catalogued directory.

    Attributes:
        path: Full path of the file.
        name: File name without directory.
        length: Size in bytes.
        last_write_time: Modification time (timezone-aware, UTC).
        creation_time: Creation time where the platform records one, else the
            inode change time.
        ignored: Whether filters or in-progress markers exclude the file.
        is_versioned: Whether the name follows ``<base>-NNNN.<ext>``.
        base_name: Logical archive identity, set for versioned files only.
        version_number: Parsed version, set for versioned files only.
        is_latest_version: Whether this is the newest version of its base name
            in its directory.
        source_priority: Priority of the directory the file was found in.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    name: str
    length: int
    last_write_time: datetime
    creation_time: datetime
    ignored: bool = False
    is_versioned: bool = False
    base_name: Optional[str] = None
    version_number: Optional[int] = None
    is_latest_version: bool = False
    source_priority: int = DEFAULT_PRIORITY

    @model_validator(mode="after")
    def _check_versioning(self) -> "FileRecord":
        if self.is_versioned:
            if not self.base_name:
                raise ValueError(f"versioned file {self.name} has no base name")
            if self.version_number is None or not 1 <= self.version_number <= MAX_VERSION_NUMBER:
                raise ValueError(f"versioned file {self.name} has invalid version {self.version_number}")
        elif self.base_name is not None or self.version_number is not None:
            raise ValueError(f"unversioned file {self.name} carries version metadata")
        if self.is_latest_version and not self.is_versioned:
            raise ValueError(f"unversioned file {self.name} cannot be a latest version")
        return self

    @classmethod
    def from_stat(
        cls,
        path: Path,
        stat: os.stat_result,
        *,
        ignored: bool = False,
        is_latest_version: bool = False,
        source_priority: int = DEFAULT_PRIORITY,
    ) -> "FileRecord":
        """Build a record from a path and its stat result."""
        versioned = is_versioned_file_name(path.name)
        created = getattr(stat, "st_birthtime", None) or stat.st_ctime
        return cls(
            path=path,
            name=path.name,
            length=stat.st_size,
            last_write_time=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            creation_time=datetime.fromtimestamp(created, tz=timezone.utc),
            ignored=ignored,
            is_versioned=versioned,
            base_name=base_file_name(path.name) if versioned else None,
            version_number=extract_version_number(path.name) if versioned else None,
            is_latest_version=is_latest_version,
            source_priority=source_priority,
        )

    def is_older_than_days(self, days: int, now: datetime | None = None) -> bool:
        """Return whether the file was last written more than ``days`` days ago.

        Naive ``now`` values are taken as local time.
        """
        reference = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        return reference - self.last_write_time > timedelta(days=days)


__all__ = ["DEFAULT_PRIORITY", "DirectoryRole", "FileRecord"]
