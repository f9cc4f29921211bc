"""Inventory of every archive file instance across a job's directories."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Iterable

from archivist.config.models import JobSettings

from .directory import DirectoryCatalog
from .models import FileRecord
from .versioning import base_file_name

LOGGER = logging.getLogger(__name__)

# Copies on volumes with different timestamp resolution rarely agree to the second.
FUZZY_MATCH_WINDOW = timedelta(minutes=1)


@dataclass(frozen=True)
class ReportInstance:
    """One physical copy of an archive file.

    Attributes:
        directory: Directory holding the copy.
        length: Size in bytes as reported by that volume.
        last_write_time: Modification time of this copy (UTC).
        in_primary: Whether the copy lives in the primary archive directory.
        fuzzy: Whether it was matched by the one-minute window rather than
            an identical timestamp and size.
    """

    directory: Path
    length: int
    last_write_time: datetime
    in_primary: bool
    fuzzy: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "directory": str(self.directory),
            "length": self.length,
            "last_write_time": self.last_write_time.isoformat(),
            "in_primary": self.in_primary,
            "match": "fuzzy" if self.fuzzy else "exact",
        }


@dataclass
class ReportItem:
    """A distinct archive: one file name with one last-write time, however many copies exist."""

    name: str
    length: int
    last_write_time: datetime
    base_name: str
    is_versioned: bool
    instances: list[ReportInstance] = field(default_factory=list)

    @property
    def instance_count(self) -> int:
        return len(self.instances)

    @property
    def earliest_write_time(self) -> datetime:
        return min(instance.last_write_time for instance in self.instances)

    def matches(self, record: FileRecord, *, exact: bool) -> bool:
        if record.name != self.name:
            return False
        if exact:
            return record.last_write_time == self.last_write_time and record.length == self.length
        return abs(record.last_write_time - self.last_write_time) <= FUZZY_MATCH_WINDOW

    def ordered_instances(self) -> list[ReportInstance]:
        """Return the primary copy first, then the others by directory."""
        return sorted(
            self.instances,
            key=lambda instance: (not instance.in_primary, str(instance.directory)),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "base_name": self.base_name,
            "is_versioned": self.is_versioned,
            "length": self.length,
            "last_write_time": self.last_write_time.isoformat(),
            "instance_count": self.instance_count,
            "instances": [instance.to_payload() for instance in self.ordered_instances()],
        }


class FileReport:
    """Group the files of several catalogs into archives and count their copies.

    Files with the same name, last-write time and size are copies of one
    archive. Failing that, a file whose last-write time is within
    ``FUZZY_MATCH_WINDOW`` of an existing archive of the same name is a fuzzy
    copy of it. Anything else starts a new archive, so one name can appear
    as several archives when the copies have drifted apart.
    """

    def __init__(self) -> None:
        self._items: list[ReportItem] = []

    @classmethod
    def from_catalogs(
        cls,
        primary: DirectoryCatalog,
        destinations: Iterable[DirectoryCatalog] = (),
    ) -> "FileReport":
        """Build a report from the primary catalog and every available destination."""
        report = cls()
        for record in primary.all_files:
            report.add(record, in_primary=True)
        for catalog in destinations:
            if not catalog.is_enabled_and_available:
                LOGGER.debug("Leaving %s out of the file report: not available", catalog.path)
                continue
            for record in catalog.all_files:
                report.add(record, in_primary=False)
        return report

    @classmethod
    def for_job(cls, job: JobSettings) -> "FileReport":
        """Catalog the primary and destination directories of ``job`` and report on them."""
        primary = DirectoryCatalog.primary(job.primary_directory)
        destinations = [
            DirectoryCatalog.destination(settings) for settings in job.destination_directories
        ]
        return cls.from_catalogs(primary, destinations)

    def add(self, record: FileRecord, *, in_primary: bool) -> ReportItem:
        """File one record under an existing archive or start a new one."""
        fuzzy = False
        item = self._find(record, exact=True)
        if item is None:
            item = self._find(record, exact=False)
            fuzzy = item is not None

        instance = ReportInstance(
            directory=record.path.parent,
            length=record.length,
            last_write_time=record.last_write_time,
            in_primary=in_primary,
            fuzzy=fuzzy,
        )
        if item is None:
            item = ReportItem(
                name=record.name,
                length=record.length,
                last_write_time=record.last_write_time,
                base_name=record.base_name or base_file_name(record.name),
                is_versioned=record.is_versioned,
            )
            self._items.append(item)
        item.instances.append(instance)
        return item

    @property
    def items(self) -> list[ReportItem]:
        """Return the archives ordered by file name, then last-write time."""
        return sorted(self._items, key=lambda item: (item.name, item.last_write_time))

    @property
    def instance_count(self) -> int:
        return sum(item.instance_count for item in self._items)

    @property
    def duplicate_names(self) -> list[str]:
        """Return names that appear as more than one archive."""
        names = [item.name for item in self._items]
        return sorted({name for name in names if names.count(name) > 1})

    def under_replicated(self, minimum: int = 2) -> list[ReportItem]:
        """Return archives with fewer than ``minimum`` copies."""
        return [item for item in self.items if item.instance_count < minimum]

    def to_payload(self) -> dict[str, Any]:
        return {
            "items": [item.to_payload() for item in self.items],
            "duplicate_names": self.duplicate_names,
            "counts": {
                "files": len(self._items),
                "instances": self.instance_count,
                "single_copies": len(self.under_replicated()),
            },
        }

    def _find(self, record: FileRecord, *, exact: bool) -> ReportItem | None:
        for item in self._items:
            if item.matches(record, exact=exact):
                return item
        return None

    def __len__(self) -> int:
        return len(self._items)


__all__ = ["FUZZY_MATCH_WINDOW", "FileReport", "ReportInstance", "ReportItem"]
