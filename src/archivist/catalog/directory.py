"""Point-in-time inventories of archive directories."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from archivist.config.models import DirectorySettings, JobSettings

from .errors import CatalogConstructionError, MissingPrimaryDirectory, VersionIndexInconsistency
from .matching import FileMask, compile_masks, first_match, is_wanted
from .models import DEFAULT_PRIORITY, DirectoryRole, FileRecord
from .version_sets import VersionSetIndex
from .versioning import base_archive_name, base_file_name, extract_version_number, is_versioned_file_name

LOGGER = logging.getLogger(__name__)

# Suffixes the compression and copy writers give to output still being written.
IN_PROGRESS_SUFFIXES = frozenset({".compressing", ".copying"})

# Tolerance for last-write time differences between volumes, in seconds.
STALE_SECONDS_THRESHOLD = 3.0


class DirectoryCatalog:
    """Inventory of the top-level files in one primary, source or destination directory.

    A catalog is built once and never updated; callers build a new one after
    every stage that changes the filesystem. Disabled or unavailable source
    and destination directories produce empty catalogs rather than errors.
    """

    def __init__(
        self,
        role: DirectoryRole | str,
        settings: DirectorySettings | None = None,
        *,
        path: str | Path | None = None,
    ) -> None:
        """Validate the inputs for the role and scan the directory.

        Args:
            role: Part the directory plays in the job.
            settings: Directory settings, required for source and destination roles.
            path: Bare directory path, required for the primary role.

        Raises:
            CatalogConstructionError: If the inputs do not suit the role.
            MissingPrimaryDirectory: If the primary directory does not exist.
            VersionIndexInconsistency: If the version index disagrees with the scan.
        """
        self._role = DirectoryRole(role)
        self._settings = settings
        self._records: list[FileRecord] = []
        self._version_sets = VersionSetIndex()
        self._anomalies: list[str] = []
        self._include_masks: list[FileMask] = []
        self._exclude_masks: list[FileMask] = []

        if self._role is DirectoryRole.PRIMARY:
            if settings is not None:
                raise CatalogConstructionError(
                    "Primary catalogs take a bare path, not directory settings"
                )
            if path is None:
                raise CatalogConstructionError("Primary catalogs require a path")
            self._path = Path(path).expanduser()
            if not self._path.is_dir():
                raise MissingPrimaryDirectory(f"Primary archive directory '{self._path}' does not exist")
            self._available = True
        else:
            if path is not None:
                raise CatalogConstructionError(
                    f"{self._role.value.capitalize()} catalogs take directory settings, not a bare path"
                )
            if settings is None:
                raise CatalogConstructionError(
                    f"{self._role.value.capitalize()} catalogs require directory settings"
                )
            self._path = settings.directory
            self._available = self._path.is_dir()
            self._include_masks = compile_masks(settings.include)
            self._exclude_masks = compile_masks(settings.exclude)

        if self.is_enabled_and_available:
            self._scan()
        else:
            LOGGER.debug(
                "Skipping %s directory %s (enabled=%s, available=%s)",
                self._role.value,
                self._path,
                self.is_enabled,
                self.is_available,
            )

    @classmethod
    def primary(cls, path: str | Path) -> "DirectoryCatalog":
        return cls(DirectoryRole.PRIMARY, path=path)

    @classmethod
    def source(cls, settings: DirectorySettings) -> "DirectoryCatalog":
        return cls(DirectoryRole.SOURCE, settings)

    @classmethod
    def destination(cls, settings: DirectorySettings) -> "DirectoryCatalog":
        return cls(DirectoryRole.DESTINATION, settings)

    # ------------------------------------------------------------------ #
    # Attributes                                                         #
    # ------------------------------------------------------------------ #

    @property
    def role(self) -> DirectoryRole:
        return self._role

    @property
    def path(self) -> Path:
        return self._path

    @property
    def settings(self) -> DirectorySettings | None:
        return self._settings

    @property
    def is_enabled(self) -> bool:
        return self._settings.enabled if self._settings is not None else True

    @property
    def is_available(self) -> bool:
        """Return whether the directory existed and could be listed when the catalog was built."""
        return self._available

    @property
    def is_enabled_and_available(self) -> bool:
        return self.is_enabled and self.is_available

    @property
    def priority(self) -> int:
        return self._settings.priority if self._settings is not None else DEFAULT_PRIORITY

    @property
    def retain_maximum_versions(self) -> int:
        """Versions kept per base name; zero (and the primary) keep everything."""
        return self._settings.retain_maximum_versions if self._settings is not None else 0

    @property
    def retain_younger_than_days(self) -> int:
        return self._settings.retain_younger_than_days if self._settings is not None else 0

    @property
    def include_masks(self) -> list[FileMask]:
        return list(self._include_masks)

    @property
    def exclude_masks(self) -> list[FileMask]:
        return list(self._exclude_masks)

    @property
    def include_description(self) -> str:
        return ", ".join(mask.pattern for mask in self._include_masks) or "all files"

    @property
    def exclude_description(self) -> str:
        return ", ".join(mask.pattern for mask in self._exclude_masks) or "nothing"

    @property
    def anomalies(self) -> list[str]:
        """Return data anomalies noticed while scanning, such as duplicate latest versions."""
        return list(self._anomalies)

    @property
    def base_archive_name(self) -> str | None:
        """Return the base name archives of this source directory are written under."""
        if self._role is not DirectoryRole.SOURCE or self._settings is None:
            return None
        return base_archive_name(self._path, getattr(self._settings, "output_file_name", None))

    def is_to_be_processed(self, job: JobSettings | None, now: datetime | None = None) -> bool:
        """Return whether this directory takes part in the given job."""
        if self._settings is None:
            return True
        return self.is_available and self._settings.is_to_be_processed(job, now)

    # ------------------------------------------------------------------ #
    # File queries                                                       #
    # ------------------------------------------------------------------ #

    @property
    def all_files(self) -> list[FileRecord]:
        return list(self._records)

    @property
    def files(self) -> list[FileRecord]:
        """Return the records that are not ignored, in name order."""
        return [record for record in self._records if not record.ignored]

    @property
    def ignored_files(self) -> list[FileRecord]:
        return [record for record in self._records if record.ignored]

    @property
    def versioned_files(self) -> list[FileRecord]:
        return [record for record in self.files if record.is_versioned]

    @property
    def unversioned_files(self) -> list[FileRecord]:
        return [record for record in self.files if not record.is_versioned]

    @property
    def version_sets(self) -> VersionSetIndex:
        return self._version_sets

    def find(self, file_name: str) -> FileRecord | None:
        """Return the record with exactly this file name, ignored or not."""
        for record in self._records:
            if record.name == file_name:
                return record
        return None

    def has_up_to_date_copy(self, file_name: str, reference_time: datetime) -> bool:
        """Return whether a file of this name exists with a last-write time close to ``reference_time``.

        Naive reference times are taken as local time.
        """
        existing = self.find(file_name)
        if existing is None:
            return False
        reference = reference_time.astimezone(timezone.utc)
        drift = abs((existing.last_write_time - reference).total_seconds())
        return drift < STALE_SECONDS_THRESHOLD

    def is_absent(self, file_name: str) -> bool:
        return self.find(file_name) is None

    def is_absent_or_stale(self, file_name: str, reference_time: datetime) -> bool:
        return not self.has_up_to_date_copy(file_name, reference_time)

    def wants_file(self, record: FileRecord) -> bool:
        """Return whether this directory's filters accept a file from another directory."""
        wanted = is_wanted(record.name, self._include_masks, self._exclude_masks)
        if LOGGER.isEnabledFor(logging.DEBUG):
            LOGGER.debug(
                "%s %s %s (include: %s, exclude: %s)",
                self._path,
                "wants" if wanted else "does not want",
                record.name,
                self.include_description,
                self.exclude_description,
            )
        return wanted

    # ------------------------------------------------------------------ #
    # Scanning                                                           #
    # ------------------------------------------------------------------ #

    def _scan(self) -> None:
        try:
            children = sorted(self._path.iterdir(), key=lambda candidate: candidate.name)
        except OSError as exc:
            if self._role is DirectoryRole.PRIMARY:
                raise MissingPrimaryDirectory(
                    f"Primary archive directory '{self._path}' cannot be read: {exc}"
                ) from exc
            LOGGER.warning(
                "Cannot list %s directory %s, treating it as unavailable: %s",
                self._role.value,
                self._path,
                exc,
            )
            self._available = False
            return

        entries = list(self._iter_entries(children))
        indexed = self._role in (DirectoryRole.PRIMARY, DirectoryRole.DESTINATION)

        if indexed:
            for path, _, ignored in entries:
                if not ignored and is_versioned_file_name(path.name):
                    self._version_sets.add_file_name(path.name)

        latest_numbers = {
            version_set.base_name: version_set.latest_version_number
            for version_set in self._version_sets
        }

        for path, stat, ignored in entries:
            is_latest = False
            if indexed and not ignored and is_versioned_file_name(path.name):
                base_name = base_file_name(path.name)
                is_latest = extract_version_number(path.name) == latest_numbers.get(base_name)
            self._records.append(
                FileRecord.from_stat(
                    path,
                    stat,
                    ignored=ignored,
                    is_latest_version=is_latest,
                    source_priority=self.priority,
                )
            )

        self._check_latest_versions()
        LOGGER.debug(
            "Catalogued %s directory %s: %d files, %d ignored, %d version sets",
            self._role.value,
            self._path,
            len(self.files),
            len(self.ignored_files),
            len(self._version_sets),
        )

    def _iter_entries(
        self, children: Iterable[Path]
    ) -> Iterable[tuple[Path, os.stat_result, bool]]:
        """Yield (path, stat, ignored) for the regular files among ``children``."""
        for path in children:
            try:
                if not path.is_file():
                    continue
                stat = path.stat()
            except OSError as exc:
                LOGGER.debug("Cannot stat %s: %s", path, exc)
                continue

            included = is_wanted(path.name, self._include_masks, self._exclude_masks)
            if not included and LOGGER.isEnabledFor(logging.DEBUG):
                excluded_by = first_match(self._exclude_masks, path.name)
                reason = f"exclude mask '{excluded_by.pattern}'" if excluded_by else "no include mask"
                LOGGER.debug("Ignoring %s: %s", path, reason)
            in_progress = path.suffix.lower() in IN_PROGRESS_SUFFIXES
            yield path, stat, not included or in_progress

    def _check_latest_versions(self) -> None:
        for version_set in self._version_sets:
            latest = [
                record
                for record in self._records
                if record.is_latest_version and record.base_name == version_set.base_name
            ]
            if not any(record.name == version_set.latest_name for record in latest):
                raise VersionIndexInconsistency(
                    f"No file found in {self._path} for latest version '{version_set.latest_name}'"
                )
            if len(latest) > 1:
                names = ", ".join(record.name for record in latest)
                message = (
                    f"{self._path}: {len(latest)} files share the latest version "
                    f"{version_set.latest_version_number} of '{version_set.base_name}' ({names})"
                )
                LOGGER.warning(message)
                self._anomalies.append(message)

    def __repr__(self) -> str:
        return f"DirectoryCatalog({self._role.value}, {str(self._path)!r}, files={len(self._records)})"


__all__ = ["DirectoryCatalog", "IN_PROGRESS_SUFFIXES", "STALE_SECONDS_THRESHOLD"]
