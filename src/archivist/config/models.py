"""Configuration models describing Archivist jobs and directories."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .exceptions import ConfigError


class ArchivistBaseModel(BaseModel):
    """Shared configuration for Archivist Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class JobSettings(ArchivistBaseModel):
    """A named backup job.

    Attributes:
        name: Identifier used to select the job from the CLI.
        description: Free-text reminder for humans.
        primary_directory: Where archives are first written, then copied out from.
        process_slow_volumes: Whether directories flagged as slow are processed.
        process_test_only: Only process directories flagged for testing.
        archive_fairly_static: Whether sources flagged as fairly static are archived.
        source_directories: Directories compressed into the primary directory.
        destination_directories: Directories archives are replicated to.
    """

    name: str
    description: Optional[str] = None
    primary_directory: str
    process_slow_volumes: bool = False
    process_test_only: bool = False
    archive_fairly_static: bool = False
    source_directories: List["SourceDirectorySettings"] = Field(default_factory=list)
    destination_directories: List["DestinationDirectorySettings"] = Field(default_factory=list)


class DirectorySettings(ArchivistBaseModel):
    """Settings shared by source and destination directories.

    Attributes:
        path: Full path of the directory.
        description: Free-text reminder of what or where the directory is.
        enabled: Whether to process this directory in any way.
        removable: Whether the directory lives on a volume that may be absent.
        slow_volume: Whether the directory lives on a slow volume.
        for_testing: Marks the directory for test-only jobs.
        priority: Processing order, lowest first.
        enabled_at_hour: Only process from this hour onwards, zero disables.
        disabled_at_hour: Only process before this hour, zero disables.
        include: File masks to include, an empty list includes everything.
        exclude: File masks to ignore, an empty list excludes nothing.
        retain_maximum_versions: Versions kept per base name, zero keeps all.
        retain_younger_than_days: Files younger than this are never deleted.
    """

    path: str
    description: Optional[str] = None
    enabled: bool = True
    removable: bool = False
    slow_volume: bool = False
    for_testing: bool = False
    priority: int = 99
    enabled_at_hour: int = Field(default=0, ge=0, le=23)
    disabled_at_hour: int = Field(default=0, ge=0, le=23)
    include: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)
    retain_maximum_versions: int = Field(default=3, ge=0)
    retain_younger_than_days: int = Field(default=7, ge=0)

    @model_validator(mode="after")
    def _check_path(self) -> "DirectorySettings":
        if not self.path.strip():
            raise ValueError("directory path must not be empty")
        return self

    @property
    def directory(self) -> Path:
        """Return the directory as an expanded path."""
        return Path(self.path).expanduser()

    @property
    def is_available(self) -> bool:
        """Return whether the directory currently exists."""
        return self.directory.is_dir()

    def is_to_be_processed(self, job: JobSettings | None, now: datetime | None = None) -> bool:
        """Return whether this directory should be processed by the given job.

        Args:
            job: Active job; when omitted only the directory's own flags apply.
            now: Clock override used for the hour window.

        Returns:
            bool: True when the directory takes part in this run.
        """
        if not self.enabled:
            return False

        if self.removable and not self.is_available:
            return False

        if job is not None:
            if self.slow_volume and not job.process_slow_volumes:
                return False
            if job.process_test_only and not self.for_testing:
                return False

        if self.enabled_at_hour or self.disabled_at_hour:
            hour = (now or datetime.now()).hour
            if self.enabled_at_hour and hour < self.enabled_at_hour:
                return False
            if self.disabled_at_hour and hour >= self.disabled_at_hour:
                return False

        return True


class SourceDirectorySettings(DirectorySettings):
    """A directory compressed into the primary archive directory.

    Attributes:
        minutes_old_threshold: Only archive once the newest file is this old.
        fairly_static: Marks content that rarely changes (photos, films).
        encrypt_output: Encrypt the archive after compression.
        add_version_suffix: Name archives ``<base>-NNNN.zip``.
        output_file_name: Base archive name override, derived from the path otherwise.
    """

    minutes_old_threshold: int = Field(default=0, ge=0)
    fairly_static: bool = False
    encrypt_output: bool = False
    add_version_suffix: bool = False
    output_file_name: Optional[str] = None

    def is_to_be_processed(self, job: JobSettings | None, now: datetime | None = None) -> bool:
        if not super().is_to_be_processed(job, now):
            return False
        if job is not None and self.fairly_static and not job.archive_fairly_static:
            return False
        return True


class DestinationDirectorySettings(DirectorySettings):
    """A directory that archives are replicated to.

    Attributes:
        synchronise_file_timestamps: Copy timestamps from the primary file.
    """

    synchronise_file_timestamps: bool = True


class LoggingSettings(ArchivistBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file path, rotated by size.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5


class ArchivistConfig(ArchivistBaseModel):
    """Top-level configuration struct for Archivist.

    Attributes:
        jobs: Named backup jobs.
        global_source_directories: Sources appended to every job.
        global_destination_directories: Destinations appended to every job.
        logging: Logging configuration.
    """

    jobs: List[JobSettings] = Field(default_factory=list)
    global_source_directories: List[SourceDirectorySettings] = Field(default_factory=list)
    global_destination_directories: List[DestinationDirectorySettings] = Field(
        default_factory=list
    )
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="after")
    def _check_unique_job_names(self) -> "ArchivistConfig":
        names = [job.name for job in self.jobs]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate job names: {', '.join(duplicates)}")
        return self

    def select_job(self, name: str) -> JobSettings:
        """Return the named job with the global directories appended.

        Args:
            name: Job name to select.

        Returns:
            JobSettings: Copy of the job including global directories.

        Raises:
            ConfigError: If no job with that name exists.
        """
        for job in self.jobs:
            if job.name == name:
                return job.model_copy(
                    update={
                        "source_directories": [
                            *job.source_directories,
                            *self.global_source_directories,
                        ],
                        "destination_directories": [
                            *job.destination_directories,
                            *self.global_destination_directories,
                        ],
                    }
                )
        known = ", ".join(job.name for job in self.jobs) or "none"
        raise ConfigError(f"Cannot find job '{name}' (configured jobs: {known}).")


JobSettings.model_rebuild()


__all__ = [
    "ArchivistBaseModel",
    "DirectorySettings",
    "SourceDirectorySettings",
    "DestinationDirectorySettings",
    "JobSettings",
    "LoggingSettings",
    "ArchivistConfig",
]
