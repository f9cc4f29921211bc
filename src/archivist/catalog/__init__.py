"""Directory catalogs, versioned file sets and the naming scheme they rely on."""

from .directory import IN_PROGRESS_SUFFIXES, STALE_SECONDS_THRESHOLD, DirectoryCatalog
from .errors import (
    CatalogConstructionError,
    CatalogError,
    MissingPrimaryDirectory,
    VersionIndexInconsistency,
    VersionRolloverError,
)
from .matching import FileMask, compile_masks
from .models import DirectoryRole, FileRecord
from .report import FileReport, ReportInstance, ReportItem
from .version_sets import VersionSet, VersionSetIndex

__all__ = [
    "CatalogConstructionError",
    "CatalogError",
    "DirectoryCatalog",
    "DirectoryRole",
    "FileMask",
    "FileRecord",
    "FileReport",
    "IN_PROGRESS_SUFFIXES",
    "MissingPrimaryDirectory",
    "ReportInstance",
    "ReportItem",
    "STALE_SECONDS_THRESHOLD",
    "VersionIndexInconsistency",
    "VersionRolloverError",
    "VersionSet",
    "VersionSetIndex",
    "compile_masks",
]
