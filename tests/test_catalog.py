"""Tests for directory catalogs."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import pytest

from archivist.catalog import (
    CatalogConstructionError,
    DirectoryCatalog,
    DirectoryRole,
    MissingPrimaryDirectory,
)
from archivist.config import DestinationDirectorySettings, SourceDirectorySettings


def test_primary_catalog_requires_existing_path(tmp_path: Path) -> None:
    with pytest.raises(MissingPrimaryDirectory):
        DirectoryCatalog.primary(tmp_path / "missing")


def test_construction_rejects_inputs_for_the_wrong_role(tmp_path: Path) -> None:
    settings = DestinationDirectorySettings(path=str(tmp_path))

    with pytest.raises(CatalogConstructionError):
        DirectoryCatalog(DirectoryRole.PRIMARY, settings)
    with pytest.raises(CatalogConstructionError):
        DirectoryCatalog(DirectoryRole.PRIMARY)
    with pytest.raises(CatalogConstructionError):
        DirectoryCatalog(DirectoryRole.DESTINATION, path=tmp_path)
    with pytest.raises(CatalogConstructionError):
        DirectoryCatalog("source")


def test_primary_catalog_marks_latest_versions(
    tmp_path: Path, make_file: Callable[..., Path]
) -> None:
    for name in ("Docs-0001.zip", "Docs-0002.zip", "Photos-0007.zip", "Notes.txt"):
        make_file(tmp_path, name)
    (tmp_path / "nested").mkdir()
    make_file(tmp_path / "nested", "Deep-0001.zip")

    catalog = DirectoryCatalog.primary(tmp_path)

    assert catalog.role is DirectoryRole.PRIMARY
    assert [record.name for record in catalog.files] == [
        "Docs-0001.zip",
        "Docs-0002.zip",
        "Notes.txt",
        "Photos-0007.zip",
    ]
    latest = {record.name for record in catalog.versioned_files if record.is_latest_version}
    assert latest == {"Docs-0002.zip", "Photos-0007.zip"}
    assert [record.name for record in catalog.unversioned_files] == ["Notes.txt"]
    assert catalog.version_sets.base_names == ["Docs", "Photos"]
    assert catalog.version_sets.get("Docs").latest_version_number == 2  # type: ignore[union-attr]
    assert catalog.anomalies == []


def test_file_records_carry_version_metadata(
    tmp_path: Path, make_file: Callable[..., Path]
) -> None:
    make_file(tmp_path, "Docs-0004.zip", content="12345")
    make_file(tmp_path, "Notes.txt")

    catalog = DirectoryCatalog.primary(tmp_path)
    versioned = catalog.find("Docs-0004.zip")
    plain = catalog.find("Notes.txt")

    assert versioned is not None and plain is not None
    assert versioned.base_name == "Docs"
    assert versioned.version_number == 4
    assert versioned.length == 5
    assert versioned.last_write_time.tzinfo is not None
    assert plain.base_name is None
    assert plain.version_number is None
    assert not plain.is_latest_version
    assert catalog.find("Missing.zip") is None


def test_in_progress_files_are_ignored(tmp_path: Path, make_file: Callable[..., Path]) -> None:
    make_file(tmp_path, "Docs-0001.zip")
    make_file(tmp_path, "Docs-0002.zip.copying")
    make_file(tmp_path, "Photos.compressing")

    catalog = DirectoryCatalog.primary(tmp_path)

    assert [record.name for record in catalog.files] == ["Docs-0001.zip"]
    assert {record.name for record in catalog.ignored_files} == {
        "Docs-0002.zip.copying",
        "Photos.compressing",
    }
    assert len(catalog.all_files) == 3
    assert catalog.version_sets.get("Docs").versions == ["Docs-0001.zip"]  # type: ignore[union-attr]


def test_duplicate_latest_versions_are_recorded(
    tmp_path: Path, make_file: Callable[..., Path], caplog: pytest.LogCaptureFixture
) -> None:
    make_file(tmp_path, "Docs-0001.zip")
    make_file(tmp_path, "Docs-0002.zip")
    make_file(tmp_path, "Docs-0002.aes")

    with caplog.at_level(logging.WARNING, logger="archivist.catalog.directory"):
        catalog = DirectoryCatalog.primary(tmp_path)

    latest = {record.name for record in catalog.files if record.is_latest_version}
    assert latest == {"Docs-0002.zip", "Docs-0002.aes"}
    assert len(catalog.anomalies) == 1
    assert "Docs" in catalog.anomalies[0]
    assert any("share the latest version" in record.getMessage() for record in caplog.records)


def test_unavailable_destination_is_empty(tmp_path: Path) -> None:
    settings = DestinationDirectorySettings(path=str(tmp_path / "offline"), removable=True)

    catalog = DirectoryCatalog.destination(settings)

    assert not catalog.is_available
    assert not catalog.is_enabled_and_available
    assert catalog.files == []
    assert len(catalog.version_sets) == 0


def test_disabled_destination_is_not_scanned(
    tmp_path: Path, make_file: Callable[..., Path]
) -> None:
    make_file(tmp_path, "Docs-0001.zip")
    settings = DestinationDirectorySettings(path=str(tmp_path), enabled=False)

    catalog = DirectoryCatalog.destination(settings)

    assert catalog.is_available
    assert not catalog.is_enabled
    assert catalog.all_files == []


def test_destination_filters_ignore_unwanted_files(
    tmp_path: Path, make_file: Callable[..., Path]
) -> None:
    for name in ("Data-0001.zip", "TempData-0001.zip", "Readme.txt"):
        make_file(tmp_path, name)
    settings = DestinationDirectorySettings(
        path=str(tmp_path), include=["*.zip"], exclude=["Temp*.*"], priority=5
    )

    catalog = DirectoryCatalog.destination(settings)

    assert [record.name for record in catalog.files] == ["Data-0001.zip"]
    assert catalog.version_sets.base_names == ["Data"]
    assert catalog.files[0].source_priority == 5
    assert catalog.priority == 5
    assert catalog.include_description == "*.zip"
    assert catalog.exclude_description == "Temp*.*"


def test_wants_file_applies_destination_masks(
    tmp_path: Path, make_file: Callable[..., Path]
) -> None:
    primary_dir = tmp_path / "primary"
    for name in ("Data.zip", "TempData.zip", "Data.txt"):
        make_file(primary_dir, name)
    primary = DirectoryCatalog.primary(primary_dir)
    destination = DirectoryCatalog.destination(
        DestinationDirectorySettings(
            path=str(tmp_path / "backup"), include=["*.zip"], exclude=["Temp*.*"]
        )
    )

    wanted = {record.name for record in primary.files if destination.wants_file(record)}

    assert wanted == {"Data.zip"}


def test_stale_checks_tolerate_small_drift(
    tmp_path: Path, make_file: Callable[..., Path], now: datetime
) -> None:
    make_file(tmp_path, "Notes.txt", mtime=now)
    catalog = DirectoryCatalog.destination(DestinationDirectorySettings(path=str(tmp_path)))

    assert catalog.has_up_to_date_copy("Notes.txt", now + timedelta(seconds=2))
    assert catalog.has_up_to_date_copy("Notes.txt", now - timedelta(seconds=2))
    assert catalog.is_absent_or_stale("Notes.txt", now + timedelta(seconds=5))
    assert catalog.is_absent_or_stale("Other.txt", now)
    assert catalog.is_absent("Other.txt")
    assert not catalog.is_absent("Notes.txt")


def test_source_catalog_reports_archive_name(
    tmp_path: Path, make_file: Callable[..., Path]
) -> None:
    source_dir = tmp_path / "Photos"
    make_file(source_dir, "holiday.jpg")

    named = DirectoryCatalog.source(
        SourceDirectorySettings(path=str(source_dir), output_file_name="Pictures")
    )
    derived = DirectoryCatalog.source(SourceDirectorySettings(path=str(source_dir)))

    assert named.base_archive_name == "Pictures"
    assert derived.base_archive_name is not None
    assert derived.base_archive_name.endswith("-Photos")
    assert [record.name for record in derived.files] == ["holiday.jpg"]
    assert len(derived.version_sets) == 0
    assert DirectoryCatalog.primary(tmp_path).base_archive_name is None


def test_primary_catalog_retains_everything(tmp_path: Path) -> None:
    catalog = DirectoryCatalog.primary(tmp_path)

    assert catalog.retain_maximum_versions == 0
    assert catalog.is_enabled_and_available
    assert catalog.files == []


def test_time_queries_accept_naive_local_times(
    tmp_path: Path, make_file: Callable[..., Path]
) -> None:
    make_file(tmp_path, "Notes.txt", mtime=datetime.now(timezone.utc))
    make_file(tmp_path, "Docs-0001.zip", mtime=datetime.now(timezone.utc) - timedelta(days=3))
    catalog = DirectoryCatalog.destination(DestinationDirectorySettings(path=str(tmp_path)))
    fresh = catalog.find("Notes.txt")
    old = catalog.find("Docs-0001.zip")
    assert fresh is not None and old is not None

    local_now = datetime.now()

    assert catalog.has_up_to_date_copy("Notes.txt", local_now)
    assert not catalog.is_absent_or_stale("Notes.txt", local_now)
    assert not fresh.is_older_than_days(1, local_now)
    assert old.is_older_than_days(1, local_now)


def _refuse_listing(monkeypatch: pytest.MonkeyPatch, target: Path) -> None:
    original_iterdir = Path.iterdir

    def _iterdir(self: Path):
        if self == target:
            raise PermissionError(13, "Permission denied", str(self))
        return original_iterdir(self)

    monkeypatch.setattr(Path, "iterdir", _iterdir)


def test_unreadable_destination_is_treated_as_unavailable(
    tmp_path: Path,
    make_file: Callable[..., Path],
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    backup = tmp_path / "backup"
    make_file(backup, "Docs-0001.zip")
    _refuse_listing(monkeypatch, backup)

    with caplog.at_level(logging.WARNING, logger="archivist.catalog.directory"):
        catalog = DirectoryCatalog.destination(DestinationDirectorySettings(path=str(backup)))

    assert not catalog.is_available
    assert catalog.all_files == []
    assert len(catalog.version_sets) == 0
    assert any("Cannot list" in record.getMessage() for record in caplog.records)


def test_unreadable_primary_raises(
    tmp_path: Path, make_file: Callable[..., Path], monkeypatch: pytest.MonkeyPatch
) -> None:
    make_file(tmp_path, "Docs-0001.zip")
    _refuse_listing(monkeypatch, tmp_path)

    with pytest.raises(MissingPrimaryDirectory, match="cannot be read"):
        DirectoryCatalog.primary(tmp_path)
