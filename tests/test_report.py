"""Tests for the cross-directory file report."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from archivist.catalog import DirectoryCatalog, FileReport
from archivist.config import DestinationDirectorySettings, JobSettings


def _destination(path: Path, **overrides) -> DirectoryCatalog:
    return DirectoryCatalog.destination(DestinationDirectorySettings(path=str(path), **overrides))


def test_identical_copies_are_one_archive(
    tmp_path: Path, make_file: Callable[..., Path], now: datetime
) -> None:
    primary_dir = tmp_path / "primary"
    first = tmp_path / "first"
    second = tmp_path / "second"
    for directory in (primary_dir, first, second):
        make_file(directory, "Docs-0001.zip", mtime=now)
    make_file(primary_dir, "Notes.txt")

    report = FileReport.from_catalogs(
        DirectoryCatalog.primary(primary_dir), [_destination(first), _destination(second)]
    )

    assert [item.name for item in report.items] == ["Docs-0001.zip", "Notes.txt"]
    docs, notes = report.items
    assert docs.instance_count == 3
    assert docs.base_name == "Docs"
    assert docs.is_versioned
    assert not any(instance.fuzzy for instance in docs.instances)
    assert [instance.directory for instance in docs.ordered_instances()] == [
        primary_dir,
        first,
        second,
    ]
    assert docs.ordered_instances()[0].in_primary
    assert notes.instance_count == 1
    assert report.under_replicated() == [notes]
    assert report.instance_count == 4
    assert report.duplicate_names == []


def test_copies_within_a_minute_match_fuzzily(
    tmp_path: Path, make_file: Callable[..., Path], now: datetime
) -> None:
    primary_dir = tmp_path / "primary"
    backup = tmp_path / "backup"
    make_file(primary_dir, "Docs-0001.zip", mtime=now)
    make_file(backup, "Docs-0001.zip", content="data-on-fat", mtime=now + timedelta(seconds=30))

    report = FileReport.from_catalogs(DirectoryCatalog.primary(primary_dir), [_destination(backup)])

    assert len(report) == 1
    (item,) = report.items
    assert item.instance_count == 2
    assert item.length == 4
    fuzzy = [instance for instance in item.instances if instance.fuzzy]
    assert [instance.directory for instance in fuzzy] == [backup]
    assert item.to_payload()["instances"][1]["match"] == "fuzzy"


def test_drifted_copies_are_listed_as_duplicates(
    tmp_path: Path, make_file: Callable[..., Path], now: datetime
) -> None:
    primary_dir = tmp_path / "primary"
    backup = tmp_path / "backup"
    make_file(primary_dir, "Notes.txt", mtime=now)
    make_file(backup, "Notes.txt", mtime=now - timedelta(minutes=5))

    report = FileReport.from_catalogs(DirectoryCatalog.primary(primary_dir), [_destination(backup)])

    assert len(report) == 2
    assert report.duplicate_names == ["Notes.txt"]
    older, newer = report.items
    assert older.last_write_time < newer.last_write_time
    assert not older.instances[0].in_primary
    assert newer.instances[0].in_primary
    assert not older.is_versioned
    assert older.base_name == "Notes"


def test_unavailable_destinations_are_left_out(
    tmp_path: Path, make_file: Callable[..., Path]
) -> None:
    primary_dir = tmp_path / "primary"
    disabled = tmp_path / "disabled"
    make_file(primary_dir, "Docs-0001.zip")
    make_file(disabled, "Docs-0001.zip")

    report = FileReport.from_catalogs(
        DirectoryCatalog.primary(primary_dir),
        [_destination(disabled, enabled=False), _destination(tmp_path / "usb", removable=True)],
    )

    assert report.instance_count == 1
    assert report.to_payload()["counts"] == {"files": 1, "instances": 1, "single_copies": 1}


def test_report_for_job_uses_its_destinations(
    tmp_path: Path, make_file: Callable[..., Path], now: datetime
) -> None:
    primary_dir = tmp_path / "primary"
    backup = tmp_path / "backup"
    make_file(primary_dir, "Docs-0002.zip", mtime=now)
    make_file(backup, "Docs-0002.zip", mtime=now)
    make_file(backup, "Docs-0001.zip")
    job = JobSettings(
        name="daily",
        primary_directory=str(primary_dir),
        destination_directories=[DestinationDirectorySettings(path=str(backup))],
    )

    report = FileReport.for_job(job)

    counts = {item.name: item.instance_count for item in report.items}
    assert counts == {"Docs-0001.zip": 1, "Docs-0002.zip": 2}
    payload = report.to_payload()
    assert [item["name"] for item in payload["items"]] == ["Docs-0001.zip", "Docs-0002.zip"]
    assert payload["items"][1]["instances"][0]["directory"] == str(primary_dir)
