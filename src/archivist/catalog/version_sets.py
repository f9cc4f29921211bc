"""Versioned file sets grouped by base name."""

from __future__ import annotations

from bisect import insort
from typing import Iterator

from .versioning import base_file_name, extract_version_number, is_versioned_file_name


class VersionSet:
    """Ordered versioned file names sharing one base name.

    Names are kept in lexical order, which is chronological because version
    numbers are fixed-width.
    """

    def __init__(self, base_name: str) -> None:
        self._base_name = base_name
        self._versions: list[str] = []

    @property
    def base_name(self) -> str:
        return self._base_name

    @property
    def versions(self) -> list[str]:
        """Return the file names, oldest first."""
        return list(self._versions)

    @property
    def latest_name(self) -> str | None:
        return self._versions[-1] if self._versions else None

    @property
    def latest_version_number(self) -> int:
        """Return the version of the lexically-last name, 0 when empty."""
        if not self._versions:
            return 0
        return extract_version_number(self._versions[-1])

    def add(self, file_name: str) -> None:
        """Insert a versioned file name belonging to this base name.

        Raises:
            ValueError: If the name is unversioned or has another base name.
        """
        if not is_versioned_file_name(file_name):
            raise ValueError(f"'{file_name}' is not a versioned file name")
        if base_file_name(file_name) != self._base_name:
            raise ValueError(f"'{file_name}' does not belong to base name '{self._base_name}'")
        if file_name not in self._versions:
            insort(self._versions, file_name)

    def oldest(self, count: int) -> list[str]:
        """Return up to ``count`` of the oldest names."""
        if count <= 0:
            return []
        return self._versions[:count]

    def __contains__(self, file_name: object) -> bool:
        return file_name in self._versions

    def __len__(self) -> int:
        return len(self._versions)

    def __repr__(self) -> str:
        return f"VersionSet({self._base_name!r}, {self._versions!r})"


class VersionSetIndex:
    """All version sets found in one directory, keyed by base name."""

    def __init__(self) -> None:
        self._sets: dict[str, VersionSet] = {}

    @property
    def base_names(self) -> list[str]:
        return sorted(self._sets)

    def add_file_name(self, file_name: str) -> VersionSet:
        """Add a versioned file name, creating its set on first sight."""
        base_name = base_file_name(file_name)
        version_set = self._sets.get(base_name)
        if version_set is None:
            version_set = self._sets[base_name] = VersionSet(base_name)
        version_set.add(file_name)
        return version_set

    def get(self, base_name: str | None) -> VersionSet | None:
        if base_name is None:
            return None
        return self._sets.get(base_name)

    def __iter__(self) -> Iterator[VersionSet]:
        for base_name in self.base_names:
            yield self._sets[base_name]

    def __len__(self) -> int:
        return len(self._sets)

    def __contains__(self, base_name: object) -> bool:
        return base_name in self._sets


__all__ = ["VersionSet", "VersionSetIndex"]
