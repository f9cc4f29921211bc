"""Wildcard file masks used for include/exclude filtering."""

from __future__ import annotations

import re
from typing import Iterable, Sequence


class FileMask:
    """A case-insensitive ``*``/``?`` wildcard mask.

    The mask may match anywhere in the value but must run to its end, so
    ``*.zip`` matches ``Data.zip`` and ``Temp*.*`` matches ``MyTempData.zip``.
    Every character other than ``*`` and ``?`` is literal.
    """

    __slots__ = ("pattern", "_regex")

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        body = "".join(_translate(char) for char in pattern)
        self._regex = re.compile(f".*{body}", re.IGNORECASE | re.DOTALL)

    def matches(self, value: str) -> bool:
        return self._regex.fullmatch(value) is not None

    def __repr__(self) -> str:
        return f"FileMask({self.pattern!r})"


def _translate(char: str) -> str:
    if char == "*":
        return ".*"
    if char == "?":
        return "."
    return re.escape(char)


def compile_masks(patterns: Iterable[str] | None) -> list[FileMask]:
    """Compile mask patterns, skipping blank entries."""
    return [FileMask(pattern.strip()) for pattern in patterns or [] if pattern and pattern.strip()]


def first_match(masks: Sequence[FileMask], value: str) -> FileMask | None:
    """Return the first mask matching ``value``, if any."""
    for mask in masks:
        if mask.matches(value):
            return mask
    return None


def is_wanted(name: str, includes: Sequence[FileMask], excludes: Sequence[FileMask]) -> bool:
    """Apply include/exclude precedence to a file name.

    With no include masks everything is included; any exclude match vetoes.
    """
    if includes and first_match(includes, name) is None:
        return False
    return first_match(excludes, name) is None


__all__ = ["FileMask", "compile_masks", "first_match", "is_wanted"]
