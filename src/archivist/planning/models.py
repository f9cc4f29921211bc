"""Action and plan data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, Optional

from archivist.catalog import DirectoryCatalog, DirectoryRole, FileRecord

from .errors import InvalidActionOperands, PlanningError


class ActionType(IntEnum):
    """Kinds of planned work, numbered in execution order (deletes last)."""

    COMPRESS = 1
    COPY = 2
    DELETE = 3


_REQUIRED_OPERANDS: dict[ActionType, frozenset[str]] = {
    ActionType.COMPRESS: frozenset({"source", "primary_path"}),
    ActionType.COPY: frozenset({"file", "destination"}),
    ActionType.DELETE: frozenset({"file"}),
}

_OPERANDS = ("file", "destination", "source", "primary_path")


@dataclass(frozen=True, eq=False)
class Action:
    """One unit of work for an executor.

    Each type takes exactly its own operands:

    * ``COMPRESS``: ``source`` catalog and ``primary_path``.
    * ``COPY``: ``file`` and ``destination`` catalog.
    * ``DELETE``: ``file``.

    Anything else raises ``InvalidActionOperands`` at construction. Actions
    compare equal when their ``key`` matches, so plans built from two
    snapshots of the same filesystem compare equal.

    Attributes:
        type: Kind of work.
        file: File to copy or delete.
        destination: Catalog of the directory a file is copied to.
        source: Catalog of the source directory to compress.
        primary_path: Primary archive directory compressed output goes to.
    """

    type: ActionType
    file: Optional[FileRecord] = None
    destination: Optional[DirectoryCatalog] = None
    source: Optional[DirectoryCatalog] = None
    primary_path: Optional[Path] = None

    def __post_init__(self) -> None:
        try:
            action_type = ActionType(self.type)
        except ValueError as exc:
            raise InvalidActionOperands(f"Unsupported action type {self.type!r}") from exc
        object.__setattr__(self, "type", action_type)

        required = _REQUIRED_OPERANDS[action_type]
        missing = [name for name in _OPERANDS if name in required and getattr(self, name) is None]
        if missing:
            raise InvalidActionOperands(
                f"Action type {action_type.name} requires {', '.join(missing)}"
            )
        foreign = [name for name in _OPERANDS if name not in required and getattr(self, name) is not None]
        if foreign:
            raise InvalidActionOperands(
                f"Action type {action_type.name} does not take {', '.join(foreign)}"
            )

        if self.destination is not None and self.destination.role is not DirectoryRole.DESTINATION:
            raise InvalidActionOperands(
                f"Copy target {self.destination.path} is a {self.destination.role.value} directory"
            )
        if self.source is not None and self.source.role is not DirectoryRole.SOURCE:
            raise InvalidActionOperands(
                f"Compression input {self.source.path} is a {self.source.role.value} directory"
            )

    @classmethod
    def compress(cls, source: DirectoryCatalog, primary_path: Path) -> "Action":
        return cls(ActionType.COMPRESS, source=source, primary_path=Path(primary_path))

    @classmethod
    def copy(cls, file: FileRecord, destination: DirectoryCatalog) -> "Action":
        return cls(ActionType.COPY, file=file, destination=destination)

    @classmethod
    def delete(cls, file: FileRecord) -> "Action":
        return cls(ActionType.DELETE, file=file)

    @property
    def description(self) -> str:
        """Return a one-line human-readable summary."""
        if self.type is ActionType.COMPRESS:
            return f"Compress {self.source.path} to {self.primary_path}"  # type: ignore[union-attr]
        if self.type is ActionType.COPY:
            return f"Copy {self.file.path} to {self.destination.path}"  # type: ignore[union-attr]
        if self.type is ActionType.DELETE:
            return f"Delete {self.file.path}"  # type: ignore[union-attr]
        raise PlanningError(f"Cannot describe unsupported action type {self.type!r}")

    @property
    def key(self) -> tuple[str, str | None, str | None, str | None, str | None]:
        """Return an identity tuple independent of the catalog objects involved."""

        def _text(value: Any) -> str | None:
            return str(value) if value is not None else None

        return (
            self.type.name,
            _text(self.file.path if self.file else None),
            _text(self.destination.path if self.destination else None),
            _text(self.source.path if self.source else None),
            _text(self.primary_path),
        )

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-ready representation."""
        payload: dict[str, Any] = {
            "type": self.type.name.lower(),
            "description": self.description,
        }
        if self.file is not None:
            payload["file"] = str(self.file.path)
            payload["length"] = self.file.length
        if self.destination is not None:
            payload["destination"] = str(self.destination.path)
        if self.source is not None:
            payload["source"] = str(self.source.path)
        if self.primary_path is not None:
            payload["primary"] = str(self.primary_path)
        return payload

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Action):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.description


@dataclass(slots=True)
class ActionPlan:
    """Ordered actions for one planning pass.

    Attributes:
        actions: Actions sorted by type: compress, copy, delete.
        notes: Warnings noticed while planning (anomalies, retained files).
        compression_candidates: Source catalogs due for compression this run.
    """

    actions: list[Action] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    compression_candidates: list[DirectoryCatalog] = field(default_factory=list)

    @property
    def compressions(self) -> list[Action]:
        return [action for action in self.actions if action.type is ActionType.COMPRESS]

    @property
    def copies(self) -> list[Action]:
        return [action for action in self.actions if action.type is ActionType.COPY]

    @property
    def deletes(self) -> list[Action]:
        return [action for action in self.actions if action.type is ActionType.DELETE]

    @property
    def counts(self) -> dict[str, int]:
        return {
            "compress": len(self.compressions),
            "copy": len(self.copies),
            "delete": len(self.deletes),
            "copy_bytes": sum(action.file.length for action in self.copies if action.file),
        }

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-ready representation of the plan."""
        return {
            "actions": [action.to_payload() for action in self.actions],
            "notes": list(self.notes),
            "compression_candidates": [str(catalog.path) for catalog in self.compression_candidates],
            "counts": self.counts,
        }

    def __len__(self) -> int:
        return len(self.actions)

    def __iter__(self):
        return iter(self.actions)


__all__ = ["ActionType", "Action", "ActionPlan"]
