"""Planner deriving copy and delete actions from directory catalogs."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from archivist.catalog import DirectoryCatalog, DirectoryRole, FileRecord
from archivist.config.models import JobSettings

from .models import Action, ActionPlan

LOGGER = logging.getLogger(__name__)


class ActionPlanner:
    """Work out what has to happen to bring every destination up to date.

    The planner keeps no state between calls: each plan is derived from the
    catalogs it is given, which callers rebuild after every stage that
    touches the filesystem.
    """

    def build_plan(
        self,
        primary: DirectoryCatalog,
        sources: Iterable[DirectoryCatalog] = (),
        destinations: Iterable[DirectoryCatalog] = (),
        *,
        job: Optional[JobSettings] = None,
        now: Optional[datetime] = None,
    ) -> ActionPlan:
        """Produce the ordered action plan for the current catalogs.

        Args:
            primary: Catalog of the primary archive directory.
            sources: Catalogs of the source directories.
            destinations: Catalogs of the destination directories.
            job: Active job, consulted when selecting compression candidates.
            now: Clock override for age-based retention and hour windows.

        Returns:
            ActionPlan: Actions ordered compress, copy, delete plus planner notes.
        """

        if primary.role is not DirectoryRole.PRIMARY:
            raise ValueError(f"Expected a primary catalog, got {primary.role.value}")

        reference = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        plan = ActionPlan()
        seen: set[tuple] = set()

        source_list = self._ordered(sources, DirectoryRole.SOURCE)
        destination_list = self._ordered(destinations, DirectoryRole.DESTINATION)
        active_destinations = [dst for dst in destination_list if dst.is_enabled_and_available]

        for catalog in (primary, *destination_list):
            plan.notes.extend(catalog.anomalies)
        for dst in destination_list:
            if dst.is_enabled and not dst.is_available:
                plan.notes.append(f"Destination {dst.path} is not available; nothing will be copied there.")

        plan.compression_candidates = self._compression_candidates(source_list, job, reference)

        def _add(action: Action) -> None:
            if action.key in seen:
                return
            seen.add(action.key)
            plan.actions.append(action)
            LOGGER.debug("Planned: %s", action.description)

        for file in primary.versioned_files:
            for dst in active_destinations:
                if self._needs_versioned_copy(file, dst):
                    _add(Action.copy(file, dst))

        for file in primary.unversioned_files:
            for dst in active_destinations:
                if dst.wants_file(file) and dst.is_absent_or_stale(file.name, file.last_write_time):
                    _add(Action.copy(file, dst))

        for dst in active_destinations:
            for action in self._retention_deletes(dst, reference, plan.notes):
                _add(action)

        plan.actions.sort(key=lambda action: action.type)
        LOGGER.info(
            "Planned %d copies and %d deletes across %d destinations",
            len(plan.copies),
            len(plan.deletes),
            len(active_destinations),
        )
        return plan

    def plan_job(self, job: JobSettings, *, now: Optional[datetime] = None) -> ActionPlan:
        """Catalog every directory of ``job`` and plan against the fresh catalogs."""
        primary = DirectoryCatalog.primary(job.primary_directory)
        sources = [DirectoryCatalog.source(settings) for settings in job.source_directories]
        destinations = [
            DirectoryCatalog.destination(settings) for settings in job.destination_directories
        ]
        return self.build_plan(primary, sources, destinations, job=job, now=now)

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _ordered(self, catalogs: Iterable[DirectoryCatalog], role: DirectoryRole) -> list[DirectoryCatalog]:
        ordered = sorted(catalogs, key=lambda catalog: (catalog.priority, str(catalog.path)))
        for catalog in ordered:
            if catalog.role is not role:
                raise ValueError(f"Expected {role.value} catalogs, got {catalog.role.value} for {catalog.path}")
        return ordered

    def _compression_candidates(
        self,
        sources: list[DirectoryCatalog],
        job: Optional[JobSettings],
        now: datetime,
    ) -> list[DirectoryCatalog]:
        # Compress actions are not emitted yet; the candidates are reported so
        # the compression pass and the CLI can show what is due.
        local_now = now.astimezone()
        candidates = [
            src
            for src in sources
            if src.is_enabled_and_available and src.is_to_be_processed(job, local_now)
        ]
        for src in candidates:
            LOGGER.debug("Source %s is due for compression", src.path)
        return candidates

    def _needs_versioned_copy(self, file: FileRecord, dst: DirectoryCatalog) -> bool:
        if not dst.wants_file(file):
            return False
        version_set = dst.version_sets.get(file.base_name)
        newer = version_set is None or (file.version_number or 0) > version_set.latest_version_number
        # Older versions missing at the destination are not back-filled.
        return newer and dst.is_absent(file.name)

    def _retention_deletes(
        self,
        dst: DirectoryCatalog,
        now: datetime,
        notes: list[str],
    ) -> list[Action]:
        retain = dst.retain_maximum_versions
        if retain <= 0:
            return []

        actions: list[Action] = []
        for version_set in dst.version_sets:
            excess = len(version_set) - retain
            if excess <= 0:
                continue
            for name in version_set.oldest(excess):
                record = dst.find(name)
                if record is None:
                    continue
                if record.is_older_than_days(dst.retain_younger_than_days, now):
                    actions.append(Action.delete(record))
                else:
                    notes.append(
                        f"Keeping {record.path} beyond the {retain}-version limit; "
                        f"it is younger than {dst.retain_younger_than_days} days."
                    )
        return actions


__all__ = ["ActionPlanner"]
