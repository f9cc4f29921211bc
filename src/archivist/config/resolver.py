"""Configuration resolution helpers.

Jobs are stored as a list in the configuration file but addressed by name in
environment and CLI overrides, e.g. ``jobs.daily.process_slow_volumes`` or
``ARCHIVIST__JOBS__DAILY__PROCESS_SLOW_VOLUMES``. Overrides for a job that is
not in the list are appended as a new job.
"""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import ArchivistConfig

ENV_PREFIX = "ARCHIVIST__"


def resolve_with_precedence(
    *,
    defaults: ArchivistConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> ArchivistConfig:
    """Merge configuration sources in order: defaults, file, environment, CLI."""
    merged = defaults.model_dump(mode="python")

    for name, source in (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    ):
        if source is None:
            continue
        overrides = _normalize_mapping(source, source_name=name)
        jobs_override = overrides.pop("jobs", None)
        merged = _deep_merge(merged, overrides)
        if jobs_override is not None:
            merged["jobs"] = _merge_jobs(merged.get("jobs", []), jobs_override, source_name=name)

    try:
        return ArchivistConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def flatten_for_env(config: ArchivistConfig) -> Dict[str, str]:
    """Flatten the config into `ARCHIVIST__SECTION__KEY` environment variable mappings.

    Jobs are keyed by name; directory lists are rendered as YAML flow sequences.
    """
    flat: Dict[str, str] = {}
    data = config.model_dump(mode="python")
    jobs = data.pop("jobs", [])

    def _recurse(prefix: list[str], value: Any) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                _recurse(prefix + [str(key)], child)
            return
        env_key = ENV_PREFIX + "__".join(part.upper() for part in prefix)
        if isinstance(value, list):
            flat[env_key] = yaml.safe_dump(value, default_flow_style=True).strip()
        else:
            flat[env_key] = "null" if value is None else str(value)

    for top_key, child_value in data.items():
        _recurse([str(top_key)], child_value)

    for job in jobs:
        name = job.pop("name")
        _recurse(["jobs", name], job)

    return flat


def _merge_jobs(base: list[dict[str, Any]], override: Any, *, source_name: str) -> list[dict[str, Any]]:
    """Merge job overrides into the job list, matching jobs by name."""
    if isinstance(override, list):
        for entry in override:
            if not isinstance(entry, MappingABC) or "name" not in entry:
                raise ConfigError(
                    f"{source_name.capitalize()} job entries must be mappings with a name."
                )
        if source_name == "file":
            # The file is authoritative for the job list.
            return [deepcopy(dict(entry)) for entry in override]
        override = {str(entry["name"]): entry for entry in override}

    if not isinstance(override, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} job overrides must be a mapping.")

    jobs = [deepcopy(job) for job in base]
    index = {str(job.get("name")).lower(): position for position, job in enumerate(jobs)}
    for name, values in override.items():
        if not isinstance(values, MappingABC):
            raise ConfigError(f"{source_name.capitalize()} override for job {name} must be a mapping.")
        position = index.get(str(name).lower())
        if position is not None:
            jobs[position] = _deep_merge(jobs[position], values)
        else:
            jobs.append({**_deep_merge({}, values), "name": name})
    return jobs


def _normalize_mapping(source: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    result: dict[str, Any] = {}
    for key, value in dict(source).items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        _assign(result, key.split("."), value, source_name=source_name)
    return result


def _assign(target: dict[str, Any], path: list[str], value: Any, *, source_name: str) -> None:
    node = target
    for segment in path[:-1]:
        existing = node.setdefault(segment, {})
        if not isinstance(existing, dict):
            raise ConfigError(
                f"{source_name.capitalize()} override for {'.'.join(path)} conflicts with existing value."
            )
        node = existing
    leaf = path[-1]
    if isinstance(value, MappingABC):
        nested = _normalize_mapping(value, source_name=source_name)
        existing_leaf = node.get(leaf)
        node[leaf] = _deep_merge(existing_leaf if isinstance(existing_leaf, MappingABC) else {}, nested)
    else:
        node[leaf] = value


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = ["ENV_PREFIX", "resolve_with_precedence", "flatten_for_env"]
