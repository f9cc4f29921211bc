"""Configuration management for Archivist."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import (
    ArchivistConfig,
    DestinationDirectorySettings,
    DirectorySettings,
    JobSettings,
    LoggingSettings,
    SourceDirectorySettings,
)
from .resolver import ENV_PREFIX, flatten_for_env, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.archivist/config.yaml")
_CONFIG_HEADER = textwrap.dedent(
    """\
    # Archivist configuration file
    # Jobs list a primary_directory plus source_directories and destination_directories;
    # global_* directory lists are appended to every job. Manage via `archivist config set`.
    """
)


_SAMPLE_JOB = JobSettings(
    name="daily",
    primary_directory="~/Archive",
    source_directories=[SourceDirectorySettings(path="~/Documents")],
    destination_directories=[DestinationDirectorySettings(path="/mnt/backup", removable=True)],
)


def _sample_job_comment() -> str:
    """Return an example job as commented YAML for files without any jobs."""
    sample = yaml.safe_dump(
        {"jobs": [_SAMPLE_JOB.model_dump(mode="python", exclude_defaults=True)]},
        sort_keys=False,
    )
    lines = ["# Example job; uncomment and adjust to start archiving:"]
    lines.extend(f"# {line}" for line in sample.splitlines())
    return "\n".join(lines) + "\n"


class ConfigManager:
    """Load and persist configuration data, applying precedence rules."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> ArchivistConfig:
        """Load configuration data from disk, applying precedence rules."""
        if ensure_file:
            self.ensure_exists()

        env_data: Mapping[str, str] | None = None
        if include_env:
            env_data = env_overrides if env_overrides is not None else self._env

        return resolve_with_precedence(
            defaults=ArchivistConfig(),
            file_overrides=self._read_file(),
            env_overrides=self._extract_env(env_data) if env_data else None,
            cli_overrides=cli_overrides,
        )

    def load_job(
        self,
        job_name: str,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
    ) -> tuple[ArchivistConfig, JobSettings]:
        """Load configuration and return it with the named job, globals merged in.

        Raises:
            ConfigError: If the file cannot be read or no job has that name.
        """
        config = self.load(cli_overrides=cli_overrides)
        if not config.jobs:
            raise ConfigError(
                f"No jobs are configured in {self._config_path}; "
                "see the commented example job in that file."
            )
        return config, config.select_job(job_name)

    def load_file_overrides(self) -> dict[str, Any]:
        """Return raw overrides stored on disk."""
        return self._read_file()

    def save(self, config: ArchivistConfig | Mapping[str, Any]) -> None:
        """Persist configuration data to disk."""
        if isinstance(config, ArchivistConfig):
            data = config.model_dump(mode="python")
        else:
            data = dict(config)
        self._write_file(data)

    def ensure_exists(self) -> Path:
        """Create a configuration file with defaults if one does not exist."""
        if not self._config_path.exists():
            self._write_file(ArchivistConfig().model_dump(mode="python"))
        return self._config_path

    def read_text(self) -> str:
        """Return the current configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    # Internal helpers -------------------------------------------------

    def _read_file(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}

        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")

        return raw

    def _write_file(self, data: Mapping[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        serialized = yaml.safe_dump(dict(data), sort_keys=False)
        if not data.get("jobs"):
            serialized += _sample_job_comment()
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        self._config_path.write_text(
            f"{_CONFIG_HEADER}# Last updated: {stamp}\n{serialized}", encoding="utf-8"
        )

    def _extract_env(self, env: Mapping[str, str]) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        for key, raw_value in env.items():
            if not key.startswith(ENV_PREFIX):
                continue
            path = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
            if not path:
                continue
            try:
                parsed_value: Any = yaml.safe_load(raw_value)
            except yaml.YAMLError:
                parsed_value = raw_value

            node = overrides
            for segment in path[:-1]:
                child = node.get(segment)
                if not isinstance(child, dict):
                    child = node[segment] = {}
                node = child
            node[path[-1]] = parsed_value

        return overrides


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "ArchivistConfig",
    "DirectorySettings",
    "SourceDirectorySettings",
    "DestinationDirectorySettings",
    "JobSettings",
    "LoggingSettings",
    "resolve_with_precedence",
    "flatten_for_env",
    "ConfigError",
]
