"""Command line interface for Archivist."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from archivist.catalog import CatalogError, DirectoryCatalog, FileReport
from archivist.config import ArchivistConfig, ConfigError, ConfigManager, resolve_with_precedence
from archivist.logs import configure_logging
from archivist.planning import ActionPlan, ActionPlanner

console = Console()


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)

    raise click.ClickException(message) from original


def _format_summary_line(command: str, target: Path | str, metrics: dict[str, Any]) -> str:
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {target}: {parts}.[/green]"


def _format_size(length: int) -> str:
    size = float(length)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:,.0f} {unit}" if unit == "B" else f"{size:,.1f} {unit}"
        size /= 1024
    return f"{size:,.1f} TB"


def _manager(ctx: click.Context) -> ConfigManager:
    config_path = (ctx.obj or {}).get("config_path")
    return ConfigManager(config_path=Path(config_path) if config_path else None)


def _config_lines(manager: ConfigManager) -> list[str]:
    return [
        line for line in manager.read_text().splitlines() if not line.startswith("# Last updated:")
    ]


def _render_plan(job_name: str, result: ActionPlan, *, quiet: bool) -> None:
    if not quiet:
        if result.actions:
            table = Table(title=f"Planned actions for {job_name}")
            table.add_column("#", justify="right")
            table.add_column("Action")
            table.add_column("File", overflow="fold")
            table.add_column("Target", overflow="fold")
            table.add_column("Size", justify="right")
            for position, action in enumerate(result.actions, start=1):
                target = action.destination.path if action.destination else ""
                table.add_row(
                    str(position),
                    action.type.name.lower(),
                    str(action.file.path) if action.file else "",
                    str(target),
                    _format_size(action.file.length) if action.file else "",
                )
            console.print(table)
        else:
            console.print("[green]Every destination is up to date.[/green]")

        if result.compression_candidates:
            console.print("[cyan]Sources due for compression:[/cyan]")
            for catalog in result.compression_candidates:
                console.print(f"  - {catalog.path} -> {catalog.base_archive_name}")

    if result.notes:
        console.print("[yellow]Plan notes:[/yellow]")
        for note in result.notes:
            console.print(f"  - {note}")

    counts = result.counts
    console.print(
        _format_summary_line(
            "Plan",
            job_name,
            {
                "copies": counts["copy"],
                "deletes": counts["delete"],
                "copy_size": _format_size(counts["copy_bytes"]),
                "compression_candidates": len(result.compression_candidates),
            },
        )
    )


def _render_report(job_name: str, report: FileReport) -> None:
    if report.items:
        table = Table(title=f"Archive copies for {job_name}")
        table.add_column("File", overflow="fold")
        table.add_column("Copies", justify="right")
        table.add_column("Size", justify="right")
        table.add_column("Last write (UTC)")
        table.add_column("Locations", overflow="fold")
        for item in report.items:
            if item.instance_count >= 3:
                style = "green"
            elif item.instance_count == 2:
                style = "cyan"
            else:
                style = "yellow"
            locations = "\n".join(
                f"{instance.directory}{' (fuzzy)' if instance.fuzzy else ''}"
                for instance in item.ordered_instances()
            )
            table.add_row(
                item.name,
                str(item.instance_count),
                _format_size(item.length),
                item.last_write_time.strftime("%Y-%m-%d %H:%M:%S"),
                locations,
                style=style,
            )
        console.print(table)
    else:
        console.print("[yellow]No archive files were found.[/yellow]")

    if report.duplicate_names:
        console.print("[yellow]Names with diverging copies:[/yellow]")
        for name in report.duplicate_names:
            console.print(f"  - {name}")

    console.print(
        _format_summary_line(
            "Report",
            job_name,
            {
                "files": len(report),
                "instances": report.instance_count,
                "single_copies": len(report.under_replicated()),
                "duplicate_names": len(report.duplicate_names),
            },
        )
    )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="archivist")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=str),
    help="Configuration file to use instead of ~/.archivist/config.yaml.",
)
@click.option("--log-level", type=str, help="Override the configured logging level.")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str | None) -> None:
    """Archivist plans how versioned archives are replicated to backup destinations."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["log_level"] = log_level


@cli.command()
@click.argument("job_name")
@click.option("--json", "json_output", is_flag=True, help="Emit the plan as JSON.")
@click.option("--quiet", is_flag=True, help="Only print notes and the summary line.")
@click.pass_context
def plan(ctx: click.Context, job_name: str, json_output: bool, quiet: bool) -> None:
    """Scan the directories of JOB_NAME and show the actions needed to update its destinations.

    Nothing is copied or deleted; the plan is only reported.

    Args:
        ctx: Click context carrying group options.
        job_name: Name of the configured job.
        json_output: If True, emit the plan as JSON.
        quiet: If True, suppress the action table.

    Raises:
        click.ClickException: If configuration or the primary directory cannot be read.
    """
    if json_output and quiet:
        raise click.ClickException("--json cannot be combined with --quiet.")

    try:
        config, job = _manager(ctx).load_job(job_name)
        configure_logging(config.logging, level_override=ctx.obj.get("log_level"))
        result = ActionPlanner().plan_job(job)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return
    except CatalogError as exc:
        _handle_cli_error(str(exc), code="catalog_error", json_output=json_output, original=exc)
        return
    except ValueError as exc:
        _handle_cli_error(str(exc), code="invalid_value", json_output=json_output, original=exc)
        return

    if json_output:
        payload = result.to_payload()
        payload["job"] = job.name
        console.print_json(data=payload)
        return

    _render_plan(job.name, result, quiet=quiet)


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=str))
def versions(path: str) -> None:
    """List the versioned archive sets found directly inside PATH."""
    try:
        catalog = DirectoryCatalog.primary(path)
    except CatalogError as exc:
        raise click.ClickException(str(exc)) from exc

    table = Table(title=f"Version sets in {catalog.path}")
    table.add_column("Base name")
    table.add_column("Versions", justify="right")
    table.add_column("Oldest")
    table.add_column("Latest")
    for version_set in catalog.version_sets:
        versions_list = version_set.versions
        table.add_row(
            version_set.base_name,
            str(len(version_set)),
            versions_list[0],
            versions_list[-1],
        )
    console.print(table)

    for anomaly in catalog.anomalies:
        console.print(f"[yellow]{anomaly}[/yellow]")

    console.print(
        _format_summary_line(
            "Versions",
            catalog.path,
            {
                "version_sets": len(catalog.version_sets),
                "unversioned": len(catalog.unversioned_files),
                "ignored": len(catalog.ignored_files),
            },
        )
    )


@cli.command()
@click.argument("job_name")
@click.option("--json", "json_output", is_flag=True, help="Emit the report as JSON.")
@click.pass_context
def report(ctx: click.Context, job_name: str, json_output: bool) -> None:
    """Count the copies of every archive in the primary and destination directories of JOB_NAME."""
    try:
        config, job = _manager(ctx).load_job(job_name)
        configure_logging(config.logging, level_override=ctx.obj.get("log_level"))
        file_report = FileReport.for_job(job)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return
    except CatalogError as exc:
        _handle_cli_error(str(exc), code="catalog_error", json_output=json_output, original=exc)
        return

    if json_output:
        payload = file_report.to_payload()
        payload["job"] = job.name
        console.print_json(data=payload)
        return

    _render_report(job.name, file_report)


@cli.group()
def config() -> None:
    """Manage Archivist configuration files and overrides."""


@config.command("path")
@click.pass_context
def config_path(ctx: click.Context) -> None:
    """Print the configuration file location."""
    click.echo(str(_manager(ctx).config_path))


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
@click.pass_context
def config_view(ctx: click.Context, no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = _manager(ctx)
    try:
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Jobs are addressed by name, e.g. ``jobs.daily.process_slow_volumes``.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = _manager(ctx)
    manager.ensure_exists()
    before = _config_lines(manager)

    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'logging.level'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    file_data = manager.load_file_overrides()
    try:
        updated = resolve_with_precedence(
            defaults=ArchivistConfig(),
            file_overrides=file_data,
            cli_overrides={".".join(segments): parsed_value},
        )
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(updated)
    after = _config_lines(manager)

    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    if not diff:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


def main() -> None:
    cli(obj={})


__all__ = ["cli", "main"]
