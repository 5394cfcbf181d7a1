"""Command line interface for photo back-up settings and state."""

from __future__ import annotations

import difflib
import logging
from typing import Any

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from photobackup.config import (
    ConfigError,
    ConfigManager,
    FolderStructure,
    PhotoBackupConfig,
    invalidates_change_token,
    resolve_with_precedence,
)
from photobackup.planning import example_path
from photobackup.state import StateError, StateRepository

console = Console()


def _configure_logging(level_name: str) -> None:
    """Install a Rich logging handler at the configured level.

    Args:
        level_name: Name of the logging level, e.g. ``"INFO"``.
    """
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a nested value within a dictionary for a dotted path.

    Args:
        target: Mapping to mutate in-place.
        path: Sequence of keys representing the nested location.
        value: Value to assign at the nested location.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """
    node = target
    for segment in path[:-1]:
        existing = node.get(segment)
        if existing is None:
            existing = {}
            node[segment] = existing
        elif not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


def _validated(file_data: dict[str, Any]) -> PhotoBackupConfig:
    try:
        return resolve_with_precedence(defaults=PhotoBackupConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


def _reset_token_if_needed(before: PhotoBackupConfig, after: PhotoBackupConfig) -> None:
    """Discard the stored change token when the source or destination changed."""
    if not invalidates_change_token(before.backup, after.backup):
        return
    try:
        StateRepository().reset_change_token()
    except (OSError, StateError) as exc:
        raise click.ClickException(f"Unable to reset change token: {exc}") from exc
    console.print(
        "[cyan]Back-up source or destination changed; the next run scans everything.[/cyan]"
    )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="photobackup")
def cli() -> None:
    """Back up a photo library into a synchronized folder.

    Returns:
        None: This function is invoked for its side effects.
    """
    try:
        level = ConfigManager().load(ensure_file=False).logging.level
    except ConfigError:
        level = "WARNING"
    _configure_logging(level)


@cli.group()
def config() -> None:
    """Manage photo back-up configuration files and overrides.

    Returns:
        None: This function is invoked for its side effects.
    """


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="json"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    before_text = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'backup.album_id'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    file_data = manager.load_file_overrides()
    before = _validated(dict(file_data))

    try:
        _assign_nested(file_data, segments, parsed_value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    after = _validated(file_data)
    manager.save(file_data)
    after_text = manager.read_text().splitlines()

    diff = [
        line
        for line in difflib.unified_diff(
            before_text,
            after_text,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
        if not line.startswith(("-# Last updated", "+# Last updated"))
    ]

    changed = [line for line in diff if not line.startswith(("---", "+++"))]
    if not any(line.startswith(("-", "+")) for line in changed):
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    _reset_token_if_needed(before, after)
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    before = _validated(manager.load_file_overrides())
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return

    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    after = _validated(parsed)
    manager.save(parsed)
    _reset_token_if_needed(before, after)
    console.print("[green]Configuration updated successfully.[/green]")


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Emit status information as JSON.")
def status(json_output: bool) -> None:
    """Display the configured back-up source, destination and last run.

    Args:
        json_output: When True, emit JSON instead of a table.

    Raises:
        click.ClickException: If configuration or state cannot be loaded.
    """
    try:
        backup = ConfigManager().load().backup
        state = StateRepository().load_or_default()
    except (ConfigError, StateError) as exc:
        raise click.ClickException(str(exc)) from exc

    last_completed = state.last_completed_at.isoformat() if state.last_completed_at else None
    payload: dict[str, Any] = {
        "ready": backup.is_ready,
        "album_id": backup.album_id or None,
        "folder_id": backup.folder_id or None,
        "folder_structure": backup.folder_structure.value,
        "categories": backup.model_dump(mode="json")["categories"],
        "purge_enabled": backup.purge_enabled,
        "background_copy": backup.background_copy,
        "last_completed_at": last_completed,
        "has_change_token": state.change_token is not None,
    }

    if json_output:
        console.print_json(data=payload)
        return

    table = Table(title="Photo back-up status", show_header=False)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for name, value in payload.items():
        if isinstance(value, list):
            rendered = ", ".join(value) or "-"
        elif value is None:
            rendered = "-"
        else:
            rendered = str(value)
        table.add_row(name.replace("_", " "), rendered)
    console.print(table)


@cli.command("reset-token")
def reset_token() -> None:
    """Forget the stored change token so the next run scans the whole album.

    Raises:
        click.ClickException: If the state file cannot be updated.
    """
    try:
        StateRepository().reset_change_token()
    except (OSError, StateError) as exc:
        raise click.ClickException(str(exc)) from exc
    console.print("[green]Change token cleared; the next back-up performs a full scan.[/green]")


@cli.command()
def layouts() -> None:
    """List the available folder structures with an example path for each."""
    table = Table(title="Folder structures")
    table.add_column("Value", style="bold")
    table.add_column("Example path")
    for structure in FolderStructure:
        table.add_row(structure.value, example_path(structure))
    console.print(table)


def main() -> None:
    """Invoke the Click CLI as the console script entry point.

    Returns:
        None: This function is invoked for its side effects.
    """
    cli()


if __name__ == "__main__":
    main()
