"""
Config Command - Configuration inspection and editing.

This module implements the ``config`` command group for showing, changing,
validating and resetting the JSON configuration.
"""

import json
from typing import Any

import typer

from flixhub.cli.context import get_config_manager
from flixhub.ui import display_warning, get_console, handle_error


# Create config command group
app = typer.Typer(
    name="config",
    help="⚙️  Manage configuration",
    no_args_is_help=True,
)

console = get_console()


def _parse_value(raw: str) -> Any:
    """Interpret a command-line value as JSON when possible, else as text."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


@app.command(name="show")
def show_config(
    key: str = typer.Argument(None, help="Dot-separated setting path, e.g. network.timeout"),
) -> None:
    """
    📋 Show settings, or a single setting.

    Examples:

        flixhub config show

        flixhub config show pipeline.link_timeout
    """
    config_manager = get_config_manager()

    if key is None:
        typer.echo(config_manager.settings.model_dump_json(indent=2))
        return

    missing = object()
    value = config_manager.get_setting(key, missing)
    if value is missing:
        display_warning(f"Unknown setting: {key}")
        raise typer.Exit(1)
    typer.echo(json.dumps(value, indent=2))


@app.command(name="set")
def set_config(
    key: str = typer.Argument(..., help="Dot-separated setting path"),
    value: str = typer.Argument(..., help="New value (JSON literals are parsed)"),
) -> None:
    """
    ✏️  Change one setting.

    Examples:

        flixhub config set network.timeout 10

        flixhub config set logging.level DEBUG
    """
    try:
        get_config_manager().update_setting(key, _parse_value(value))
    except Exception as e:
        handle_error(e, f"Failed to update {key}")
        raise typer.Exit(1)

    console.print(f"[success]✅ {key} updated[/success]")


@app.command(name="validate")
def validate_config() -> None:
    """🔍 Validate the configuration files."""
    report = get_config_manager().validate_configuration()

    for issue in report["issues"]:
        console.print(f"[error]❌ {issue}[/error]")
    for warning in report["warnings"]:
        console.print(f"[warning]⚠️  {warning}[/warning]")

    if not report["valid"]:
        raise typer.Exit(1)
    console.print("[success]✅ Configuration is valid[/success]")


@app.command(name="reset")
def reset_config(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """♻️  Reset all configuration to defaults."""
    if not yes and not typer.confirm("Reset settings and providers to defaults?"):
        raise typer.Abort()

    get_config_manager().reset_to_defaults()
    console.print("[success]✅ Configuration reset to defaults[/success]")


__all__ = ["app"]
