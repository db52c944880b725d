"""
Providers Command - Provider listing and management.

This module implements the ``providers`` command group: listing discovered
providers with their policy decisions, printing a provider's record in the
JSON interchange format, and enabling or disabling providers.
"""

import typer

from flixhub.cli.context import get_config_manager
from flixhub.cli.runtime import open_manager, run_command
from flixhub.core import ProviderError
from flixhub.ui import UIComponents, get_console


# Create providers command group
app = typer.Typer(
    name="providers",
    help="🔌 Manage providers",
    no_args_is_help=True,
)

console = get_console()


@app.command(name="list")
def list_providers(
    enabled_only: bool = typer.Option(
        False,
        "--enabled",
        "-e",
        help="Show only enabled providers"
    ),
) -> None:
    """
    📋 List discovered providers.

    Examples:

        flixhub providers list

        flixhub providers list --enabled
    """
    run_command(_list_providers(enabled_only), "Failed to list providers")


async def _list_providers(enabled_only: bool) -> None:
    async with open_manager() as manager:
        # Loading the enabled providers fills in their stage capabilities
        await manager.get_active_providers()
        status = manager.get_status()

    if enabled_only:
        status["providers"] = {
            key: info for key, info in status["providers"].items() if info.get("enabled")
        }

    if not status["providers"]:
        console.print("[muted]No providers found[/muted]")
    else:
        console.print(UIComponents().create_providers_table(status))

    for key, reason in status["skipped"].items():
        console.print(f"[muted]Skipped {key}: {reason}[/muted]")


@app.command(name="record")
def show_record(
    key: str = typer.Argument(..., help="Provider key"),
) -> None:
    """
    🧾 Print a provider's record as interchange JSON.

    Examples:

        flixhub providers record archive
    """
    run_command(_show_record(key), "Failed to read provider record")


async def _show_record(key: str) -> None:
    async with open_manager() as manager:
        entry = manager.available.get(key)
        if entry is None:
            reason = manager.skipped.get(key) or manager.errors.get(key) or "no such provider"
            raise ProviderError(f"Provider '{key}' is not available: {reason}", provider_name=key)

    typer.echo(entry.record.to_json(indent=2))


@app.command(name="enable")
def enable_provider(
    key: str = typer.Argument(..., help="Provider key to enable"),
) -> None:
    """
    ✅ Enable a provider.

    Examples:

        flixhub providers enable archive
    """
    run_command(_set_enabled(key, True), f"Failed to enable {key}")


@app.command(name="disable")
def disable_provider(
    key: str = typer.Argument(..., help="Provider key to disable"),
) -> None:
    """
    ❌ Disable a provider.

    Examples:

        flixhub providers disable sample
    """
    run_command(_set_enabled(key, False), f"Failed to disable {key}")


async def _set_enabled(key: str, enabled: bool) -> None:
    config_manager = get_config_manager()

    async with open_manager(config_manager) as manager:
        if key not in manager.available:
            raise ProviderError(f"Unknown provider '{key}'", provider_name=key)

    if enabled:
        config_manager.enable_provider(key)
        console.print(f"[success]✅ Enabled {key}[/success]")
    else:
        config_manager.disable_provider(key)
        console.print(f"[success]Disabled {key}[/success]")


__all__ = ["app"]
