"""
CLI Main Application - Typer app entry point.

This module provides the main CLI application entry point: global options,
logging and configuration setup, and command registration.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import typer
from rich.traceback import install as install_rich_traceback

from flixhub import __version__
from flixhub.cli.context import get_config_manager, set_config_manager, set_debug
from flixhub.core import ConfigManager
from flixhub.core.config_schemas import LoggingSettings
from flixhub.core.exceptions import ConfigurationError, FlixHubError
from flixhub.ui import get_console, handle_error


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Create main Typer application
app = typer.Typer(
    name="flixhub",
    help="🎬 Browse, search and resolve playable links across media providers",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version information and exit",
        is_flag=True,
    ),
    config_dir: Optional[Path] = typer.Option(
        None,
        "--config-dir",
        help="Configuration directory path",
        exists=False,
        file_okay=False,
        dir_okay=True,
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode with detailed logging",
        is_flag=True,
    ),
) -> None:
    """
    🎬 FlixHub - Media provider pipeline.

    Drives independently written providers through catalogs, search,
    details and streaming link resolution.
    """
    if version:
        get_console().print(f"[bold blue]FlixHub[/bold blue] version [green]{__version__}[/green]")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    try:
        _initialize_application(config_dir=config_dir, debug=debug)
    except Exception as e:
        if isinstance(e, FlixHubError):
            handle_error(e, "During application initialization")
        else:
            handle_error(e, "Unexpected error during startup", show_traceback=debug)
        raise typer.Exit(1)


def _initialize_application(config_dir: Optional[Path] = None, debug: bool = False) -> None:
    """
    Initialize configuration, logging and tracebacks.

    Args:
        config_dir: Configuration directory override
        debug: Enable debug mode
    """
    set_debug(debug)
    install_rich_traceback(show_locals=debug)

    config_dir = config_dir or Path("config")
    try:
        config_manager = ConfigManager(config_dir)
    except OSError as e:
        raise ConfigurationError(f"Failed to load configuration: {e}", str(config_dir))
    set_config_manager(config_manager)

    _setup_logging(config_manager.settings.logging, config_manager.config_dir, debug)


def _setup_logging(settings: LoggingSettings, log_dir: Path, debug: bool = False) -> None:
    """
    Set up application logging.

    Args:
        settings: Logging section of the application settings
        log_dir: Directory the log file is written to
        debug: Enable debug logging
    """
    level = logging.DEBUG if debug else getattr(logging, settings.level)

    handlers = [logging.StreamHandler(sys.stderr)]
    if settings.file:
        handlers.append(RotatingFileHandler(
            log_dir / settings.file,
            maxBytes=settings.max_bytes,
            backupCount=settings.backup_count,
            encoding="utf-8",
        ))

    # Configure root logger
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)

    # Reduce noise from third-party libraries
    if not debug:
        logging.getLogger("aiohttp").setLevel(logging.WARNING)
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("selenium").setLevel(logging.WARNING)


def _register_commands() -> None:
    """Register command groups with the main app."""
    # Import commands here to avoid circular imports
    from flixhub.cli.commands import browse, config, providers

    app.add_typer(providers.app, name="providers", help="🔌 Manage providers")
    app.add_typer(config.app, name="config", help="⚙️  Manage configuration")

    app.command(name="catalogs")(browse.catalogs)
    app.command(name="search")(browse.search)
    app.command(name="details")(browse.details)
    app.command(name="links")(browse.links)
    app.command(name="test")(browse.test)


# Register commands at module level to ensure they're available for help
_register_commands()


@app.command(name="version")
def show_version() -> None:
    """📋 Show version information."""
    get_console().print(f"[bold blue]FlixHub[/bold blue] version [green]{__version__}[/green]")


def cli_main() -> None:
    """
    Main CLI entry point for the flixhub command.

    This function is called when the user runs 'flixhub' from the command line.
    """
    try:
        app()
    except KeyboardInterrupt:
        get_console().print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(130)  # Standard exit code for SIGINT
    except Exception as e:
        handle_error(e, "Unexpected error in CLI")
        sys.exit(1)


# Export main components
__all__ = [
    "app",
    "cli_main",
    "get_config_manager",
]
