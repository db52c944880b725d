"""
CLI Layer - Typer application and command groups.

This module contains the command-line host that drives providers through
the pipeline and manages their configuration.
"""

from flixhub.cli.main import app, cli_main

__all__ = ["app", "cli_main"]
