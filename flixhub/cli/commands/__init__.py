"""
CLI Commands - Command implementations for the flixhub CLI.

Each module holds one command group (or a set of top-level commands)
registered with the main Typer app.
"""
