"""
Command Runtime - Shared plumbing for async CLI commands.

Commands run an async helper under ``asyncio.run`` and map interruptions and
errors onto exit codes; provider sessions are opened through a short-lived
ProviderManager that is always cleaned up.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Dict, List, Optional

import typer

from flixhub.cli.context import get_config_manager, is_debug
from flixhub.core import ConfigManager, ProviderError, ProviderManager, ProviderSession
from flixhub.ui import get_console, handle_error


logger = logging.getLogger(__name__)


def run_command(coro: Awaitable[Any], context: str) -> Any:
    """
    Run a command's async helper and translate failures into exit codes.

    Args:
        coro: The helper coroutine
        context: Shown with any error that escapes the helper

    Returns:
        Whatever the helper returns
    """
    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        get_console().print("\n[yellow]Operation cancelled by user[/yellow]")
        raise typer.Exit(130)
    except (typer.Exit, typer.Abort):
        raise
    except Exception as e:
        logger.debug(f"{context}: {e}", exc_info=True)
        handle_error(e, context, show_traceback=is_debug())
        raise typer.Exit(1)


@asynccontextmanager
async def open_manager(config_manager: Optional[ConfigManager] = None) -> AsyncIterator[ProviderManager]:
    """A ProviderManager with discovery done, cleaned up on exit."""
    manager = ProviderManager(config_manager or get_config_manager())
    try:
        await manager.discover_providers()
        yield manager
    finally:
        await manager.cleanup()


@asynccontextmanager
async def open_session(key: str, config_manager: Optional[ConfigManager] = None) -> AsyncIterator[ProviderSession]:
    """
    Load one provider by key.

    Raises:
        ProviderError: If the provider is unknown, refused by policy, or fails to load
    """
    async with open_manager(config_manager) as manager:
        session = await manager.load_provider(key)
        if session is None:
            reason = manager.skipped.get(key) or manager.errors.get(key) or "no such provider"
            raise ProviderError(f"Provider '{key}' is not available: {reason}", provider_name=key)
        yield session


def parse_filters(values: Optional[List[str]]) -> Dict[str, Any]:
    """
    Parse repeated ``name=value`` options into a filter mapping.

    Repeating a name collects its values into a list (for multi-select
    filters).
    """
    filters: Dict[str, Any] = {}
    for raw in values or []:
        name, sep, value = raw.partition("=")
        name = name.strip()
        if not sep or not name:
            raise typer.BadParameter(f"Expected name=value, got '{raw}'", param_hint="--filter")
        value = value.strip()
        if name in filters:
            existing = filters[name]
            filters[name] = (existing if isinstance(existing, list) else [existing]) + [value]
        else:
            filters[name] = value
    return filters


__all__ = ["run_command", "open_manager", "open_session", "parse_filters"]
