"""
Console Management - Centralized Rich console configuration.

This module provides the shared console, the color palette every display
draws from, and a status spinner for long-running provider calls.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

from rich.console import Console
from rich.status import Status
from rich.theme import Theme


@dataclass(frozen=True)
class ColorPalette:
    """Color palette shared by all displays."""

    primary: str = "blue"
    secondary: str = "cyan"
    accent: str = "magenta"

    success: str = "green"
    warning: str = "yellow"
    error: str = "red"
    info: str = "blue"

    text_primary: str = "white"
    text_muted: str = "dim white"

    border_primary: str = "blue"
    border_secondary: str = "dim blue"


PALETTE = ColorPalette()

THEME = Theme({
    "info": PALETTE.info,
    "success": PALETTE.success,
    "warning": PALETTE.warning,
    "error": f"bold {PALETTE.error}",
    "muted": PALETTE.text_muted,
    "title": f"bold {PALETTE.primary}",
})


# Global console instance
_console: Optional[Console] = None


def setup_console(
    force_terminal: Optional[bool] = None,
    width: Optional[int] = None,
) -> Console:
    """
    Set up and configure the global Rich console.

    Args:
        force_terminal: Force terminal mode detection
        width: Console width override

    Returns:
        Configured Rich Console instance
    """
    global _console

    console_kwargs = {
        "theme": THEME,
        "stderr": False,
        "force_terminal": force_terminal,
        "color_system": "auto",
    }
    if width is not None:
        console_kwargs["width"] = width

    _console = Console(**console_kwargs)
    return _console


def get_console() -> Console:
    """
    Get the global Rich console instance.

    Creates a default console if none exists.
    """
    global _console

    if _console is None:
        _console = setup_console()

    return _console


def get_palette() -> ColorPalette:
    return PALETTE


@contextmanager
def status_spinner(message: str, spinner: str = "dots"):
    """Simple status spinner context manager."""
    console = get_console()
    status = Status(message, spinner=spinner, console=console)

    try:
        status.start()
        yield status
    finally:
        status.stop()


__all__ = [
    "ColorPalette",
    "PALETTE",
    "setup_console",
    "get_console",
    "get_palette",
    "status_spinner",
]
