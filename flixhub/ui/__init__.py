"""
UI Layer - Rich console, components and error displays.

This module contains the console setup and the Rich components that give
every CLI command a consistent look.
"""

from flixhub.ui.components import UIComponents
from flixhub.ui.console import get_console, get_palette, setup_console, status_spinner
from flixhub.ui.error_handler import ErrorHandler, display_info, display_warning, handle_error

__all__ = [
    # Components
    "UIComponents",
    # Console Management
    "get_console",
    "get_palette",
    "setup_console",
    "status_spinner",
    # Error Handling
    "ErrorHandler",
    "handle_error",
    "display_warning",
    "display_info",
]
