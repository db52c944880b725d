"""
Error Handler - Error displays with context and suggestions.

This module provides consistent error handling and display across the CLI,
with one panel layout per FlixHub error category and actionable suggestions.
"""

import traceback
from typing import List, Optional

from rich.panel import Panel

from flixhub.core.exceptions import (
    ConfigurationError,
    FlixHubError,
    MisconfiguredProviderError,
    NetworkError,
    ParseError,
    ProviderError,
    RenderingError,
    ValidationError,
)
from flixhub.ui.console import get_console, get_palette


class ErrorHandler:
    """Handles error display with consistent formatting and helpful context."""

    def __init__(self):
        self.console = get_console()
        self.palette = get_palette()

    def handle_error(
        self,
        error: Exception,
        context: Optional[str] = None,
        show_traceback: bool = False
    ) -> None:
        """
        Handle and display an error with appropriate formatting.

        Args:
            error: Exception to handle
            context: Additional context about where the error occurred
            show_traceback: Whether to show the full traceback
        """
        if isinstance(error, FlixHubError):
            self._handle_flixhub_error(error, context, show_traceback)
        else:
            self._handle_generic_error(error, context, show_traceback)

    def _handle_flixhub_error(
        self,
        error: FlixHubError,
        context: Optional[str] = None,
        show_traceback: bool = False
    ) -> None:
        """Pick the panel for a FlixHub error."""
        lines: List[str] = []

        if isinstance(error, ConfigurationError):
            title = "⚙️  Configuration Error"
            if error.config_path:
                lines.append(f"[dim]Configuration file:[/dim] [cyan]{error.config_path}[/cyan]")
            suggestions = [
                "Check configuration file syntax and format",
                "Delete the file to have defaults recreated",
                "Use [cyan]--config-dir[/cyan] to point at another configuration",
            ]
        elif isinstance(error, MisconfiguredProviderError):
            title = "🧩 Misconfigured Provider"
            if error.provider_name:
                lines.append(f"[dim]Provider:[/dim] [cyan]{error.provider_name}[/cyan]")
            suggestions = [
                "The provider declares a capability it does not supply",
                "Report the problem to the provider's authors",
                "Disable it with [cyan]flixhub providers disable[/cyan]",
            ]
        elif isinstance(error, ProviderError):
            title = "🔌 Provider Error"
            if error.provider_name:
                lines.append(f"[dim]Provider:[/dim] [cyan]{error.provider_name}[/cyan]")
            suggestions = [
                "Check the provider's configuration in providers.json",
                "Run [cyan]flixhub test <key>[/cyan] to see which stages work",
                "Try another enabled provider",
            ]
        elif isinstance(error, NetworkError):
            title = "🌐 Network Error"
            if error.url:
                lines.append(f"[dim]URL:[/dim] [blue]{error.url}[/blue]")
            if error.status_code:
                lines.append(f"[dim]Status Code:[/dim] {error.status_code}")
            suggestions = [
                "Check your internet connection",
                "Verify the source website is accessible",
                "Try again in a few moments",
            ]
            if error.status_code == 403:
                suggestions.insert(0, "The source may be blocking requests")
            elif error.status_code == 404:
                suggestions.insert(0, "The requested content may no longer be available")
            elif error.status_code and error.status_code >= 500:
                suggestions.insert(0, "The source server is experiencing issues")
        elif isinstance(error, RenderingError):
            title = "🖥️  Rendering Error"
            if error.url:
                lines.append(f"[dim]URL:[/dim] [blue]{error.url}[/blue]")
            suggestions = [
                "Install the rendering extra: [cyan]pip install flixhub[rendering][/cyan]",
                "Check that Chrome and chromedriver are installed",
                "Raise rendering.render_timeout in settings.json",
            ]
        elif isinstance(error, ParseError):
            title = "📄 Parse Error"
            if error.source:
                lines.append(f"[dim]Source:[/dim] [cyan]{error.source}[/cyan]")
            suggestions = [
                "The source site may have changed its layout",
                "Check for a newer version of the provider",
            ]
        elif isinstance(error, ValidationError):
            title = "❌ Validation Error"
            if error.field_name:
                lines.append(f"[dim]Field:[/dim] [cyan]{error.field_name}[/cyan]")
            if error.invalid_value is not None:
                lines.append(f"[dim]Invalid Value:[/dim] [red]{error.invalid_value}[/red]")
            suggestions = [
                "Check the argument format and type",
                "Page numbers start at 1",
            ]
        else:
            title = "⚠️  FlixHub Error"
            suggestions = []

        self._display_panel(title, error, lines, suggestions, context, show_traceback)

    def _display_panel(
        self,
        title: str,
        error: FlixHubError,
        lines: List[str],
        suggestions: List[str],
        context: Optional[str],
        show_traceback: bool,
    ) -> None:
        content_parts = [f"[{self.palette.error}]{error.message}[/{self.palette.error}]"]
        content_parts.extend(f"\n{line}" for line in lines)

        if context:
            content_parts.append(f"\n[dim]Context:[/dim] {context}")

        if suggestions:
            content_parts.append(f"\n\n[{self.palette.info}]💡 Suggestions:[/{self.palette.info}]")
            for suggestion in suggestions:
                content_parts.append(f"• {suggestion}")

        if show_traceback and error.details:
            content_parts.append(f"\n\n[dim]Details:[/dim]\n{error.details}")

        panel = Panel(
            "\n".join(content_parts),
            title=title,
            border_style=self.palette.error,
            padding=(1, 2)
        )

        self.console.print(panel)

    def _handle_generic_error(
        self,
        error: Exception,
        context: Optional[str] = None,
        show_traceback: bool = False
    ) -> None:
        """Handle generic Python exceptions."""
        content_parts = [
            f"[{self.palette.error}]{type(error).__name__}: {error}[/{self.palette.error}]"
        ]

        if context:
            content_parts.append(f"\n[dim]Context:[/dim] {context}")

        if show_traceback:
            content_parts.append(f"\n\n[dim]Traceback:[/dim]\n{traceback.format_exc()}")
        else:
            content_parts.append("\n\n[dim]Run with --debug for the full traceback[/dim]")

        panel = Panel(
            "\n".join(content_parts),
            title="💥 Unexpected Error",
            border_style=self.palette.error,
            padding=(1, 2)
        )

        self.console.print(panel)

    def display_warning(self, message: str, context: Optional[str] = None) -> None:
        """Display a warning message."""
        content = f"[{self.palette.warning}]{message}[/{self.palette.warning}]"
        if context:
            content += f"\n\n[dim]Context:[/dim] {context}"

        self.console.print(Panel(
            content,
            title="⚠️  Warning",
            border_style=self.palette.warning,
            padding=(1, 2)
        ))

    def display_info(self, message: str, title: str = "ℹ️  Information") -> None:
        """Display an informational message."""
        self.console.print(Panel(
            f"[{self.palette.info}]{message}[/{self.palette.info}]",
            title=title,
            border_style=self.palette.info,
            padding=(1, 2)
        ))


# Global error handler instance
_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    global _error_handler
    if _error_handler is None:
        _error_handler = ErrorHandler()
    return _error_handler


def handle_error(error: Exception, context: Optional[str] = None, show_traceback: bool = False) -> None:
    """Convenience function to handle errors using the global handler."""
    get_error_handler().handle_error(error, context, show_traceback)


def display_warning(message: str, context: Optional[str] = None) -> None:
    """Convenience function to display warnings."""
    get_error_handler().display_warning(message, context)


def display_info(message: str, title: str = "ℹ️  Information") -> None:
    """Convenience function to display info messages."""
    get_error_handler().display_info(message, title)


__all__ = [
    "ErrorHandler",
    "get_error_handler",
    "handle_error",
    "display_warning",
    "display_info",
]
