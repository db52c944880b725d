"""
Core Exceptions - Custom exception classes for FlixHub.

This module defines the exception hierarchy used by the provider contract
and the link-resolution pipeline. The pipeline maps these onto stage
outcomes, so every failure a provider can produce lands in one category.
"""

from typing import Optional, Any


class FlixHubError(Exception):
    """Base exception class for all FlixHub-specific errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        """
        Initialize FlixHub error.

        Args:
            message: Human-readable error message
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message


class ConfigurationError(FlixHubError):
    """Raised when configuration-related errors occur."""

    def __init__(self, message: str, config_path: Optional[str] = None, details: Optional[Any] = None):
        """
        Initialize configuration error.

        Args:
            message: Error description
            config_path: Path to the problematic configuration file
            details: Additional error context
        """
        super().__init__(message, details)
        self.config_path = config_path


class ProviderError(FlixHubError):
    """Raised when a provider fails in a way that is not a known runtime fault."""

    def __init__(self, message: str, provider_name: Optional[str] = None, details: Optional[Any] = None):
        """
        Initialize provider error.

        Args:
            message: Error description
            provider_name: Name of the problematic provider
            details: Additional error context
        """
        super().__init__(message, details)
        self.provider_name = provider_name


class MisconfiguredProviderError(ProviderError):
    """
    Raised when a provider declares a capability it cannot fulfill.

    This is a defect in the provider itself (e.g. it uses a renderer but
    never supplies one) and is never retried.
    """


class NetworkError(FlixHubError):
    """Raised when network-related errors occur."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None, details: Optional[Any] = None):
        """
        Initialize network error.

        Args:
            message: Error description
            url: URL that caused the error
            status_code: HTTP status code if applicable
            details: Additional error context
        """
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code


class ParseError(FlixHubError):
    """Raised when a fetched document cannot be parsed."""

    def __init__(self, message: str, source: Optional[str] = None, details: Optional[Any] = None):
        """
        Initialize parse error.

        Args:
            message: Error description
            source: URL or name of the document that failed to parse
            details: Additional error context
        """
        super().__init__(message, details)
        self.source = source


class RenderingError(FlixHubError):
    """Raised when a page render fails."""

    def __init__(self, message: str, url: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message, details)
        self.url = url


class RenderTimeoutError(RenderingError):
    """Raised when waiting for, or running, a render exceeds its budget."""


class ValidationError(FlixHubError):
    """Raised when data validation errors occur."""

    def __init__(self, message: str, field_name: Optional[str] = None, invalid_value: Optional[Any] = None, details: Optional[Any] = None):
        """
        Initialize validation error.

        Args:
            message: Error description
            field_name: Name of the field that failed validation
            invalid_value: The invalid value that caused the error
            details: Additional error context
        """
        super().__init__(message, details)
        self.field_name = field_name
        self.invalid_value = invalid_value


class FilterValidationError(ValidationError):
    """Raised when a value cannot be bound to a declared filter."""


# Failures a caller may retry with backoff
RUNTIME_ERRORS = (NetworkError, ParseError, RenderingError)


# Export all exception classes
__all__ = [
    "FlixHubError",
    "ConfigurationError",
    "ProviderError",
    "MisconfiguredProviderError",
    "NetworkError",
    "ParseError",
    "RenderingError",
    "RenderTimeoutError",
    "ValidationError",
    "FilterValidationError",
    "RUNTIME_ERRORS",
]
