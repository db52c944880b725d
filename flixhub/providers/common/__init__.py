"""
Common utilities for provider development.

This package contains shared utilities and helper functions
used across multiple providers.
"""

from .utils import (
    HTMLParser,
    QualityExtractor,
    TextCleaner,
)

__all__ = [
    "HTMLParser",
    "QualityExtractor",
    "TextCleaner",
]
