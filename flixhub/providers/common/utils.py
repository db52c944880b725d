"""
Provider Utilities - Common helpers for provider development.

This module provides utility functions and classes that are commonly needed
when developing providers: HTML parsing, quality detection from labels and
URLs, and cleanup of titles, descriptions and durations.
"""

import re
import logging
from typing import List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from flixhub.core.models import Quality


logger = logging.getLogger(__name__)


class HTMLParser:
    """Utility class for HTML parsing operations."""

    def __init__(self, html_content: str):
        """
        Initialize HTML parser.

        Args:
            html_content: HTML content to parse
        """
        self.soup = BeautifulSoup(html_content, 'html.parser')

    def text(self, separator: str = " ") -> str:
        """Visible text of the whole document, whitespace-collapsed."""
        return re.sub(r'\s+', ' ', self.soup.get_text(separator)).strip()


class QualityExtractor:
    """Utility class for extracting video quality information."""

    QUALITY_PATTERNS = {
        Quality.FOUR_K: [r'2160p?', r'4k', r'uhd'],
        Quality.ULTRA: [r'1440p?', r'2k'],
        Quality.HIGH: [r'1080p?', r'fhd', r'full.?hd'],
        Quality.MEDIUM: [r'720p?', r'\bhd\b'],
        Quality.LOW: [r'480p?', r'\bsd\b', r'360p?']
    }

    @classmethod
    def extract_from_text(cls, text: str) -> List[Quality]:
        """
        Extract quality options from text, best first.

        Args:
            text: Text containing quality information

        Returns:
            List of detected qualities
        """
        text_lower = text.lower()
        detected = []

        for quality, patterns in cls.QUALITY_PATTERNS.items():
            if any(re.search(pattern, text_lower) for pattern in patterns):
                detected.append(quality)

        return sorted(set(detected), key=lambda q: q.height, reverse=True)

    @classmethod
    def extract_from_url(cls, url: str) -> Optional[Quality]:
        """Detect the quality advertised in a URL path, if any."""
        qualities = cls.extract_from_text(urlparse(url).path)
        return qualities[0] if qualities else None

    @staticmethod
    def from_height(height: Optional[str]) -> Optional[Quality]:
        """Map a pixel height (as published in metadata) onto a Quality."""
        try:
            value = int(float(height))
        except (TypeError, ValueError):
            return None
        return Quality.from_resolution(0, value) if value > 0 else None


class TextCleaner:
    """Utility class for cleaning and normalizing text content."""

    @staticmethod
    def clean_title(title: str) -> str:
        """
        Clean title text.

        Args:
            title: Raw title text

        Returns:
            Cleaned title
        """
        if not title:
            return ""

        # Remove extra whitespace
        title = re.sub(r'\s+', ' ', title.strip())

        # Drop trailing format and release tags
        title = re.sub(r'\s*[\(\[](?:hd|sd|\d{3,4}p|dvdrip|vhs)[\)\]]\s*$', '', title, flags=re.IGNORECASE)

        return title.strip()

    @staticmethod
    def clean_description(description: str, max_length: int = 500) -> str:
        """
        Strip markup from a description and truncate it.

        Args:
            description: Raw description text (may contain HTML)
            max_length: Maximum length for description

        Returns:
            Cleaned description
        """
        if not description:
            return ""

        description = HTMLParser(description).text()

        if len(description) > max_length:
            description = description[:max_length].rsplit(' ', 1)[0] + '...'

        return description

    @staticmethod
    def parse_runtime(duration_text: Optional[str]) -> Optional[int]:
        """
        Parse a duration into whole minutes.

        Accepts seconds ("6321.45"), "MM:SS", "HH:MM:SS" and text such as
        "112 min".

        Returns:
            Runtime in minutes, or None if it cannot be parsed
        """
        if not duration_text:
            return None

        duration_text = str(duration_text).strip()

        if ':' in duration_text:
            parts = [int(part) for part in re.findall(r'\d+', duration_text.split('.')[0])]
            if len(parts) == 2:
                minutes, seconds = parts
                return minutes + round(seconds / 60)
            if len(parts) == 3:
                hours, minutes, seconds = parts
                return hours * 60 + minutes + round(seconds / 60)
            return None

        if re.fullmatch(r'\d+(?:\.\d+)?', duration_text):
            return round(float(duration_text) / 60)

        match = re.search(r'(\d+)\s*min', duration_text, flags=re.IGNORECASE)
        if match:
            return int(match.group(1))

        return None

    @staticmethod
    def extract_year(text: Optional[str]) -> Optional[int]:
        """Pull a plausible four-digit year out of a date or free text."""
        if not text:
            return None
        match = re.search(r'\b(18[7-9]\d|19\d{2}|20\d{2})\b', str(text))
        return int(match.group(1)) if match else None


# Export utility classes
__all__ = [
    "HTMLParser",
    "QualityExtractor",
    "TextCleaner",
]
