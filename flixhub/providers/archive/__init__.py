"""
Archive Provider - Public-domain films and television from archive.org.

This provider lists archive collections as catalogs, searches by title,
archive identifier or IMDb id, and resolves the video and subtitle files
of an item as links.
"""

from .config import ArchiveConfig, get_default_config
from .parser import ArchiveParser
from .provider import ArchiveProvider, provider_record

provider_class = ArchiveProvider

__all__ = [
    "ArchiveProvider",
    "ArchiveParser",
    "ArchiveConfig",
    "get_default_config",
    "provider_record",
    "provider_class",
]
