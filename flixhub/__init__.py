"""
FlixHub - Provider contract and link-resolution pipeline for media sources.

Independently written providers expose catalogs, search, details and
streaming link resolution through one contract; the host drives them with
explicit stage outcomes and cancellable link streams.
"""

__version__ = "0.1.0"
__author__ = "FlixHub Team"

# Package metadata
__title__ = "flixhub"
__description__ = "Provider contract and link-resolution pipeline for media sources"
__license__ = "MIT"

# Version info tuple for programmatic access
VERSION_INFO = tuple(map(int, __version__.split(".")))

# Export main components for easy importing
from flixhub.core.models import Movie, ProviderRecord, SearchItem, Stream, Subtitle, TvShow
from flixhub.core.pipeline import LinkStream, ProviderSession
from flixhub.core.results import Outcome, Stage, StageResult
from flixhub.cli.main import cli_main

__all__ = [
    "__version__",
    "__author__",
    "ProviderRecord",
    "SearchItem",
    "Movie",
    "TvShow",
    "Stream",
    "Subtitle",
    "ProviderSession",
    "LinkStream",
    "Stage",
    "Outcome",
    "StageResult",
    "cli_main",
]
