"""
Core Layer - Data models, configuration and the link-resolution pipeline.

This module contains the provider-independent parts of FlixHub: the data
flowing between stages, stage outcomes, configuration handling, the shared
HTTP client and provider management.
"""

from flixhub.core.config_manager import ConfigManager
from flixhub.core.config_schemas import AppSettings, ProviderConfig, ProvidersConfig
from flixhub.core.exceptions import (
    ConfigurationError,
    FilterValidationError,
    FlixHubError,
    MisconfiguredProviderError,
    NetworkError,
    ParseError,
    ProviderError,
    RenderingError,
    RenderTimeoutError,
    ValidationError,
)
from flixhub.core.filters import BoundFilters, Filter, FilterKind, FilterList
from flixhub.core.http import HttpClient
from flixhub.core.identity import compute_id
from flixhub.core.models import (
    CatalogDescriptor,
    Episode,
    MediaLink,
    Movie,
    ProviderRecord,
    SearchItem,
    SearchResponseData,
    Stream,
    Subtitle,
    TvShow,
)
from flixhub.core.pipeline import LinkStream, ProviderSession
from flixhub.core.provider_manager import ProviderManager
from flixhub.core.results import Outcome, Stage, StageResult

__all__ = [
    # Data Models
    "ProviderRecord",
    "CatalogDescriptor",
    "SearchItem",
    "SearchResponseData",
    "Movie",
    "TvShow",
    "Episode",
    "Stream",
    "Subtitle",
    "MediaLink",
    "compute_id",
    # Filters
    "Filter",
    "FilterKind",
    "FilterList",
    "BoundFilters",
    # Pipeline
    "Stage",
    "Outcome",
    "StageResult",
    "ProviderSession",
    "LinkStream",
    "HttpClient",
    # Configuration Management
    "ConfigManager",
    "AppSettings",
    "ProviderConfig",
    "ProvidersConfig",
    # Provider Management
    "ProviderManager",
    # Exceptions
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
]
