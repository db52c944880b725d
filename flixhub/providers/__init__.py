"""
Provider Layer - The provider contract and bundled implementations.

This module contains the stage protocols every provider implements, the
optional base class, helpers for concurrent link sources and rendering,
and the bundled providers.
"""

from flixhub.providers.base import (
    CatalogProvider,
    DetailsProvider,
    LinksProvider,
    ProviderBase,
    SearchProvider,
    capabilities,
    resolve_lookup,
    supports,
)
from flixhub.providers.streaming import merge_sources

__all__ = [
    # Provider Contract
    "CatalogProvider",
    "SearchProvider",
    "DetailsProvider",
    "LinksProvider",
    "ProviderBase",
    "supports",
    "capabilities",
    "resolve_lookup",
    # Provider Development Utilities
    "merge_sources",
]
