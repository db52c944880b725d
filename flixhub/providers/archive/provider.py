"""
Archive Provider - Public-domain films and TV from archive.org.

Uses the Internet Archive's JSON APIs: advanced search for catalogs and
search, item metadata for details and for the file list links are built
from.
"""

import logging
import re
from typing import Any, AsyncIterator, List, Optional, Tuple, Union
from urllib.parse import quote

from flixhub.core.filters import BoundFilters, Filter, FilterList
from flixhub.core.models import (
    CatalogDescriptor,
    Episode,
    MediaLink,
    Movie,
    ProviderRecord,
    ProviderStatus,
    ProviderType,
    SearchItem,
    SearchResponseData,
    TvShow,
)
from flixhub.providers.archive.config import load_config
from flixhub.providers.archive.parser import ArchiveParser
from flixhub.providers.base import ProviderBase, resolve_lookup


SEARCH_FIELDS = ["identifier", "title", "year", "date", "collection", "external-identifier"]

COLLECTIONS = {
    "Feature Films": "feature_films",
    "Film Noir": "film_noir",
    "Silent Films": "silent_films",
    "Classic TV": "classic_tv",
}

SORT_ORDERS = {
    "Most viewed": "downloads desc",
    "Newest": "publicdate desc",
    "Title": "titleSorter asc",
}

_QUERY_UNSAFE = re.compile(r'[():"\[\]{}\\^~*?]')


provider_record = ProviderRecord(
    name="Internet Archive",
    version_name="1.0.0",
    version_code=1,
    build_url="bundled://archive",
    language="en",
    provider_type=ProviderType.ALL,
    status=ProviderStatus.WORKING,
    description="Public-domain feature films, serials and television from archive.org",
    icon_url="https://archive.org/images/glogo.jpg",
    authors=[{"name": "FlixHub Team"}],
)


def escape_query(text: str) -> str:
    """Strip characters with meaning in the archive's Lucene query syntax."""
    return re.sub(r'\s+', ' ', _QUERY_UNSAFE.sub(' ', text)).strip()


class ArchiveProvider(ProviderBase):
    """
    Provider for archive.org.

    All stages go through the shared HTTP client; ``base_url`` may be
    overridden in the provider config (used by tests against a local server).
    """

    base_url = "https://archive.org"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.settings = load_config(self.config)
        self.parser = ArchiveParser(self.base_url, self.record.id, self.settings.subtitle_language)

    @property
    def catalogs(self) -> List[CatalogDescriptor]:
        return [
            CatalogDescriptor(
                name=name,
                url=collection,
                can_paginate=True,
                image=f"{self.base_url}/services/img/{collection}",
            )
            for name, collection in COLLECTIONS.items()
        ]

    @property
    def filters(self) -> FilterList:
        return FilterList([
            Filter.select("sort", list(SORT_ORDERS), default="Most viewed", label="Sort by"),
            Filter.multi_select("collections", list(COLLECTIONS.values()), label="Collections"),
            Filter.text("creator", max_length=100, label="Creator"),
        ])

    async def _advanced_search(self, query: str, page: int, sort: str) -> SearchResponseData:
        params: List[Tuple[str, Any]] = [("q", query)]
        params.extend(("fl[]", field) for field in SEARCH_FIELDS)
        params.extend([
            ("sort[]", sort),
            ("rows", self.settings.rows),
            ("page", page),
            ("output", "json"),
        ])

        self.logger.debug(f"Advanced search: {query} (page {page})")
        payload = await self.client.get_json(f"{self.base_url}/advancedsearch.php", params=params)
        return self.parser.parse_search(payload, page, self.settings.rows)

    async def _metadata(self, identifier: str) -> Any:
        return await self.client.get_json(f"{self.base_url}/metadata/{quote(identifier)}")

    async def get_catalog_items(self, catalog: CatalogDescriptor, page: int = 1) -> Optional[SearchResponseData]:
        """List one collection, most viewed first."""
        query = f"collection:({catalog.url}) AND mediatype:({self.settings.media_type})"
        return await self._advanced_search(query, page, SORT_ORDERS["Most viewed"])

    async def search(
        self,
        title: str,
        page: int = 1,
        id: Optional[str] = None,
        imdb_id: Optional[str] = None,
        tmdb_id: Optional[int] = None,
        filters: Optional[BoundFilters] = None,
    ) -> Optional[SearchResponseData]:
        """
        Search archive.org.

        An archive identifier resolves through the metadata API; an IMDb id
        through the items' external identifiers. The archive has no TMDB
        index, so a TMDB id alone falls back to the title.
        """
        kind, value = resolve_lookup(title, id=id, imdb_id=imdb_id)

        if kind == "id":
            item = self.parser.parse_item(await self._metadata(value))
            results = [item] if item is not None else []
            return SearchResponseData(results=results, page=page)

        filters = filters if filters is not None else self.filters.defaults()
        clauses = [f"mediatype:({self.settings.media_type})"]

        if kind == "imdb_id":
            clauses.insert(0, f'external-identifier:"urn:imdb:{value}"')
        else:
            terms = escape_query(value)
            if not terms:
                return SearchResponseData(page=page)
            clauses.insert(0, f"title:({terms})")

        collections = filters.get("collections") or []
        if collections:
            clauses.append(f"collection:({' OR '.join(collections)})")
        creator = escape_query(filters.get("creator") or "")
        if creator:
            clauses.append(f"creator:({creator})")

        sort = SORT_ORDERS.get(filters.get("sort") or "", SORT_ORDERS["Most viewed"])
        return await self._advanced_search(" AND ".join(clauses), page, sort)

    async def get_film_details(self, item: SearchItem) -> Optional[Union[Movie, TvShow]]:
        self.logger.debug(f"Fetching metadata for {item.id}")
        return self.parser.parse_details(await self._metadata(item.id))

    async def get_links(
        self,
        watch_id: str,
        details: Union[Movie, TvShow],
        episode: Optional[Episode] = None,
    ) -> AsyncIterator[MediaLink]:
        """Yield the item's video files (best first) and its subtitle files."""
        payload = await self._metadata(watch_id)
        links = self.parser.parse_links(
            payload,
            episode=episode,
            include_derivatives=self.settings.include_derivatives,
        )
        self.logger.debug(f"Resolved {len(links)} links for {watch_id}")
        for link in links:
            yield link


__all__ = ["ArchiveProvider", "provider_record", "escape_query"]
