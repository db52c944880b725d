"""
Sample Provider - In-memory provider for testing and development.

This provider serves a fixed fixture library without network requests and
demonstrates every part of the provider contract: declared catalogs and
filters, identifier-aware search, Movie and TvShow details, and link
resolution from several concurrent mirrors.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from flixhub.core.filters import BoundFilters, Filter, FilterList
from flixhub.core.models import (
    CatalogDescriptor,
    Episode,
    FilmKind,
    MediaLink,
    Movie,
    ProviderRecord,
    ProviderStatus,
    ProviderType,
    Quality,
    SearchItem,
    SearchResponseData,
    Season,
    Stream,
    Subtitle,
    TvShow,
)
from flixhub.providers.base import ProviderBase, resolve_lookup
from flixhub.providers.streaming import merge_sources


logger = logging.getLogger(__name__)


PAGE_SIZE = 10

GENRES = ["Action", "Comedy", "Drama", "Mystery", "Romance", "Sci-Fi"]

SORT_OPTIONS = ["Relevance", "Newest", "Title"]

_LIBRARY: List[Dict[str, Any]] = [
    {"id": "test-pattern", "title": "Test Pattern", "kind": "movie", "year": 2019, "rating": 7.1,
     "genres": ["Drama"], "runtime": 94, "tmdb_id": 550371, "imdb_id": "tt8717234"},
    {"id": "the-long-road", "title": "The Long Road", "kind": "tv", "year": 2015, "rating": 8.2,
     "genres": ["Drama", "Mystery"], "seasons": 2, "episodes": 6},
    {"id": "harbor-lights", "title": "Harbor Lights", "kind": "movie", "year": 1952, "rating": 6.8,
     "genres": ["Romance"], "runtime": 88},
    {"id": "paper-moon-rising", "title": "Paper Moon Rising", "kind": "movie", "year": 1987, "rating": 7.4,
     "genres": ["Comedy", "Drama"], "runtime": 102},
    {"id": "northern-static", "title": "Northern Static", "kind": "tv", "year": 2021, "rating": 7.9,
     "genres": ["Sci-Fi", "Mystery"], "seasons": 1, "episodes": 8},
    {"id": "glass-orchard", "title": "Glass Orchard", "kind": "movie", "year": 2004, "rating": 6.5,
     "genres": ["Drama"], "runtime": 117},
    {"id": "quiet-engines", "title": "Quiet Engines", "kind": "movie", "year": 2011, "rating": 7.0,
     "genres": ["Action", "Sci-Fi"], "runtime": 109},
    {"id": "summer-of-kites", "title": "Summer of Kites", "kind": "movie", "year": 1996, "rating": 6.9,
     "genres": ["Comedy", "Romance"], "runtime": 96},
    {"id": "iron-meridian", "title": "Iron Meridian", "kind": "tv", "year": 2008, "rating": 8.5,
     "genres": ["Action", "Drama"], "seasons": 3, "episodes": 10},
    {"id": "salt-and-ember", "title": "Salt and Ember", "kind": "movie", "year": 2017, "rating": 7.7,
     "genres": ["Action"], "runtime": 124},
    {"id": "lantern-district", "title": "Lantern District", "kind": "tv", "year": 2019, "rating": 8.0,
     "genres": ["Mystery"], "seasons": 2, "episodes": 8},
    {"id": "velvet-hour", "title": "Velvet Hour", "kind": "movie", "year": 1964, "rating": 7.2,
     "genres": ["Romance", "Drama"], "runtime": 101},
    {"id": "second-horizon", "title": "Second Horizon", "kind": "movie", "year": 2022, "rating": 6.4,
     "genres": ["Sci-Fi"], "runtime": 131},
    {"id": "copper-saints", "title": "Copper Saints", "kind": "tv", "year": 2013, "rating": 7.6,
     "genres": ["Comedy"], "seasons": 4, "episodes": 12},
    {"id": "winter-cartographer", "title": "Winter Cartographer", "kind": "movie", "year": 2001, "rating": 7.8,
     "genres": ["Drama", "Mystery"], "runtime": 113},
]


provider_record = ProviderRecord(
    name="Sample Source",
    version_name="1.0.0",
    version_code=1,
    build_url="bundled://sample",
    language="en",
    provider_type=ProviderType.ALL,
    status=ProviderStatus.WORKING,
    description="In-memory provider for testing and development",
    authors=[{"name": "FlixHub Team"}],
)


class SampleProvider(ProviderBase):
    """
    Sample provider implementation for testing and development.

    All data comes from an in-memory library; the optional ``delay`` config
    entry simulates network latency per request.
    """

    base_url = "https://sample.invalid"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.delay = float(self.config.get("delay", 0.05))

    @property
    def catalogs(self) -> List[CatalogDescriptor]:
        return [
            CatalogDescriptor(name="Latest", url="latest", can_paginate=True),
            CatalogDescriptor(name="Top Rated", url="top-rated", can_paginate=False),
        ]

    @property
    def filters(self) -> FilterList:
        return FilterList([
            Filter.select("sort", SORT_OPTIONS, default="Relevance", label="Sort by"),
            Filter.multi_select("genres", GENRES, label="Genres"),
            Filter.checkbox("movies_only", default=False, label="Movies only"),
        ])

    @property
    def test_film(self) -> Movie:
        return self._movie(_LIBRARY[0])

    async def _simulate_latency(self) -> None:
        if self.delay > 0:
            await asyncio.sleep(self.delay)

    def _item(self, entry: Dict[str, Any]) -> SearchItem:
        return SearchItem(
            id=entry["id"],
            provider_id=self.record.id,
            title=entry["title"],
            kind=FilmKind(entry["kind"]),
            year=entry["year"],
            poster=f"{self.base_url}/posters/{entry['id']}.jpg",
            tmdb_id=entry.get("tmdb_id"),
            imdb_id=entry.get("imdb_id"),
            home_page=f"{self.base_url}/title/{entry['id']}",
        )

    def _page(self, entries: List[Dict[str, Any]], page: int, paginate: bool = True) -> SearchResponseData:
        if not paginate:
            return SearchResponseData(
                results=[self._item(entry) for entry in entries],
                page=1,
                has_next_page=False,
                total_pages=1,
            )

        total_pages = max(1, -(-len(entries) // PAGE_SIZE))
        start = (page - 1) * PAGE_SIZE
        chunk = entries[start:start + PAGE_SIZE]
        return SearchResponseData(
            results=[self._item(entry) for entry in chunk],
            page=page,
            has_next_page=page < total_pages,
            total_pages=total_pages,
        )

    async def get_catalog_items(self, catalog: CatalogDescriptor, page: int = 1) -> Optional[SearchResponseData]:
        """List the Latest (paginated) or Top Rated catalog."""
        logger.debug(f"Sample provider listing catalog {catalog.name}, page {page}")
        await self._simulate_latency()

        if catalog.url == "latest":
            entries = sorted(_LIBRARY, key=lambda entry: entry["year"], reverse=True)
            return self._page(entries, page)
        if catalog.url == "top-rated":
            entries = sorted(_LIBRARY, key=lambda entry: entry["rating"], reverse=True)[:PAGE_SIZE]
            return self._page(entries, page, paginate=False)
        return None

    async def search(
        self,
        title: str,
        page: int = 1,
        id: Optional[str] = None,
        imdb_id: Optional[str] = None,
        tmdb_id: Optional[int] = None,
        filters: Optional[BoundFilters] = None,
    ) -> SearchResponseData:
        """
        Search the fixture library.

        Identifier lookups return at most one match; title searches match
        case-insensitive substrings and honour the declared filters.
        """
        logger.debug(f"Sample provider searching for: {title}")
        await self._simulate_latency()

        kind, value = resolve_lookup(title, id=id, imdb_id=imdb_id, tmdb_id=tmdb_id)
        if kind != "title":
            matches = [entry for entry in _LIBRARY if entry.get(kind) == value]
            return self._page(matches, page)

        filters = filters if filters is not None else self.filters.defaults()
        query = value.lower()
        matches = [entry for entry in _LIBRARY if query in entry["title"].lower()]

        genres = filters.get("genres") or []
        if genres:
            matches = [entry for entry in matches if set(genres) & set(entry["genres"])]
        if filters.get("movies_only"):
            matches = [entry for entry in matches if entry["kind"] == "movie"]

        sort = filters.get("sort")
        if sort == "Newest":
            matches.sort(key=lambda entry: entry["year"], reverse=True)
        elif sort == "Title":
            matches.sort(key=lambda entry: entry["title"])

        logger.debug(f"Sample provider found {len(matches)} results")
        return self._page(matches, page)

    def _movie(self, entry: Dict[str, Any]) -> Movie:
        return Movie(
            id=entry["id"],
            provider_id=self.record.id,
            title=entry["title"],
            year=entry["year"],
            rating=entry["rating"],
            genres=entry["genres"],
            runtime=entry["runtime"],
            overview=f"{entry['title']} from the sample library.",
            poster=f"{self.base_url}/posters/{entry['id']}.jpg",
            tmdb_id=entry.get("tmdb_id"),
            imdb_id=entry.get("imdb_id"),
            home_page=f"{self.base_url}/title/{entry['id']}",
        )

    def _tv_show(self, entry: Dict[str, Any]) -> TvShow:
        seasons = [
            Season(
                number=season,
                name=f"Season {season}",
                episodes=[
                    Episode(
                        season=season,
                        number=number,
                        title=f"Chapter {number}",
                        id=f"{entry['id']}-s{season:02d}e{number:02d}",
                    )
                    for number in range(1, entry["episodes"] + 1)
                ],
            )
            for season in range(1, entry["seasons"] + 1)
        ]
        return TvShow(
            id=entry["id"],
            provider_id=self.record.id,
            title=entry["title"],
            year=entry["year"],
            rating=entry["rating"],
            genres=entry["genres"],
            seasons=seasons,
            overview=f"{entry['title']} from the sample library.",
            poster=f"{self.base_url}/posters/{entry['id']}.jpg",
            home_page=f"{self.base_url}/title/{entry['id']}",
        )

    async def get_film_details(self, item: SearchItem) -> Optional[Union[Movie, TvShow]]:
        logger.debug(f"Sample provider getting details for: {item.id}")
        await self._simulate_latency()

        entry = next((entry for entry in _LIBRARY if entry["id"] == item.id), None)
        if entry is None:
            return None
        return self._movie(entry) if entry["kind"] == "movie" else self._tv_show(entry)

    async def _mirror(self, name: str, path: str, quality: Quality) -> AsyncIterator[MediaLink]:
        await self._simulate_latency()
        yield Stream(
            url=f"https://{name}.sample.invalid/{path}/{quality.value}.mp4",
            name=f"{name.title()} mirror",
            quality=quality,
            headers={"Referer": self.base_url},
        )

    async def _subtitles(self, path: str) -> List[MediaLink]:
        await self._simulate_latency()
        return [Subtitle.from_url(f"{self.base_url}/subs/{path}/en.vtt", language="en", label="English")]

    async def get_links(
        self,
        watch_id: str,
        details: Union[Movie, TvShow],
        episode: Optional[Episode] = None,
    ) -> AsyncIterator[MediaLink]:
        """Resolve two stream mirrors and an English subtitle, concurrently."""
        if not any(entry["id"] == watch_id for entry in _LIBRARY):
            logger.debug(f"Sample provider has no links for: {watch_id}")
            return

        path = watch_id if episode is None else f"{watch_id}/s{episode.season:02d}e{episode.number:02d}"
        sources = [
            self._mirror("alpha", path, Quality.HIGH),
            self._mirror("beta", path, Quality.MEDIUM),
            self._subtitles(path),
        ]
        async for link in merge_sources(sources):
            yield link


provider_class = SampleProvider

# Export the provider class
__all__ = ["SampleProvider", "provider_record", "provider_class"]
