"""Test doubles for providers and renderers."""

import asyncio
import threading
import time
from typing import Any, Dict, List, Optional

from flixhub.core.exceptions import NetworkError
from flixhub.core.models import (
    CatalogDescriptor,
    Episode,
    FilmKind,
    Movie,
    ProviderRecord,
    Quality,
    SearchItem,
    SearchResponseData,
    Season,
    Stream,
    Subtitle,
    TvShow,
)
from flixhub.providers.base import ProviderBase
from flixhub.providers.rendering import RenderedPage


def make_record(**overrides: Any) -> ProviderRecord:
    """Build a valid provider record, overriding any field."""
    fields: Dict[str, Any] = {
        "name": "Fake Provider",
        "version_name": "1.0.0",
        "version_code": 1,
        "build_url": "https://example.invalid/fake.py",
        "language": "en",
        "provider_type": "Movie",
        "status": "Working",
    }
    fields.update(overrides)
    return ProviderRecord(**fields)


def make_item(record: ProviderRecord, item_id: str = "m1", kind: FilmKind = FilmKind.MOVIE) -> SearchItem:
    return SearchItem(id=item_id, provider_id=record.id, title=f"Title {item_id}", kind=kind, year=2020)


def make_movie(record: ProviderRecord, item_id: str = "m1") -> Movie:
    return Movie(id=item_id, provider_id=record.id, title=f"Title {item_id}", year=2020, runtime=100)


def make_show(record: ProviderRecord, item_id: str = "s1") -> TvShow:
    episodes = [Episode(season=1, number=n, id=f"{item_id}-e{n}") for n in (1, 2)]
    return TvShow(
        id=item_id,
        provider_id=record.id,
        title=f"Show {item_id}",
        seasons=[Season(number=1, episodes=episodes)],
    )


def make_stream(name: str = "mirror", quality: Quality = Quality.HIGH) -> Stream:
    return Stream(url=f"https://cdn.invalid/{name}.mp4", name=name, quality=quality)


def make_subtitle(language: str = "en") -> Subtitle:
    return Subtitle.from_url(f"https://cdn.invalid/{language}.vtt", language=language)


class FullProvider:
    """Implements every stage with canned data."""

    def __init__(self, record: Optional[ProviderRecord] = None, links: Optional[List[Any]] = None):
        self.record = record or make_record()
        self.links = links if links is not None else [make_stream("a"), make_stream("b", Quality.MEDIUM), make_subtitle()]
        self.calls: List[str] = []
        self.received_filters = None
        self.received_episode = "unset"

    @property
    def catalogs(self) -> List[CatalogDescriptor]:
        return [
            CatalogDescriptor(name="Paged", url="paged", can_paginate=True),
            CatalogDescriptor(name="Single", url="single"),
        ]

    async def get_catalog_items(self, catalog: CatalogDescriptor, page: int = 1) -> SearchResponseData:
        self.calls.append(f"catalog:{catalog.url}:{page}")
        return SearchResponseData(results=[make_item(self.record, f"c{page}")], page=page)

    async def search(self, title, page=1, id=None, imdb_id=None, tmdb_id=None, filters=None):
        self.calls.append(f"search:{title}")
        self.received_filters = filters
        if title == "nothing":
            return SearchResponseData(page=page)
        return SearchResponseData(results=[make_item(self.record)], page=page)

    async def get_film_details(self, item: SearchItem):
        self.calls.append(f"details:{item.id}")
        if item.kind == FilmKind.TV_SHOW:
            return make_show(self.record, item.id)
        return make_movie(self.record, item.id)

    async def get_links(self, watch_id, details, episode=None):
        self.calls.append(f"links:{watch_id}")
        self.received_episode = episode
        for link in self.links:
            yield link


class SearchOnlyProvider:
    """Implements only the search stage."""

    def __init__(self):
        self.record = make_record(name="Search Only")

    async def search(self, title, page=1, id=None, imdb_id=None, tmdb_id=None, filters=None):
        return SearchResponseData(results=[make_item(self.record)], page=page)


class AbsentProvider:
    """Implements every stage but has nothing to offer."""

    def __init__(self):
        self.record = make_record(name="Absent")

    async def get_catalog_items(self, catalog, page=1):
        return None

    async def search(self, title, page=1, id=None, imdb_id=None, tmdb_id=None, filters=None):
        return None

    async def get_film_details(self, item):
        return None

    async def get_links(self, watch_id, details, episode=None):
        return
        yield


class RaisingProvider:
    """Every stage raises the given exception."""

    def __init__(self, error: BaseException):
        self.record = make_record(name="Raising")
        self.error = error

    async def search(self, title, page=1, id=None, imdb_id=None, tmdb_id=None, filters=None):
        raise self.error

    async def get_film_details(self, item):
        raise self.error

    async def get_links(self, watch_id, details, episode=None):
        raise self.error
        yield


class SlowLinksProvider:
    """Yields one link, then waits far longer than any test runs."""

    def __init__(self, first_delay: float = 0.0, hang: float = 60.0):
        self.record = make_record(name="Slow")
        self.first_delay = first_delay
        self.hang = hang
        self.started = asyncio.Event()
        self.finalized = False

    async def get_links(self, watch_id, details, episode=None):
        self.started.set()
        try:
            if self.first_delay:
                await asyncio.sleep(self.first_delay)
            yield make_stream("first")
            await asyncio.sleep(self.hang)
            yield make_stream("never")
        finally:
            self.finalized = True


class PartialFailureProvider:
    """Yields two links, then fails with a network error."""

    def __init__(self):
        self.record = make_record(name="Partial")

    async def get_links(self, watch_id, details, episode=None):
        yield make_stream("one")
        yield make_subtitle()
        raise NetworkError("mirror went away", url="https://cdn.invalid")


class FakeRenderer:
    """Renderer that records calls and the thread it ran on."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.loads: List[str] = []
        self.threads: List[str] = []
        self.reset_calls = 0
        self.close_calls = 0
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def load(self, url: str, wait_for: Optional[str] = None) -> RenderedPage:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            self.threads.append(threading.current_thread().name)
            if self.delay:
                time.sleep(self.delay)
            self.loads.append(url)
            return RenderedPage(
                url=url,
                html=f"<html><title>{url}</title></html>",
                cookies={"session": "abc"},
                title=url,
            )
        finally:
            with self._lock:
                self.active -= 1

    def reset(self) -> None:
        self.reset_calls += 1

    def close(self) -> None:
        self.close_calls += 1


class FakeRenderingProvider(ProviderBase):
    """A provider that renders its pages through the shared context."""

    uses_renderer = True

    def __init__(self, renderer: Optional[FakeRenderer] = None, name: str = "Renderer", **kwargs):
        super().__init__(client=None, record=make_record(name=name), **kwargs)
        self.renderer = renderer or FakeRenderer()
        self.renderer_threads: List[str] = []

    def get_renderer(self) -> FakeRenderer:
        self.renderer_threads.append(threading.current_thread().name)
        return self.renderer

    async def search(self, title, page=1, id=None, imdb_id=None, tmdb_id=None, filters=None):
        page_data = await self.render(f"https://render.invalid/search?q={title}")
        return SearchResponseData(
            results=[make_item(self.record, page_data.cookies["session"])],
            page=page,
        )


class RenderingLinksProvider(FakeRenderingProvider):
    """Yields one link, then renders a slow player page for the next."""

    async def get_links(self, watch_id, details, episode=None):
        yield make_stream("direct")
        page = await self.render(f"https://render.invalid/player/{watch_id}")
        yield make_stream(page.title)


class RendererlessProvider(ProviderBase):
    """Declares rendering but cannot supply a renderer."""

    uses_renderer = True

    def __init__(self, **kwargs):
        super().__init__(client=None, record=make_record(name="Rendererless"), **kwargs)

    def get_renderer(self):
        raise NotImplementedError

    async def search(self, title, page=1, id=None, imdb_id=None, tmdb_id=None, filters=None):
        await self.render("https://render.invalid/")
        return SearchResponseData(page=page)
