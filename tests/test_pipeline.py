"""Tests for stage dispatch and outcome classification."""

import asyncio

import aiohttp
import pytest

from flixhub.core.exceptions import (
    MisconfiguredProviderError,
    NetworkError,
    ParseError,
    ProviderError,
    ValidationError,
)
from flixhub.core.models import Episode, FilmKind, Movie
from flixhub.core.pipeline import ProviderSession, classify_error
from flixhub.core.results import Outcome, Stage, StageOutcomeError
from flixhub.providers.base import capabilities, resolve_lookup, supports
from tests.fakes import (
    AbsentProvider,
    FullProvider,
    RaisingProvider,
    SearchOnlyProvider,
    make_item,
    make_movie,
    make_show,
)


def test_supports_reports_implemented_stages():
    """Test the explicit capability query."""
    provider = SearchOnlyProvider()

    assert supports(provider, Stage.SEARCH)
    assert not supports(provider, Stage.CATALOG)
    assert capabilities(provider) == [Stage.SEARCH]
    assert capabilities(FullProvider()) == list(Stage)


@pytest.mark.parametrize(
    "kwargs, expected",
    [
        ({"id": "x", "tmdb_id": 1, "imdb_id": "tt1"}, ("id", "x")),
        ({"tmdb_id": 1, "imdb_id": "tt1"}, ("tmdb_id", 1)),
        ({"imdb_id": "tt1"}, ("imdb_id", "tt1")),
        ({}, ("title", "Title")),
    ],
)
def test_resolve_lookup_precedence(kwargs, expected):
    """Test that id beats tmdb_id beats imdb_id beats title."""
    assert resolve_lookup(" Title ", **kwargs) == expected


@pytest.mark.parametrize(
    "error, outcome",
    [
        (MisconfiguredProviderError("bad"), Outcome.MISCONFIGURED),
        (NotImplementedError(), Outcome.NOT_IMPLEMENTED),
        (NetworkError("down"), Outcome.FAILED),
        (ParseError("garbled"), Outcome.FAILED),
        (asyncio.TimeoutError(), Outcome.FAILED),
        (aiohttp.ClientConnectionError(), Outcome.FAILED),
        (ProviderError("broken"), Outcome.FAILED),
    ],
)
def test_classify_error(error, outcome):
    """Test mapping of known provider errors onto outcomes."""
    classified, reported = classify_error(error, "fake")

    assert classified == outcome
    assert reported is error


def test_classify_error_wraps_unknown_errors():
    """Test that unexpected exceptions become provider errors with a cause."""
    error = KeyError("title")

    outcome, reported = classify_error(error, "fake")

    assert outcome == Outcome.FAILED
    assert isinstance(reported, ProviderError)
    assert reported.provider_name == "fake"
    assert reported.__cause__ is error


@pytest.mark.asyncio
async def test_search_succeeds_and_binds_filters():
    """Test a successful search with filter binding."""
    provider = FullProvider()
    session = ProviderSession(provider)

    result = await session.search("anything", filters={"unknown": 1})

    assert result.outcome == Outcome.SUCCEEDED
    assert result.ok
    assert result.provider_id == provider.record.id
    assert len(result.unwrap()) == 1
    assert dict(provider.received_filters) == {}
    assert provider.received_filters.rejected == {"unknown": "unknown filter"}


@pytest.mark.asyncio
async def test_search_with_no_results_is_empty():
    """Test that an empty page is EMPTY rather than a failure."""
    session = ProviderSession(FullProvider())

    result = await session.search("nothing")

    assert result.outcome == Outcome.EMPTY
    assert result.data.is_empty
    with pytest.raises(StageOutcomeError):
        result.unwrap()


@pytest.mark.asyncio
async def test_unsupported_stage_is_not_implemented_without_a_call():
    """Test that stages a provider lacks are never dispatched."""
    provider = SearchOnlyProvider()
    session = ProviderSession(provider)
    item = make_item(provider.record)

    details = await session.get_film_details(item)
    catalog = await session.get_catalog_items("Anything")

    assert details.outcome == Outcome.NOT_IMPLEMENTED
    assert catalog.outcome == Outcome.NOT_IMPLEMENTED


@pytest.mark.asyncio
async def test_none_from_a_stage_is_capability_absent():
    """Test that a provider returning nothing reports an absent capability."""
    provider = AbsentProvider()
    session = ProviderSession(provider)

    search = await session.search("x")
    details = await session.get_film_details(make_item(provider.record))
    catalog = await session.get_catalog_items("Anything")

    assert search.outcome == Outcome.CAPABILITY_ABSENT
    assert details.outcome == Outcome.CAPABILITY_ABSENT
    # No catalogs declared at all
    assert catalog.outcome == Outcome.CAPABILITY_ABSENT


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, outcome, retryable",
    [
        (NetworkError("down"), Outcome.FAILED, True),
        (ValueError("boom"), Outcome.FAILED, True),
        (NotImplementedError(), Outcome.NOT_IMPLEMENTED, False),
        (MisconfiguredProviderError("no renderer"), Outcome.MISCONFIGURED, False),
    ],
)
async def test_stage_errors_become_outcomes(error, outcome, retryable):
    """Test that provider exceptions never escape a stage."""
    provider = RaisingProvider(error)
    session = ProviderSession(provider)

    result = await session.search("x")

    assert result.outcome == outcome
    assert result.retryable is retryable
    assert result.error is not None
    assert result.data is None


@pytest.mark.asyncio
async def test_stage_timeout_is_a_failure():
    """Test that a stage exceeding its budget is reported as FAILED."""

    class Hanging(SearchOnlyProvider):
        async def search(self, *args, **kwargs):
            await asyncio.sleep(10)

    session = ProviderSession(Hanging(), stage_timeout=0.05)

    result = await session.search("x")

    assert result.outcome == Outcome.FAILED
    assert isinstance(result.error, asyncio.TimeoutError)


@pytest.mark.asyncio
async def test_search_validates_arguments():
    """Test caller argument errors raise before dispatch."""
    provider = FullProvider()
    session = ProviderSession(provider)

    with pytest.raises(ValidationError):
        await session.search("x", page=0)
    with pytest.raises(ValidationError):
        await session.search("   ")

    assert provider.calls == []


@pytest.mark.asyncio
async def test_identifier_search_allows_blank_title():
    """Test that an identifier alone is enough to search."""
    provider = FullProvider()

    result = await ProviderSession(provider).search("", imdb_id="tt0068646")

    assert result.ok
    assert provider.calls == ["search:"]


@pytest.mark.asyncio
async def test_catalog_by_name_and_pagination():
    """Test catalog lookup by name and the non-paginating page rule."""
    provider = FullProvider()
    session = ProviderSession(provider)

    paged = await session.get_catalog_items("Paged", page=2)
    single = await session.get_catalog_items("Single", page=2)

    assert paged.outcome == Outcome.SUCCEEDED
    assert paged.data.page == 2
    assert single.outcome == Outcome.EMPTY
    assert provider.calls == ["catalog:paged:2"]


@pytest.mark.asyncio
async def test_undeclared_catalog_is_rejected():
    """Test that only declared catalogs may be requested."""
    session = ProviderSession(FullProvider())

    with pytest.raises(ValidationError):
        await session.get_catalog_items("Missing")
    with pytest.raises(ValidationError):
        await session.get_catalog_items("Paged", page=0)


@pytest.mark.asyncio
async def test_details_returns_the_right_variant():
    """Test that details keep the Movie/TvShow distinction."""
    provider = FullProvider()
    session = ProviderSession(provider)

    movie = await session.get_film_details(make_item(provider.record, "m1"))
    show = await session.get_film_details(make_item(provider.record, "s1", FilmKind.TV_SHOW))

    assert isinstance(movie.data, Movie)
    assert show.data.kind == "tv"


def test_get_links_requires_an_episode_for_tv_shows():
    """Test link argument validation."""
    provider = FullProvider()
    session = ProviderSession(provider)

    with pytest.raises(ValidationError):
        session.get_links("s1", make_show(provider.record))
    with pytest.raises(ValidationError):
        session.get_links("", make_movie(provider.record))


@pytest.mark.asyncio
async def test_episode_is_ignored_for_movies():
    """Test that an episode passed with a movie never reaches the provider."""
    provider = FullProvider()
    session = ProviderSession(provider)

    result = await session.collect_links("m1", make_movie(provider.record), Episode(season=1, number=1))

    assert result.ok
    assert provider.received_episode is None


@pytest.mark.asyncio
async def test_links_not_implemented_is_a_finished_stream():
    """Test that a provider without links yields an already-finished stream."""
    provider = SearchOnlyProvider()
    session = ProviderSession(provider)

    stream = session.get_links("m1", make_movie(provider.record))
    links = [link async for link in stream]

    assert links == []
    assert stream.done
    assert stream.result.outcome == Outcome.NOT_IMPLEMENTED


@pytest.mark.asyncio
async def test_cancelled_error_propagates_from_stages():
    """Test that cancelling the caller cancels the stage."""

    class Hanging(SearchOnlyProvider):
        async def search(self, *args, **kwargs):
            await asyncio.sleep(10)

    session = ProviderSession(Hanging())
    task = asyncio.ensure_future(session.search("x"))
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_self_test_runs_every_stage():
    """Test the self test against a complete provider."""
    session = ProviderSession(FullProvider())

    results = await session.self_test()

    assert list(results) == list(Stage)
    assert all(result.outcome == Outcome.SUCCEEDED for result in results.values())


@pytest.mark.asyncio
async def test_self_test_reports_missing_stages():
    """Test that the self test reports absent stages instead of failing."""
    session = ProviderSession(SearchOnlyProvider())

    results = await session.self_test()

    assert results[Stage.CATALOG].outcome == Outcome.NOT_IMPLEMENTED
    assert results[Stage.SEARCH].outcome == Outcome.SUCCEEDED
    assert results[Stage.DETAILS].outcome == Outcome.NOT_IMPLEMENTED
    assert results[Stage.LINKS].outcome == Outcome.NOT_IMPLEMENTED


class WrongTypesProvider(FullProvider):
    """Hands back plain dicts where models are expected."""

    async def search(self, title, page=1, id=None, imdb_id=None, tmdb_id=None, filters=None):
        return {"results": [{"id": "m1"}]}

    async def get_film_details(self, item):
        return {"title": item.title}


@pytest.mark.asyncio
async def test_wrongly_typed_stage_results_are_misconfigured():
    """Test that a provider returning the wrong type is reported as a defect."""
    provider = WrongTypesProvider()
    session = ProviderSession(provider)

    search = await session.search("anything")
    details = await session.get_film_details(make_item(provider.record))

    for result in (search, details):
        assert result.outcome == Outcome.MISCONFIGURED
        assert result.is_defect
        assert not result.retryable
        assert isinstance(result.error, MisconfiguredProviderError)
    assert "dict" in str(details.error)
