"""End-to-end pipeline runs against the bundled sample provider."""

import pytest

from flixhub.core.models import FilmKind, Movie, Quality, Stream, Subtitle, TvShow
from flixhub.core.results import Outcome, Stage


def test_declarations(sample_session):
    """Test the declared catalogs, filters and capabilities."""
    assert [catalog.name for catalog in sample_session.catalogs()] == ["Latest", "Top Rated"]
    assert sample_session.filters().names == ["sort", "genres", "movies_only"]
    assert sample_session.capabilities() == list(Stage)


@pytest.mark.asyncio
async def test_catalog_pages(sample_session):
    """Test the paginated and single-page catalogs."""
    first = await sample_session.get_catalog_items("Latest")
    second = await sample_session.get_catalog_items("Latest", page=2)
    top = await sample_session.get_catalog_items("Top Rated")
    beyond = await sample_session.get_catalog_items("Top Rated", page=2)

    assert len(first.data) == 10
    assert first.data.has_next_page
    assert first.data.results[0].year == 2022
    assert len(second.data) == 5
    assert not second.data.has_next_page
    assert len(top.data) == 10
    assert top.data.results[0].title == "Iron Meridian"
    assert beyond.outcome == Outcome.EMPTY


@pytest.mark.asyncio
async def test_search_then_details_then_links(sample_session):
    """Test the full pipeline for a movie."""
    search = await sample_session.search("test")
    assert search.outcome == Outcome.SUCCEEDED
    assert [item.title for item in search.data.results] == ["Test Pattern"]

    details = await sample_session.get_film_details(search.data.results[0])
    movie = details.unwrap()
    assert isinstance(movie, Movie)
    assert movie.runtime == 94

    links = await sample_session.collect_links(movie.id, movie)
    assert links.outcome == Outcome.SUCCEEDED
    streams = [link for link in links.data if isinstance(link, Stream)]
    subtitles = [link for link in links.data if isinstance(link, Subtitle)]
    assert sorted(stream.quality for stream in streams) == sorted([Quality.HIGH, Quality.MEDIUM])
    assert [subtitle.language for subtitle in subtitles] == ["en"]


@pytest.mark.asyncio
async def test_tv_show_episode_links(sample_session):
    """Test link resolution for one episode of a show."""
    search = await sample_session.search("long road")
    show = (await sample_session.get_film_details(search.data.results[0])).unwrap()

    assert isinstance(show, TvShow)
    assert [season.number for season in show.seasons] == [1, 2]
    assert show.total_episodes == 12

    episode = show.episode(2, 3)
    links = await sample_session.collect_links(show.id, show, episode)

    assert links.ok
    assert all("/the-long-road/s02e03/" in link.url for link in links.data)


@pytest.mark.asyncio
async def test_search_filters(sample_session):
    """Test filters narrowing and ordering sample results."""
    result = await sample_session.search(
        "e",
        filters={"genres": ["Mystery"], "movies_only": True, "sort": "Title"},
    )

    titles = [item.title for item in result.data.results]
    assert titles == ["Winter Cartographer"]
    assert all(item.kind == FilmKind.MOVIE for item in result.data.results)


@pytest.mark.asyncio
async def test_identifier_search(sample_session):
    """Test identifier lookups."""
    by_tmdb = await sample_session.search("", tmdb_id=550371)
    by_imdb = await sample_session.search("", imdb_id="tt8717234")
    by_id = await sample_session.search("ignored title", id="harbor-lights")
    missing = await sample_session.search("", id="nope")

    assert by_tmdb.data.results[0].id == "test-pattern"
    assert by_imdb.data.results[0].id == "test-pattern"
    assert by_id.data.results[0].title == "Harbor Lights"
    assert missing.outcome == Outcome.EMPTY


@pytest.mark.asyncio
async def test_unknown_title_has_no_links(sample_session, sample_provider):
    """Test that an unknown watch id yields an empty stream."""
    result = await sample_session.collect_links("unknown", sample_provider.test_film)

    assert result.outcome == Outcome.EMPTY


@pytest.mark.asyncio
async def test_self_test(sample_session):
    """Test that the sample provider passes its own self test."""
    results = await sample_session.self_test()

    assert {stage: result.outcome for stage, result in results.items()} == {
        stage: Outcome.SUCCEEDED for stage in Stage
    }
