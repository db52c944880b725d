"""
Browse Commands - Drive one provider through the pipeline stages.

Each command loads a single provider by key and runs one stage (or, for
``test``, all of them), printing the outcome. Non-success outcomes are shown
as such; failures and misconfiguration exit with status 1.
"""

import logging
from typing import List, Optional, Tuple, Union

import typer

from flixhub.cli.runtime import open_session, parse_filters, run_command
from flixhub.core import (
    Episode,
    Movie,
    Outcome,
    ProviderSession,
    SearchItem,
    StageResult,
    TvShow,
    ValidationError,
)
from flixhub.ui import UIComponents, get_console, status_spinner


logger = logging.getLogger(__name__)

console = get_console()

FAILING_OUTCOMES = (Outcome.FAILED, Outcome.MISCONFIGURED)


def _report(result: StageResult) -> bool:
    """Print a non-success outcome; returns False when the command should fail."""
    if result.outcome == Outcome.SUCCEEDED:
        return True

    messages = {
        Outcome.EMPTY: "[muted]No results[/muted]",
        Outcome.CAPABILITY_ABSENT: "[muted]The provider has nothing to offer for this stage[/muted]",
        Outcome.NOT_IMPLEMENTED: "[muted]The provider does not implement this stage[/muted]",
        Outcome.CANCELLED: "[warning]Cancelled[/warning]",
        Outcome.FAILED: f"[warning]⚠️  {result.stage.value} failed: {result.error}[/warning]",
        Outcome.MISCONFIGURED: f"[error]{result.stage.value}: provider is misconfigured: {result.error}[/error]",
    }
    console.print(messages[result.outcome])
    return result.outcome not in FAILING_OUTCOMES


def _exit_on(ok: bool) -> None:
    if not ok:
        raise typer.Exit(1)


def catalogs(
    key: str = typer.Argument(..., help="Provider key"),
    catalog: Optional[str] = typer.Option(None, "--catalog", "-c", help="Catalog to list"),
    page: int = typer.Option(1, "--page", "-p", help="Page number (starts at 1)"),
) -> None:
    """
    📚 Show a provider's catalogs and filters, or one catalog page.

    Examples:

        flixhub catalogs sample

        flixhub catalogs sample --catalog Latest --page 2
    """
    _exit_on(run_command(_catalogs(key, catalog, page), "Catalog listing failed"))


async def _catalogs(key: str, catalog: Optional[str], page: int) -> bool:
    components = UIComponents()

    async with open_session(key) as session:
        if catalog is None:
            declared = session.catalogs()
            if declared:
                console.print(components.create_catalogs_table(declared))
            else:
                console.print("[muted]No catalogs declared[/muted]")
            filters = session.filters()
            if len(filters):
                console.print(components.create_filters_table(filters))
            return True

        with status_spinner(f"Loading {catalog}..."):
            result = await session.get_catalog_items(catalog, page)

    if result.data is not None and not result.data.is_empty:
        console.print(components.create_results_table(result.data, title=f"📚 {catalog}"))
    return _report(result)


def search(
    key: str = typer.Argument(..., help="Provider key"),
    title: str = typer.Argument("", help="Title to search for"),
    page: int = typer.Option(1, "--page", "-p", help="Page number (starts at 1)"),
    filters: Optional[List[str]] = typer.Option(None, "--filter", "-f", help="Filter as name=value (repeatable)"),
    id: Optional[str] = typer.Option(None, "--id", help="Provider-local id"),
    imdb_id: Optional[str] = typer.Option(None, "--imdb", help="IMDB id"),
    tmdb_id: Optional[int] = typer.Option(None, "--tmdb", help="TMDB id"),
) -> None:
    """
    🔍 Search one provider.

    Examples:

        flixhub search sample "test"

        flixhub search sample night --filter genres=Drama --filter sort=Title
    """
    values = parse_filters(filters)
    _exit_on(run_command(
        _search(key, title, page, values, id, imdb_id, tmdb_id),
        "Search failed",
    ))


async def _search(key, title, page, filters, id, imdb_id, tmdb_id) -> bool:
    async with open_session(key) as session:
        with status_spinner(f"Searching {session.name}..."):
            result = await session.search(
                title, page=page, id=id, imdb_id=imdb_id, tmdb_id=tmdb_id, filters=filters
            )

    if result.ok:
        console.print(UIComponents().create_results_table(result.data))
    return _report(result)


async def _find(session: ProviderSession, title: str, index: int) -> Tuple[Optional[SearchItem], StageResult]:
    """Search by title and pick the result at a 1-based index."""
    result = await session.search(title)
    if not result.ok:
        return None, result
    if not 1 <= index <= len(result.data):
        raise ValidationError(
            f"Only {len(result.data)} result(s) for '{title}'",
            field_name="index",
            invalid_value=index,
        )
    return result.data.results[index - 1], result


async def _resolve_details(session: ProviderSession, title: str, index: int) -> Tuple[Optional[Union[Movie, TvShow]], bool]:
    with status_spinner(f"Looking up '{title}' on {session.name}..."):
        item, search_result = await _find(session, title, index)
        if item is None:
            return None, _report(search_result)
        details = await session.get_film_details(item)

    if not details.ok:
        return None, _report(details)
    return details.data, True


def details(
    key: str = typer.Argument(..., help="Provider key"),
    title: str = typer.Argument(..., help="Title to look up"),
    index: int = typer.Option(1, "--index", "-i", help="Which search result to expand"),
) -> None:
    """
    🎬 Show full details for a title.

    Examples:

        flixhub details sample "Test Pattern"
    """
    _exit_on(run_command(_details(key, title, index), "Details lookup failed"))


async def _details(key: str, title: str, index: int) -> bool:
    async with open_session(key) as session:
        film, ok = await _resolve_details(session, title, index)

    if film is not None:
        console.print(UIComponents().create_details_panel(film))
    return ok


def links(
    key: str = typer.Argument(..., help="Provider key"),
    title: str = typer.Argument(..., help="Title to resolve"),
    index: int = typer.Option(1, "--index", "-i", help="Which search result to resolve"),
    season: Optional[int] = typer.Option(None, "--season", "-s", help="Season number (TV shows)"),
    episode: Optional[int] = typer.Option(None, "--episode", "-e", help="Episode number (TV shows)"),
) -> None:
    """
    ▶️  Resolve playable links, printing each as it arrives.

    Examples:

        flixhub links sample "Test Pattern"

        flixhub links sample "The Long Road" --season 1 --episode 2
    """
    _exit_on(run_command(_links(key, title, index, season, episode), "Link resolution failed"))


def _pick_episode(film: Union[Movie, TvShow], season: Optional[int], number: Optional[int]) -> Optional[Episode]:
    if not isinstance(film, TvShow) or (season is None and number is None):
        return None
    season = 1 if season is None else season
    number = 1 if number is None else number
    found = film.episode(season, number)
    if found is None:
        raise ValidationError(
            f"'{film.title}' has no episode S{season:02d}E{number:02d}",
            field_name="episode",
            invalid_value=f"{season}x{number}",
        )
    return found


async def _links(key: str, title: str, index: int, season: Optional[int], number: Optional[int]) -> bool:
    components = UIComponents()

    async with open_session(key) as session:
        film, ok = await _resolve_details(session, title, index)
        if film is None:
            return ok

        target = _pick_episode(film, season, number)
        label = f"{film.title} {target}" if target else film.title
        console.print(f"[title]Links for {label}[/title]")

        async with session.get_links(film.id, film, target) as stream:
            async for link in stream:
                console.print(components.format_link(link))

    result = stream.result
    console.print(f"[muted]{len(result.data or [])} link(s), {result.outcome.value}[/muted]")
    return _report(result)


def test(
    key: str = typer.Argument(..., help="Provider key"),
) -> None:
    """
    🧪 Run every stage against the provider's test film.

    Examples:

        flixhub test sample
    """
    _exit_on(run_command(_test(key), "Self test failed"))


async def _test(key: str) -> bool:
    async with open_session(key) as session:
        with status_spinner(f"Testing {session.name}..."):
            results = await session.self_test()

    console.print(UIComponents().create_self_test_table(results))
    return not any(result.outcome in FAILING_OUTCOMES for result in results.values())


__all__ = ["catalogs", "search", "details", "links", "test"]
