"""
UI Components - Rich tables and panels for pipeline data.

This module turns provider status, search pages, film details, links and
stage outcomes into Rich renderables with a consistent look.
"""

from typing import Any, Dict, List, Mapping, Union

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from flixhub.core.filters import FilterList
from flixhub.core.models import (
    CatalogDescriptor,
    MediaLink,
    Movie,
    SearchResponseData,
    Stream,
    TvShow,
)
from flixhub.core.results import Outcome, Stage, StageResult
from flixhub.ui.console import get_palette


OUTCOME_STYLES = {
    Outcome.SUCCEEDED: "success",
    Outcome.EMPTY: "muted",
    Outcome.CAPABILITY_ABSENT: "muted",
    Outcome.NOT_IMPLEMENTED: "muted",
    Outcome.FAILED: "warning",
    Outcome.MISCONFIGURED: "error",
    Outcome.CANCELLED: "warning",
}


class UIComponents:
    """Factory for the tables and panels the CLI prints."""

    def __init__(self):
        self.palette = get_palette()

    def _table(self, title: str, **kwargs) -> Table:
        return Table(
            title=title,
            show_header=True,
            header_style=f"bold {self.palette.secondary}",
            border_style=self.palette.border_primary,
            **kwargs
        )

    def create_providers_table(self, status: Mapping[str, Any]) -> Table:
        """
        Create a table of discovered providers.

        Args:
            status: ``ProviderManager.get_status()`` output
        """
        table = self._table("🔌 Providers", expand=True)

        table.add_column("Key", style=self.palette.primary)
        table.add_column("Name")
        table.add_column("Version", width=9)
        table.add_column("Status", width=10)
        table.add_column("Enabled", width=8)
        table.add_column("Stages", style=self.palette.text_muted)

        for key, info in status.get("providers", {}).items():
            enabled = "[success]yes[/success]" if info.get("enabled") else "[muted]no[/muted]"
            if info.get("error"):
                state = "[error]error[/error]"
            else:
                state = info.get("status", "?")
            table.add_row(
                key,
                info.get("name", "?"),
                info.get("version", "?"),
                state,
                enabled,
                ", ".join(info.get("capabilities", [])),
            )

        return table

    def create_catalogs_table(self, catalogs: List[CatalogDescriptor]) -> Table:
        table = self._table("📚 Catalogs")

        table.add_column("#", style="dim", width=4)
        table.add_column("Name", style=self.palette.primary)
        table.add_column("Paginated", width=10)

        for i, catalog in enumerate(catalogs, 1):
            table.add_row(str(i), catalog.name, "yes" if catalog.can_paginate else "no")

        return table

    def create_filters_table(self, filters: FilterList) -> Table:
        table = self._table("🎛️  Filters")

        table.add_column("Name", style=self.palette.primary)
        table.add_column("Kind")
        table.add_column("Default")
        table.add_column("Options", style=self.palette.text_muted)

        for item in filters:
            default = "" if item.default is None else str(item.default)
            table.add_row(item.name, item.kind.value, default, ", ".join(item.options))

        return table

    def create_results_table(self, data: SearchResponseData, title: str = "🔍 Search Results") -> Table:
        """
        Create a table displaying one page of results.

        Args:
            data: The page to display
            title: Table title
        """
        caption = f"Page {data.page}"
        if data.total_pages:
            caption += f" of {data.total_pages}"
        if data.has_next_page:
            caption += " (more available)"

        table = self._table(title, caption=caption, expand=True)

        table.add_column("#", style="dim", width=4)
        table.add_column("Title", style=self.palette.primary, min_width=30)
        table.add_column("Year", width=6)
        table.add_column("Kind", width=6)
        table.add_column("Id", style=self.palette.text_muted)

        for i, item in enumerate(data.results, 1):
            table.add_row(
                str(i),
                item.title,
                str(item.year) if item.year else "?",
                item.kind.value,
                item.id,
            )

        return table

    def create_details_panel(self, film: Union[Movie, TvShow]) -> Panel:
        """Create a panel with the full details of a movie or TV show."""
        lines = [f"[title]{film.title}[/title]"]

        facts = []
        if film.year:
            facts.append(str(film.year))
        if isinstance(film, Movie) and film.runtime:
            facts.append(f"{film.runtime} min")
        if isinstance(film, TvShow):
            facts.append(f"{len(film.seasons)} season(s), {film.total_episodes} episode(s)")
        if film.rating is not None:
            facts.append(f"★ {film.rating:.1f}")
        if facts:
            lines.append(" • ".join(facts))

        if film.genres:
            lines.append(f"[muted]{', '.join(film.genres)}[/muted]")
        if film.overview:
            lines.append("")
            lines.append(film.overview)

        ids = [f"id={film.id}"]
        if film.imdb_id:
            ids.append(f"imdb={film.imdb_id}")
        if film.tmdb_id:
            ids.append(f"tmdb={film.tmdb_id}")
        lines.append("")
        lines.append(f"[muted]{'  '.join(ids)}[/muted]")

        if isinstance(film, TvShow):
            for season in film.seasons:
                lines.append("")
                lines.append(f"[bold]Season {season.number}[/bold]")
                for episode in season.episodes:
                    lines.append(f"  {episode}")

        return Panel(
            "\n".join(lines),
            title="🎬 Movie" if isinstance(film, Movie) else "📺 TV Show",
            border_style=self.palette.border_primary,
            padding=(1, 2)
        )

    def format_link(self, link: MediaLink) -> Text:
        """One line per link, as links arrive."""
        text = Text()
        if isinstance(link, Stream):
            text.append("▶ ", style=self.palette.success)
            text.append(str(link), style="bold")
        else:
            text.append("💬 ", style=self.palette.info)
            text.append(f"{link.language} ({link.format.value})", style="bold")
        text.append(f"  {link.url}", style=self.palette.text_muted)
        return text

    def create_self_test_table(self, results: Dict[Stage, StageResult]) -> Table:
        """Create a table with the outcome of every stage of a self test."""
        table = self._table("🧪 Self Test")

        table.add_column("Stage", style=self.palette.primary)
        table.add_column("Outcome")
        table.add_column("Detail", style=self.palette.text_muted)

        for stage, result in results.items():
            style = OUTCOME_STYLES.get(result.outcome, "")
            if result.error is not None:
                detail = str(result.error)
            elif isinstance(result.data, SearchResponseData):
                detail = f"{len(result.data)} result(s)"
            elif isinstance(result.data, list):
                detail = f"{len(result.data)} link(s)"
            elif result.data is not None:
                detail = str(getattr(result.data, "title", ""))
            else:
                detail = ""
            table.add_row(stage.value, f"[{style}]{result.outcome.value}[/{style}]" if style else result.outcome.value, detail)

        return table


__all__ = ["UIComponents", "OUTCOME_STYLES"]
