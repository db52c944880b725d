"""Tests for the command-line interface."""

import json

import pytest
from typer.testing import CliRunner

from flixhub import __version__
from flixhub.cli import app
from flixhub.cli.runtime import parse_filters


runner = CliRunner()


@pytest.fixture
def invoke(tmp_path):
    config_dir = tmp_path / "config"

    def _invoke(*args, **kwargs):
        return runner.invoke(app, ["--config-dir", str(config_dir), *args], **kwargs)

    _invoke.config_dir = config_dir
    return _invoke


def test_version():
    """Test the version flag and command."""
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_version_command(invoke):
    """Test the version subcommand."""
    result = invoke("version")

    assert result.exit_code == 0
    assert __version__ in result.output


def test_providers_list(invoke):
    """Test listing the bundled providers."""
    result = invoke("providers", "list")

    assert result.exit_code == 0
    assert "sample" in result.output
    assert "archive" in result.output


def test_providers_record_is_interchange_json(invoke):
    """Test printing a record in the camelCase interchange format."""
    result = invoke("providers", "record", "sample")

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["name"] == "Sample Source"
    assert data["versionCode"] == 1
    assert len(data["id"]) == 15


def test_providers_disable_and_enable(invoke):
    """Test toggling a provider through the CLI."""
    assert invoke("providers", "disable", "archive").exit_code == 0

    data = json.loads((invoke.config_dir / "providers.json").read_text(encoding="utf-8"))
    assert data["providers"]["archive"]["enabled"] is False

    assert invoke("providers", "enable", "archive").exit_code == 0
    assert invoke("providers", "enable", "nope").exit_code == 1


def test_search(invoke):
    """Test a search against the sample provider."""
    result = invoke("search", "sample", "test")

    assert result.exit_code == 0
    assert "Test Pattern" in result.output
    assert "Page 1 of 1" in result.output


def test_search_with_filters(invoke):
    """Test passing filters on the command line."""
    result = invoke("search", "sample", "e", "--filter", "genres=Mystery", "-f", "movies_only=yes")

    assert result.exit_code == 0
    assert "Winter Cartographer" in result.output
    assert "Lantern District" not in result.output


def test_search_without_matches(invoke):
    """Test that an empty search is reported but not an error."""
    result = invoke("search", "sample", "zzzz")

    assert result.exit_code == 0
    assert "No results" in result.output


def test_search_by_identifier(invoke):
    """Test searching by TMDB id without a title."""
    result = invoke("search", "sample", "--tmdb", "550371")

    assert result.exit_code == 0
    assert "Test Pattern" in result.output


def test_malformed_filter_is_a_usage_error(invoke):
    """Test that a filter without '=' is rejected by the parser."""
    result = invoke("search", "sample", "test", "--filter", "genres")

    assert result.exit_code == 2


def test_invalid_page_fails(invoke):
    """Test that caller errors exit with status 1."""
    result = invoke("search", "sample", "test", "--page", "0")

    assert result.exit_code == 1


def test_unknown_provider_fails(invoke):
    """Test commands against a provider that does not exist."""
    result = invoke("search", "nope", "test")

    assert result.exit_code == 1
    assert "not available" in result.output


def test_catalogs(invoke):
    """Test listing catalogs and filters, then one catalog page."""
    overview = invoke("catalogs", "sample")
    page = invoke("catalogs", "sample", "--catalog", "Latest", "--page", "2")

    assert overview.exit_code == 0
    assert "Top Rated" in overview.output
    assert "Filters" in overview.output
    assert page.exit_code == 0
    assert "Page 2 of 2" in page.output


def test_details(invoke):
    """Test the details panel for a TV show."""
    result = invoke("details", "sample", "The Long Road")

    assert result.exit_code == 0
    assert "TV Show" in result.output
    assert "Season 2" in result.output


def test_details_index_out_of_range(invoke):
    """Test picking a search result that does not exist."""
    result = invoke("details", "sample", "test", "--index", "5")

    assert result.exit_code == 1


def test_links_for_a_movie(invoke):
    """Test streaming links to the terminal."""
    result = invoke("links", "sample", "Test Pattern")

    assert result.exit_code == 0
    assert "3 link(s), succeeded" in result.output


def test_links_for_an_episode(invoke):
    """Test links for a chosen episode."""
    result = invoke("links", "sample", "The Long Road", "--season", "2", "--episode", "1")

    assert result.exit_code == 0
    assert "s02e01" in result.output


def test_links_for_a_missing_episode(invoke):
    """Test that an unknown episode is a caller error."""
    result = invoke("links", "sample", "The Long Road", "--season", "9", "--episode", "1")

    assert result.exit_code == 1


def test_self_test(invoke):
    """Test the self test command."""
    result = invoke("test", "sample")

    assert result.exit_code == 0
    assert "Self Test" in result.output
    assert "failed" not in result.output


def test_config_show_and_set(invoke):
    """Test reading and changing settings."""
    assert invoke("config", "set", "network.timeout", "12").exit_code == 0

    shown = invoke("config", "show", "network.timeout")
    assert shown.exit_code == 0
    assert shown.stdout.strip() == "12"

    nullable = invoke("config", "show", "rendering.driver_path")
    assert nullable.exit_code == 0
    assert nullable.stdout.strip() == "null"

    assert invoke("config", "show", "network.nothing").exit_code == 1
    assert invoke("config", "set", "network.timeout", "0").exit_code == 1


def test_config_validate_and_reset(invoke):
    """Test validation and reset commands."""
    assert invoke("config", "validate").exit_code == 0

    invoke("config", "set", "network.timeout", "12")
    assert invoke("config", "reset", "--yes").exit_code == 0
    assert json.loads(invoke("config", "show", "network.timeout").stdout) == 30

    aborted = invoke("config", "reset", input="n\n")
    assert aborted.exit_code == 1


def test_parse_filters_collects_repeats():
    """Test parsing of repeated name=value options."""
    assert parse_filters(["genres=Drama", "genres=Action", "sort = Title"]) == {
        "genres": ["Drama", "Action"],
        "sort": "Title",
    }
    assert parse_filters(None) == {}
