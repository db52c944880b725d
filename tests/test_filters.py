"""Tests for filter declarations and binding."""

import pytest
from pydantic import ValidationError

from flixhub.core.exceptions import FilterValidationError
from flixhub.core.filters import Filter, FilterKind, FilterList


@pytest.fixture
def filters():
    return FilterList([
        Filter.select("sort", ["Relevance", "Newest"], default="Relevance"),
        Filter.multi_select("genres", ["Action", "Drama", "Comedy"]),
        Filter.text("creator", max_length=10),
        Filter.checkbox("movies_only"),
    ])


def test_bind_fills_defaults(filters):
    """Test that every declared filter is present after binding nothing."""
    bound = filters.bind()

    assert dict(bound) == {"sort": "Relevance", "genres": [], "creator": None, "movies_only": False}
    assert bound.rejected == {}


def test_bind_coerces_values(filters):
    """Test coercion of host values to each filter kind."""
    bound = filters.bind({
        "sort": "Newest",
        "genres": "Drama, Action",
        "creator": "  Welles ",
        "movies_only": "yes",
    })

    assert bound["sort"] == "Newest"
    assert bound["genres"] == ["Action", "Drama"]
    assert bound["creator"] == "Welles"
    assert bound["movies_only"] is True


def test_bind_drops_invalid_and_unknown_values(filters):
    """Test that bad entries fall back to defaults and are reported."""
    bound = filters.bind({"sort": "Oldest", "creator": "x" * 11, "colour": "red"})

    assert bound["sort"] == "Relevance"
    assert bound["creator"] is None
    assert "colour" not in bound
    assert set(bound.rejected) == {"sort", "creator", "colour"}
    assert bound.rejected["colour"] == "unknown filter"


def test_multi_select_rejects_unknown_options(filters):
    """Test that one unknown option rejects the whole multi-select value."""
    with pytest.raises(FilterValidationError):
        filters.get("genres").coerce(["Action", "Horror"])


def test_checkbox_rejects_non_boolean_text():
    """Test checkbox coercion of unrecognized text."""
    with pytest.raises(FilterValidationError):
        Filter.checkbox("flag").coerce("maybe")


def test_select_needs_options():
    """Test that option-based filters must declare options."""
    with pytest.raises(ValidationError):
        Filter(name="sort", kind=FilterKind.SELECT)


def test_default_must_be_valid():
    """Test that a default outside the options is rejected at declaration."""
    with pytest.raises(ValidationError):
        Filter.select("sort", ["A", "B"], default="C")


def test_duplicate_filter_names_are_rejected():
    """Test that a filter list cannot declare one name twice."""
    with pytest.raises(ValueError):
        FilterList([Filter.checkbox("flag"), Filter.text("flag")])


def test_filter_list_lookup(filters):
    """Test name lookup on a filter list."""
    assert filters.names == ["sort", "genres", "creator", "movies_only"]
    assert filters.get("creator").kind == FilterKind.TEXT
    assert filters.get("missing") is None
