"""
Search Filters - Typed refinement controls a provider declares.

A provider publishes a FilterList; the host renders it and hands back a
plain name -> value mapping. Binding that mapping is lenient: unknown names
and values that fail validation are dropped (and reported) so a host built
against another provider version can still run the search.
"""

import logging
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, model_validator

from flixhub.core.exceptions import FilterValidationError


logger = logging.getLogger(__name__)


class FilterKind(str, Enum):
    """Input control kinds a filter can take."""

    SELECT = "select"
    MULTI_SELECT = "multi_select"
    TEXT = "text"
    CHECKBOX = "checkbox"
    QUICK_SEARCH = "quick_search"


class Filter(BaseModel):
    """
    A named, typed search-refinement input.

    ``options`` constrains select, multi-select and quick-search filters;
    ``max_length`` constrains text filters. ``default`` must itself be a
    valid value for the filter.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Filter name, used as the binding key")
    kind: FilterKind = Field(..., description="Input control kind")
    default: Any = Field(None, description="Value used when the caller supplies none")
    options: List[str] = Field(default_factory=list, description="Allowed values")
    max_length: Optional[int] = Field(None, ge=1, description="Maximum text length")
    label: Optional[str] = Field(None, description="Display label")

    @model_validator(mode="after")
    def validate_declaration(self) -> "Filter":
        """Ensure the declaration is internally consistent."""
        needs_options = self.kind in (FilterKind.SELECT, FilterKind.MULTI_SELECT, FilterKind.QUICK_SEARCH)
        if needs_options and not self.options:
            raise ValueError(f"Filter '{self.name}' of kind {self.kind.value} needs options")
        if len(set(self.options)) != len(self.options):
            raise ValueError(f"Filter '{self.name}' has duplicate options")
        if self.default is not None:
            try:
                self.coerce(self.default)
            except FilterValidationError as e:
                raise ValueError(f"Invalid default for filter '{self.name}': {e}")
        return self

    @classmethod
    def select(cls, name: str, options: Sequence[str], default: Optional[str] = None, **kwargs) -> "Filter":
        return cls(name=name, kind=FilterKind.SELECT, options=list(options), default=default, **kwargs)

    @classmethod
    def multi_select(cls, name: str, options: Sequence[str], default: Optional[Sequence[str]] = None, **kwargs) -> "Filter":
        return cls(
            name=name,
            kind=FilterKind.MULTI_SELECT,
            options=list(options),
            default=list(default) if default is not None else [],
            **kwargs,
        )

    @classmethod
    def text(cls, name: str, default: Optional[str] = None, max_length: Optional[int] = None, **kwargs) -> "Filter":
        return cls(name=name, kind=FilterKind.TEXT, default=default, max_length=max_length, **kwargs)

    @classmethod
    def checkbox(cls, name: str, default: bool = False, **kwargs) -> "Filter":
        return cls(name=name, kind=FilterKind.CHECKBOX, default=default, **kwargs)

    @classmethod
    def quick_search(cls, name: str, options: Sequence[str], **kwargs) -> "Filter":
        return cls(name=name, kind=FilterKind.QUICK_SEARCH, options=list(options), **kwargs)

    def coerce(self, value: Any) -> Any:
        """
        Coerce a caller-supplied value to this filter's kind.

        Args:
            value: Raw value from the host

        Returns:
            The coerced value

        Raises:
            FilterValidationError: If the value is not assignable to the filter
        """
        if value is None:
            return self.default

        if self.kind in (FilterKind.SELECT, FilterKind.QUICK_SEARCH):
            if not isinstance(value, str) or value not in self.options:
                raise self._invalid(value, f"must be one of {self.options}")
            return value

        if self.kind == FilterKind.MULTI_SELECT:
            if isinstance(value, str):
                value = [part.strip() for part in value.split(",") if part.strip()]
            if not isinstance(value, (list, tuple, set, frozenset)):
                raise self._invalid(value, "must be a list of options")
            unknown = [item for item in value if item not in self.options]
            if unknown:
                raise self._invalid(value, f"unknown options {unknown}")
            # Keep declaration order, drop duplicates
            return [option for option in self.options if option in value]

        if self.kind == FilterKind.TEXT:
            if not isinstance(value, str):
                raise self._invalid(value, "must be text")
            value = value.strip()
            if self.max_length is not None and len(value) > self.max_length:
                raise self._invalid(value, f"longer than {self.max_length} characters")
            return value

        # Checkbox
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "1", "yes", "on"):
            return True
        if isinstance(value, str) and value.lower() in ("false", "0", "no", "off"):
            return False
        raise self._invalid(value, "must be a boolean")

    def _invalid(self, value: Any, reason: str) -> FilterValidationError:
        return FilterValidationError(
            f"Invalid value for filter '{self.name}': {reason}",
            field_name=self.name,
            invalid_value=value,
        )


class BoundFilters(Mapping[str, Any]):
    """
    The result of binding caller values to a FilterList.

    Iterates in declaration order and holds a value (possibly the default)
    for every declared filter. ``rejected`` maps dropped names to the reason.
    """

    def __init__(self, values: Dict[str, Any], rejected: Optional[Dict[str, str]] = None):
        self._values = dict(values)
        self.rejected: Dict[str, str] = dict(rejected or {})

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"BoundFilters({self._values!r}, rejected={sorted(self.rejected)})"


class FilterList(Sequence[Filter]):
    """Ordered collection of the filters one provider supports."""

    def __init__(self, filters: Optional[Sequence[Filter]] = None):
        self._filters: List[Filter] = list(filters or [])
        names = [f.name for f in self._filters]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate filter names: {duplicates}")

    def __getitem__(self, index):
        return self._filters[index]

    def __len__(self) -> int:
        return len(self._filters)

    def __repr__(self) -> str:
        return f"FilterList({[f.name for f in self._filters]})"

    def get(self, name: str) -> Optional[Filter]:
        """Look up a filter by name."""
        for item in self._filters:
            if item.name == name:
                return item
        return None

    @property
    def names(self) -> List[str]:
        return [f.name for f in self._filters]

    def defaults(self) -> BoundFilters:
        return BoundFilters({f.name: f.default for f in self._filters})

    def bind(self, values: Optional[Mapping[str, Any]] = None) -> BoundFilters:
        """
        Bind caller values to the declared filters.

        Args:
            values: Mapping of filter name to chosen value

        Returns:
            BoundFilters with every declared filter present; invalid and
            unknown entries fall back to defaults and are listed in
            ``rejected``
        """
        values = dict(values or {})
        bound: Dict[str, Any] = {}
        rejected: Dict[str, str] = {}

        for item in self._filters:
            if item.name not in values:
                bound[item.name] = item.default
                continue
            try:
                bound[item.name] = item.coerce(values.pop(item.name))
            except FilterValidationError as e:
                logger.warning(f"Dropping filter value: {e}")
                rejected[item.name] = e.message
                bound[item.name] = item.default

        for name in values:
            logger.warning(f"Dropping unknown filter: {name}")
            rejected[name] = "unknown filter"

        return BoundFilters(bound, rejected)


__all__ = ["FilterKind", "Filter", "FilterList", "BoundFilters"]
