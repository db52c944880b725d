"""
Core Data Models - Pydantic models for type safety and validation.

This module defines the data flowing through the provider pipeline:
provider records, catalogs, search items, film details, episodes and the
media links a provider resolves. Everything a stage produces is frozen, so
callers own the values they receive and nothing is mutated after creation.
"""

import re
from datetime import date
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from flixhub.core.identity import compute_id, is_valid_id, record_fingerprint


_SEMVER = re.compile(r"^\d+\.\d+\.\d+(?:[+-][0-9A-Za-z.-]+)?$")
_LANGUAGE_TAG = re.compile(r"^[a-z]{2,3}(?:-[A-Za-z0-9]{2,8})*$")


class ProviderType(str, Enum):
    """Kind of content a provider serves."""

    MOVIE = "Movie"
    TV_SHOW = "TV"
    ANIME = "Anime"
    ALL = "All"


class ProviderStatus(str, Enum):
    """Lifecycle status published with a provider."""

    WORKING = "Working"
    MAINTENANCE = "Maintenance"
    BETA = "Beta"
    DOWN = "Down"


class Author(BaseModel):
    """A contributor to a provider."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    name: str = Field(..., min_length=1, description="Author name")
    avatar_url: Optional[str] = Field(None, description="Avatar image URL")
    social_link: Optional[str] = Field(None, description="Profile or social link")


class ProviderRecord(BaseModel):
    """
    Metadata describing one provider build.

    The record is immutable. Its ``id`` is assigned at construction from a
    fingerprint of the fields plus random salt; interchange data that already
    carries an ``id`` keeps it. ``name`` is not unique, ``id`` is the join key.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    authors: List[Author] = Field(default_factory=list, description="Provider authors")
    repository_url: Optional[str] = Field(None, description="Source repository URL")
    build_url: str = Field(..., min_length=1, description="Download URL of the build")
    changelog: Optional[str] = Field(None, description="Changelog (Markdown)")
    version_name: str = Field(..., description="Semantic version name")
    version_code: int = Field(..., ge=0, description="Monotonic version code")
    adult: bool = Field(False, description="Whether the provider is adult-only")
    description: Optional[str] = Field(None, description="Description (Markdown)")
    icon_url: Optional[str] = Field(None, description="Icon URL")
    language: str = Field(..., description="Primary language tag")
    name: str = Field(..., min_length=1, description="Display name")
    provider_type: ProviderType = Field(..., description="Kind of content served")
    status: ProviderStatus = Field(..., description="Lifecycle status")
    id: str = Field("", description="Unique provider identifier")

    @model_validator(mode="before")
    @classmethod
    def assign_id(cls, data):
        """Derive the id once, unless interchange data already carries one."""
        if isinstance(data, dict) and not data.get("id"):
            fields = {key: value for key, value in data.items() if key != "id"}
            data = {**data, "id": compute_id(record_fingerprint(fields))}
        return data

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not is_valid_id(v):
            raise ValueError(f"Invalid provider id: {v!r}")
        return v

    @field_validator("version_name")
    @classmethod
    def validate_version_name(cls, v: str) -> str:
        if not _SEMVER.match(v):
            raise ValueError("version_name must follow semantic versioning")
        return v

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        if not _LANGUAGE_TAG.match(v):
            raise ValueError(f"Invalid language tag: {v}")
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return v.strip()

    def is_newer_than(self, other: "ProviderRecord") -> bool:
        """Check whether this build supersedes another."""
        return self.version_code > other.version_code

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize to the camelCase interchange format."""
        return self.model_dump_json(by_alias=True, indent=indent)

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "ProviderRecord":
        """Parse a record from the interchange format."""
        return cls.model_validate_json(text)

    def __str__(self) -> str:
        return f"{self.name} v{self.version_name}"

    def __repr__(self) -> str:
        return f"ProviderRecord(id='{self.id}', name='{self.name}', version_code={self.version_code})"


_RECORD_LIST = TypeAdapter(List[ProviderRecord])


def load_records(text: Union[str, bytes]) -> List[ProviderRecord]:
    """Parse a repository listing (a JSON array of records)."""
    return _RECORD_LIST.validate_json(text)


class Quality(str, Enum):
    """Video quality labels for streams."""

    LOW = "480p"
    MEDIUM = "720p"
    HIGH = "1080p"
    ULTRA = "1440p"
    FOUR_K = "2160p"

    @classmethod
    def from_resolution(cls, width: int, height: int) -> "Quality":
        """Convert resolution dimensions to Quality enum."""
        if height <= 480:
            return cls.LOW
        elif height <= 720:
            return cls.MEDIUM
        elif height <= 1080:
            return cls.HIGH
        elif height <= 1440:
            return cls.ULTRA
        else:
            return cls.FOUR_K

    @property
    def height(self) -> int:
        """Get the height in pixels for this quality."""
        return int(self.value.replace('p', ''))

    def __str__(self) -> str:
        return self.value


class CatalogDescriptor(BaseModel):
    """A named listing a provider advertises."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Catalog display name")
    url: str = Field(..., description="Opaque query key interpreted by the provider")
    can_paginate: bool = Field(False, description="Whether pages beyond the first exist")
    image: Optional[str] = Field(None, description="Catalog artwork URL")

    def __str__(self) -> str:
        return self.name


class FilmKind(str, Enum):
    """Discriminator for film results and details."""

    MOVIE = "movie"
    TV_SHOW = "tv"


class SearchItem(BaseModel):
    """Lightweight result data, enough to list a title."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Provider-local id")
    provider_id: str = Field(..., description="Id of the provider that produced it")
    title: str = Field(..., min_length=1, description="Title")
    kind: FilmKind = Field(..., description="Movie or TV show")
    poster: Optional[str] = Field(None, description="Poster image URL")
    year: Optional[int] = Field(None, ge=1870, le=2100, description="Release year")
    tmdb_id: Optional[int] = Field(None, description="TMDB id")
    imdb_id: Optional[str] = Field(None, description="IMDB id")
    home_page: Optional[str] = Field(None, description="Page on the source site")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Ensure title is properly formatted."""
        return v.strip()

    def __str__(self) -> str:
        return f"{self.title} ({self.year})" if self.year else self.title


class SearchResponseData(BaseModel):
    """One page of catalog or search results."""

    model_config = ConfigDict(frozen=True)

    results: List[SearchItem] = Field(default_factory=list)
    page: int = Field(1, ge=1, description="1-indexed page number")
    has_next_page: bool = Field(False, description="Whether more pages exist")
    total_pages: Optional[int] = Field(None, ge=0)

    @property
    def is_empty(self) -> bool:
        return not self.results

    def __len__(self) -> int:
        return len(self.results)


class Episode(BaseModel):
    """An episode of a TV show, used to scope link resolution."""

    model_config = ConfigDict(frozen=True)

    season: int = Field(..., ge=0, description="Season number (0 for specials)")
    number: int = Field(..., ge=0, description="Episode number within the season")
    title: Optional[str] = Field(None, description="Episode title")
    id: Optional[str] = Field(None, description="Provider-local episode id")
    overview: Optional[str] = Field(None, description="Episode synopsis")
    air_date: Optional[date] = Field(None, description="Original air date")

    def __str__(self) -> str:
        label = f"S{self.season:02d}E{self.number:02d}"
        return f"{label} - {self.title}" if self.title else label


class Season(BaseModel):
    """An ordered run of episodes."""

    model_config = ConfigDict(frozen=True)

    number: int = Field(..., ge=0)
    name: Optional[str] = None
    episodes: List[Episode] = Field(default_factory=list)

    @field_validator('episodes')
    @classmethod
    def sort_episodes(cls, v: List[Episode]) -> List[Episode]:
        return sorted(v, key=lambda ep: ep.number)


class _FilmBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    provider_id: str = Field(...)
    title: str = Field(..., min_length=1)
    poster: Optional[str] = None
    backdrop: Optional[str] = None
    overview: Optional[str] = None
    year: Optional[int] = Field(None, ge=1870, le=2100)
    rating: Optional[float] = Field(None, ge=0.0, le=10.0)
    genres: List[str] = Field(default_factory=list)
    tmdb_id: Optional[int] = None
    imdb_id: Optional[str] = None
    home_page: Optional[str] = None

    @field_validator('genres')
    @classmethod
    def validate_genres(cls, v: List[str]) -> List[str]:
        """Clean and validate genre list."""
        return [genre.strip().title() for genre in v if genre.strip()]

    def as_search_item(self) -> SearchItem:
        """Reduce full details back to a listable search item."""
        return SearchItem(
            id=self.id,
            provider_id=self.provider_id,
            title=self.title,
            kind=FilmKind(self.kind),  # type: ignore[attr-defined]
            poster=self.poster,
            year=self.year,
            tmdb_id=self.tmdb_id,
            imdb_id=self.imdb_id,
            home_page=self.home_page,
        )


class Movie(_FilmBase):
    """Full details of a movie."""

    kind: Literal["movie"] = "movie"
    runtime: Optional[int] = Field(None, ge=0, description="Runtime in minutes")


class TvShow(_FilmBase):
    """Full details of a TV show, including its season structure."""

    kind: Literal["tv"] = "tv"
    seasons: List[Season] = Field(default_factory=list)

    @field_validator('seasons')
    @classmethod
    def sort_seasons(cls, v: List[Season]) -> List[Season]:
        return sorted(v, key=lambda season: season.number)

    @property
    def total_episodes(self) -> int:
        return sum(len(season.episodes) for season in self.seasons)

    def episode(self, season: int, number: int) -> Optional[Episode]:
        """Find an episode by season and episode number."""
        for item in self.seasons:
            if item.number != season:
                continue
            for ep in item.episodes:
                if ep.number == number:
                    return ep
        return None


FilmDetails = Annotated[Union[Movie, TvShow], Field(discriminator="kind")]

_FILM_DETAILS = TypeAdapter(FilmDetails)


def parse_film_details(data) -> Union[Movie, TvShow]:
    """Validate raw data into the Movie or TvShow variant."""
    return _FILM_DETAILS.validate_python(data)


class SubtitleFormat(str, Enum):
    """Caption file formats."""

    SRT = "srt"
    VTT = "vtt"
    ASS = "ass"
    TTML = "ttml"

    @classmethod
    def from_url(cls, url: str) -> "SubtitleFormat":
        """Guess the format from a URL's extension, defaulting to SRT."""
        path = urlparse(url).path.lower()
        for fmt in cls:
            if path.endswith(f".{fmt.value}"):
                return fmt
        if path.endswith(".ssa"):
            return cls.ASS
        return cls.SRT


class Stream(BaseModel):
    """A playable media URL."""

    model_config = ConfigDict(frozen=True)

    type: Literal["stream"] = "stream"
    url: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, description="Label shown to the user")
    quality: Optional[Quality] = None
    headers: Dict[str, str] = Field(default_factory=dict, description="Headers needed for playback")

    @property
    def is_hls(self) -> bool:
        return urlparse(self.url).path.lower().endswith(".m3u8")

    def __str__(self) -> str:
        return f"{self.name} [{self.quality}]" if self.quality else self.name


class Subtitle(BaseModel):
    """A caption file URL."""

    model_config = ConfigDict(frozen=True)

    type: Literal["subtitle"] = "subtitle"
    url: str = Field(..., min_length=1)
    language: str = Field(..., min_length=1)
    format: SubtitleFormat = SubtitleFormat.SRT
    label: Optional[str] = None

    @classmethod
    def from_url(cls, url: str, language: str, label: Optional[str] = None) -> "Subtitle":
        return cls(url=url, language=language, format=SubtitleFormat.from_url(url), label=label)

    def __str__(self) -> str:
        return self.label or f"{self.language} ({self.format.value})"


MediaLink = Annotated[Union[Stream, Subtitle], Field(discriminator="type")]


# Export all models and types
__all__ = [
    "ProviderType",
    "ProviderStatus",
    "Author",
    "ProviderRecord",
    "load_records",
    "Quality",
    "CatalogDescriptor",
    "FilmKind",
    "SearchItem",
    "SearchResponseData",
    "Episode",
    "Season",
    "Movie",
    "TvShow",
    "FilmDetails",
    "parse_film_details",
    "SubtitleFormat",
    "Stream",
    "Subtitle",
    "MediaLink",
]
