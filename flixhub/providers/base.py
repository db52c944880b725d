"""
Provider Contract - The capability set every provider implements.

A provider is any object carrying a ``record`` (its ProviderRecord) that
implements some subset of four stages. Each stage has its own runtime
protocol, and ``supports`` answers "does this provider offer that stage?"
without calling it. There are no inherited stage defaults: a stage a
provider does not define is simply not supported.

``ProviderBase`` is an optional holder for the construction parameters
(shared client, record, config) and the declarations most providers share.
"""

import logging
from typing import (
    Any,
    AsyncIterator,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    Union,
    runtime_checkable,
)

from flixhub.core.exceptions import MisconfiguredProviderError
from flixhub.core.filters import BoundFilters, FilterList
from flixhub.core.http import HttpClient
from flixhub.core.models import (
    CatalogDescriptor,
    Episode,
    Movie,
    MediaLink,
    ProviderRecord,
    SearchItem,
    SearchResponseData,
    TvShow,
)
from flixhub.core.results import Stage


logger = logging.getLogger(__name__)


@runtime_checkable
class CatalogProvider(Protocol):
    """Lists the items of an advertised catalog."""

    async def get_catalog_items(
        self,
        catalog: CatalogDescriptor,
        page: int = 1,
    ) -> Optional[SearchResponseData]: ...


@runtime_checkable
class SearchProvider(Protocol):
    """Searches by title, optionally short-circuited by an identifier."""

    async def search(
        self,
        title: str,
        page: int = 1,
        id: Optional[str] = None,
        imdb_id: Optional[str] = None,
        tmdb_id: Optional[int] = None,
        filters: Optional[BoundFilters] = None,
    ) -> Optional[SearchResponseData]: ...


@runtime_checkable
class DetailsProvider(Protocol):
    """Expands a search item into full Movie or TvShow details."""

    async def get_film_details(self, item: SearchItem) -> Optional[Union[Movie, TvShow]]: ...


@runtime_checkable
class LinksProvider(Protocol):
    """Resolves stream and subtitle links as an async generator."""

    def get_links(
        self,
        watch_id: str,
        details: Union[Movie, TvShow],
        episode: Optional[Episode] = None,
    ) -> AsyncIterator[MediaLink]: ...


STAGE_PROTOCOLS = {
    Stage.CATALOG: CatalogProvider,
    Stage.SEARCH: SearchProvider,
    Stage.DETAILS: DetailsProvider,
    Stage.LINKS: LinksProvider,
}


def supports(provider: Any, stage: Stage) -> bool:
    """Check whether a provider implements a pipeline stage."""
    return isinstance(provider, STAGE_PROTOCOLS[stage])


def capabilities(provider: Any) -> List[Stage]:
    """List the stages a provider implements, in pipeline order."""
    return [stage for stage in Stage if supports(provider, stage)]


def provider_name(provider: Any) -> str:
    record = getattr(provider, "record", None)
    return record.name if record is not None else type(provider).__name__


LookupKey = Tuple[str, Union[str, int]]


def resolve_lookup(
    title: str,
    id: Optional[str] = None,
    imdb_id: Optional[str] = None,
    tmdb_id: Optional[int] = None,
) -> LookupKey:
    """
    Pick the identifier a search should be driven by.

    Precedence is id > tmdb_id > imdb_id > title.

    Returns:
        Tuple of (key kind, value), where kind is one of
        "id", "tmdb_id", "imdb_id" or "title"
    """
    if id:
        return "id", id
    if tmdb_id is not None:
        return "tmdb_id", tmdb_id
    if imdb_id:
        return "imdb_id", imdb_id
    return "title", title.strip()


def default_test_film() -> Movie:
    """The title providers are self-tested against unless they override it."""
    return Movie(
        id="238",
        provider_id="tmdb",
        title="The Godfather",
        year=1972,
        runtime=175,
        tmdb_id=238,
        imdb_id="tt0068646",
        genres=["Drama", "Crime"],
        home_page="https://www.themoviedb.org/movie/238-the-godfather",
    )


class ProviderBase:
    """
    Construction-time state shared by most providers.

    Holds the shared client, the provider's record and its configuration,
    and supplies empty catalog and filter declarations. It defines no stage
    methods; subclasses add exactly the stages they support.
    """

    base_url: str = ""
    uses_renderer: bool = False

    def __init__(
        self,
        client: HttpClient,
        record: ProviderRecord,
        config: Optional[Mapping[str, Any]] = None,
        render_context: Optional[Any] = None,
    ):
        """
        Initialize the provider.

        Args:
            client: Shared network client (never closed by the provider)
            record: The provider's metadata record
            config: Provider-specific configuration dictionary
            render_context: Shared RenderContext, for rendering providers
        """
        self.client = client
        self.record = record
        self.config: Dict[str, Any] = dict(config or {})
        self.render_context = render_context

        # Set up logging for this provider
        self.logger = logging.getLogger(f"flixhub.providers.{self.__class__.__name__}")

        if self.config.get("base_url"):
            self.base_url = str(self.config["base_url"]).rstrip("/")

    @property
    def catalogs(self) -> List[CatalogDescriptor]:
        """Catalogs this provider advertises."""
        return []

    @property
    def filters(self) -> FilterList:
        """Filters this provider's search accepts."""
        return FilterList()

    @property
    def test_film(self) -> Union[Movie, TvShow]:
        """Title used when self-testing the provider."""
        return default_test_film()

    def declared_catalogs(self) -> List[CatalogDescriptor]:
        return list(self.catalogs)

    def declared_filters(self) -> FilterList:
        return self.filters

    async def render(self, url: str, wait_for: Optional[str] = None):
        """
        Render a page through the shared render context.

        Raises:
            MisconfiguredProviderError: If the provider does not declare
                rendering or no render context was supplied
        """
        if not self.uses_renderer:
            raise MisconfiguredProviderError(
                f"{self.record.name} renders pages but does not declare uses_renderer",
                provider_name=self.record.name,
            )
        if self.render_context is None:
            raise MisconfiguredProviderError(
                f"{self.record.name} needs a render context but none was supplied",
                provider_name=self.record.name,
            )
        return await self.render_context.render(self, url, wait_for=wait_for)

    async def cleanup(self) -> None:
        """Release provider-owned resources. The shared client is not touched."""
        if self.render_context is not None and self.uses_renderer:
            await self.render_context.release(self)

    def __str__(self) -> str:
        return str(self.record)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.record.name}', id='{self.record.id}')"


__all__ = [
    "CatalogProvider",
    "SearchProvider",
    "DetailsProvider",
    "LinksProvider",
    "STAGE_PROTOCOLS",
    "supports",
    "capabilities",
    "provider_name",
    "resolve_lookup",
    "default_test_film",
    "ProviderBase",
]
