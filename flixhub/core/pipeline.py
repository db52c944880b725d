"""
Link-Resolution Pipeline - Host-side dispatch of provider stages.

``ProviderSession`` wraps one provider and turns every stage call into an
explicit ``StageResult``: capability checks happen before dispatch, caller
argument errors raise ``ValidationError``, and whatever the provider raises
is classified into an outcome instead of escaping to the host.

Link resolution is incremental. ``get_links`` hands back a ``LinkStream``
that pumps the provider's async generator through a bounded queue and can
be cancelled at any point, keeping the links delivered so far.
"""

import asyncio
import logging
from enum import Enum
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

import aiohttp

from flixhub.core.config_schemas import PipelineSettings
from flixhub.core.exceptions import (
    RUNTIME_ERRORS,
    MisconfiguredProviderError,
    ProviderError,
    ValidationError,
)
from flixhub.core.filters import FilterList
from flixhub.core.models import (
    CatalogDescriptor,
    Episode,
    MediaLink,
    Movie,
    ProviderRecord,
    SearchItem,
    SearchResponseData,
    TvShow,
)
from flixhub.core.results import Outcome, Stage, StageResult
from flixhub.providers.base import capabilities, default_test_film, provider_name, supports


logger = logging.getLogger(__name__)


_DONE = object()


def classify_error(exc: BaseException, name: str) -> Tuple[Outcome, BaseException]:
    """
    Map an exception raised by a provider onto a stage outcome.

    Args:
        exc: The exception the provider raised
        name: Provider name, used when wrapping unknown errors

    Returns:
        Tuple of (outcome, error to report)
    """
    if isinstance(exc, MisconfiguredProviderError):
        return Outcome.MISCONFIGURED, exc
    if isinstance(exc, NotImplementedError):
        return Outcome.NOT_IMPLEMENTED, exc
    if isinstance(exc, RUNTIME_ERRORS + (asyncio.TimeoutError, aiohttp.ClientError, ProviderError)):
        return Outcome.FAILED, exc

    wrapped = ProviderError(
        f"{name} raised {type(exc).__name__}: {exc}",
        provider_name=name,
        details=repr(exc),
    )
    wrapped.__cause__ = exc
    return Outcome.FAILED, wrapped


def _log_outcome(name: str, stage: Stage, outcome: Outcome, error: Optional[BaseException]) -> None:
    if outcome == Outcome.MISCONFIGURED:
        logger.error(f"{name} is misconfigured ({stage.value}): {error}")
    elif outcome == Outcome.FAILED:
        logger.warning(f"{name} failed during {stage.value}: {error}")
    else:
        logger.debug(f"{name} {stage.value} finished as {outcome.value}")


class StreamState(str, Enum):
    """Lifecycle of one link stream."""

    IDLE = "idle"
    DISPATCHED = "dispatched"
    DONE = "done"


class LinkStream:
    """
    Cancellable, incrementally delivered link resolution.

    Iterate it with ``async for`` (preferably inside ``async with``). The
    provider is not called until the first iteration. Failures never raise
    out of iteration; inspect ``result`` once the stream is exhausted.
    """

    def __init__(
        self,
        source: Optional[Callable[[], AsyncIterator[MediaLink]]],
        *,
        provider_id: Optional[str] = None,
        name: str = "provider",
        link_timeout: float = 120.0,
        cancel_grace_period: float = 2.0,
        buffer_size: int = 32,
        result: Optional[StageResult] = None,
    ):
        """
        Initialize the stream.

        Args:
            source: Zero-argument callable returning the provider's async generator
            provider_id: Id reported in the final result
            name: Provider name for logging
            link_timeout: Budget for the whole stream in seconds
            cancel_grace_period: How long cancellation waits for the provider
            buffer_size: Links buffered ahead of the consumer
            result: Pre-decided result; the stream then yields nothing
        """
        self._source = source
        self.provider_id = provider_id
        self.name = name
        self.link_timeout = link_timeout
        self.cancel_grace_period = cancel_grace_period

        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max(1, buffer_size))
        self._links: List[MediaLink] = []
        self._error: Optional[BaseException] = None
        self._task: Optional[asyncio.Task] = None
        self._deadline: Optional[float] = None
        self._result: Optional[StageResult] = result
        self._state = StreamState.DONE if result is not None else StreamState.IDLE

    @classmethod
    def finished(cls, result: StageResult) -> "LinkStream":
        """A stream that was decided before dispatch."""
        return cls(None, provider_id=result.provider_id, result=result)

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def links(self) -> List[MediaLink]:
        """Links delivered so far."""
        return list(self._links)

    @property
    def result(self) -> Optional[StageResult]:
        """Final result, available once the stream is done."""
        return self._result

    @property
    def done(self) -> bool:
        return self._state == StreamState.DONE

    def _start(self) -> None:
        loop = asyncio.get_running_loop()
        self._deadline = loop.time() + self.link_timeout
        self._task = asyncio.ensure_future(self._pump())
        self._state = StreamState.DISPATCHED
        logger.debug(f"Link resolution dispatched to {self.name}")

    async def _pump(self) -> None:
        """Move links from the provider generator into the queue."""
        try:
            generator = self._source()
            try:
                async for link in generator:
                    await self._queue.put(link)
            finally:
                aclose = getattr(generator, "aclose", None)
                if aclose is not None:
                    await aclose()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._error = e

        await self._queue.put(_DONE)

    async def _stop_pump(self) -> None:
        """Cancel the pump and wait for the provider to unwind, within the grace period."""
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        finished, _ = await asyncio.wait({task}, timeout=self.cancel_grace_period)
        if not finished:
            logger.warning(f"{self.name} did not stop within {self.cancel_grace_period}s of cancellation")

    def _wake_consumer(self) -> None:
        # A consumer blocked on the queue sees the sentinel and stops
        try:
            self._queue.put_nowait(_DONE)
        except asyncio.QueueFull:
            pass

    def _finish(self, outcome: Outcome, error: Optional[BaseException] = None) -> StageResult:
        self._state = StreamState.DONE
        self._result = StageResult(
            stage=Stage.LINKS,
            outcome=outcome,
            data=list(self._links),
            error=error,
            provider_id=self.provider_id,
        )
        _log_outcome(self.name, Stage.LINKS, outcome, error)
        return self._result

    def _finish_from_pump(self) -> None:
        if self._error is not None:
            outcome, error = classify_error(self._error, self.name)
            self._finish(outcome, error)
        elif self._links:
            self._finish(Outcome.SUCCEEDED)
        else:
            self._finish(Outcome.EMPTY)

    def __aiter__(self) -> "LinkStream":
        return self

    async def __anext__(self) -> MediaLink:
        if self._state == StreamState.DONE:
            raise StopAsyncIteration
        if self._state == StreamState.IDLE:
            self._start()

        remaining = max(0.0, self._deadline - asyncio.get_running_loop().time())
        try:
            item = await asyncio.wait_for(self._queue.get(), remaining)
        except asyncio.TimeoutError:
            if self._state == StreamState.DONE:
                raise StopAsyncIteration
            await self._stop_pump()
            self._finish(
                Outcome.FAILED,
                asyncio.TimeoutError(f"Link resolution exceeded {self.link_timeout}s"),
            )
            raise StopAsyncIteration

        if self._state == StreamState.DONE:
            # Cancelled while this consumer was waiting
            raise StopAsyncIteration
        if item is _DONE:
            self._finish_from_pump()
            raise StopAsyncIteration

        self._links.append(item)
        return item

    async def cancel(self) -> StageResult:
        """
        Stop emission now, keeping the links delivered so far.

        Returns:
            The final result (unchanged if the stream had already finished)
        """
        if self._state == StreamState.DONE:
            return self._result
        self._state = StreamState.DONE
        await self._stop_pump()
        self._wake_consumer()
        return self._finish(Outcome.CANCELLED)

    async def aclose(self) -> None:
        await self.cancel()

    async def __aenter__(self) -> "LinkStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"LinkStream(provider='{self.name}', state={self._state.value}, links={len(self._links)})"


FilterValues = Optional[Mapping[str, Any]]

# What each non-streaming stage must hand back
_STAGE_RETURNS: Dict[Stage, Tuple[type, ...]] = {
    Stage.CATALOG: (SearchResponseData,),
    Stage.SEARCH: (SearchResponseData,),
    Stage.DETAILS: (Movie, TvShow),
}


class ProviderSession:
    """
    Host-side handle on one provider.

    Every stage returns a ``StageResult``; the provider is only called for
    stages it supports, and each call is bounded by the stage timeout.
    """

    def __init__(
        self,
        provider: Any,
        *,
        stage_timeout: float = 60.0,
        link_timeout: float = 120.0,
        cancel_grace_period: float = 2.0,
        link_buffer_size: int = 32,
    ):
        self.provider = provider
        self.stage_timeout = stage_timeout
        self.link_timeout = link_timeout
        self.cancel_grace_period = cancel_grace_period
        self.link_buffer_size = link_buffer_size

    @classmethod
    def from_settings(cls, provider: Any, settings: PipelineSettings) -> "ProviderSession":
        return cls(
            provider,
            stage_timeout=settings.stage_timeout,
            link_timeout=settings.link_timeout,
            cancel_grace_period=settings.cancel_grace_period,
            link_buffer_size=settings.link_buffer_size,
        )

    @property
    def record(self) -> ProviderRecord:
        return self.provider.record

    @property
    def name(self) -> str:
        return provider_name(self.provider)

    def supports(self, stage: Stage) -> bool:
        return supports(self.provider, stage)

    def capabilities(self) -> List[Stage]:
        return capabilities(self.provider)

    def catalogs(self) -> List[CatalogDescriptor]:
        """Catalogs the provider declares (empty when it declares none)."""
        declared = getattr(self.provider, "declared_catalogs", None)
        if declared is not None:
            return list(declared())
        return list(getattr(self.provider, "catalogs", None) or [])

    def filters(self) -> FilterList:
        """Filters the provider's search accepts."""
        declared = getattr(self.provider, "declared_filters", None)
        if declared is not None:
            return declared()
        filters = getattr(self.provider, "filters", None)
        return filters if isinstance(filters, FilterList) else FilterList(filters or [])

    def _result(self, stage: Stage, outcome: Outcome, data: Any = None, error: Optional[BaseException] = None) -> StageResult:
        _log_outcome(self.name, stage, outcome, error)
        return StageResult(stage=stage, outcome=outcome, data=data, error=error, provider_id=self.record.id)

    async def _dispatch(self, stage: Stage, call: Callable[[], Awaitable[Any]]) -> StageResult:
        """Run one stage call and classify whatever comes back."""
        if not self.supports(stage):
            return self._result(stage, Outcome.NOT_IMPLEMENTED)

        logger.debug(f"Dispatching {stage.value} to {self.name}")
        try:
            data = await asyncio.wait_for(call(), self.stage_timeout)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            outcome, error = classify_error(e, self.name)
            return self._result(stage, outcome, error=error)

        if data is None:
            return self._result(stage, Outcome.CAPABILITY_ABSENT)
        expected = _STAGE_RETURNS.get(stage)
        if expected is not None and not isinstance(data, expected):
            error = MisconfiguredProviderError(
                f"{self.name} returned {type(data).__name__} from the {stage.value} stage",
                provider_name=self.name,
            )
            return self._result(stage, Outcome.MISCONFIGURED, error=error)
        if isinstance(data, SearchResponseData) and data.is_empty:
            return self._result(stage, Outcome.EMPTY, data=data)
        return self._result(stage, Outcome.SUCCEEDED, data=data)

    @staticmethod
    def _check_page(page: int) -> None:
        if not isinstance(page, int) or page < 1:
            raise ValidationError("Page numbers start at 1", field_name="page", invalid_value=page)

    def _resolve_catalog(self, catalog: Union[CatalogDescriptor, str], declared: List[CatalogDescriptor]) -> CatalogDescriptor:
        for item in declared:
            if item == catalog or (isinstance(catalog, str) and item.name == catalog):
                return item
        label = catalog if isinstance(catalog, str) else catalog.name
        raise ValidationError(
            f"{self.name} does not declare a catalog named '{label}'",
            field_name="catalog",
            invalid_value=label,
        )

    async def get_catalog_items(
        self,
        catalog: Union[CatalogDescriptor, str],
        page: int = 1,
    ) -> StageResult[SearchResponseData]:
        """
        Fetch one page of a declared catalog.

        Args:
            catalog: A declared catalog, or its name
            page: 1-indexed page number

        Returns:
            StageResult holding a SearchResponseData on success

        Raises:
            ValidationError: If page < 1 or the catalog is not declared
        """
        self._check_page(page)
        if not self.supports(Stage.CATALOG):
            return self._result(Stage.CATALOG, Outcome.NOT_IMPLEMENTED)

        declared = self.catalogs()
        if not declared:
            return self._result(Stage.CATALOG, Outcome.CAPABILITY_ABSENT)

        descriptor = self._resolve_catalog(catalog, declared)
        if page > 1 and not descriptor.can_paginate:
            return self._result(Stage.CATALOG, Outcome.EMPTY, data=SearchResponseData(page=page))

        return await self._dispatch(
            Stage.CATALOG,
            lambda: self.provider.get_catalog_items(descriptor, page),
        )

    async def search(
        self,
        title: str,
        page: int = 1,
        id: Optional[str] = None,
        imdb_id: Optional[str] = None,
        tmdb_id: Optional[int] = None,
        filters: FilterValues = None,
    ) -> StageResult[SearchResponseData]:
        """
        Search the provider.

        ``filters`` is bound against the provider's declared filters first;
        unknown or invalid entries are dropped with a warning.

        Raises:
            ValidationError: If page < 1, or the title is blank and no
                identifier is given
        """
        self._check_page(page)
        title = (title or "").strip()
        if not title and not (id or imdb_id or tmdb_id is not None):
            raise ValidationError("A title or an identifier is required", field_name="title", invalid_value=title)

        bound = self.filters().bind(filters)
        return await self._dispatch(
            Stage.SEARCH,
            lambda: self.provider.search(
                title,
                page=page,
                id=id,
                imdb_id=imdb_id,
                tmdb_id=tmdb_id,
                filters=bound,
            ),
        )

    async def get_film_details(self, item: SearchItem) -> StageResult[Union[Movie, TvShow]]:
        """Expand a search item into Movie or TvShow details."""
        return await self._dispatch(Stage.DETAILS, lambda: self.provider.get_film_details(item))

    def get_links(
        self,
        watch_id: str,
        details: Union[Movie, TvShow],
        episode: Optional[Episode] = None,
    ) -> LinkStream:
        """
        Start link resolution.

        Args:
            watch_id: Provider-local id of the title to resolve
            details: Full details from the details stage
            episode: Required for TV shows, ignored for movies

        Returns:
            A LinkStream; nothing is requested until it is iterated

        Raises:
            ValidationError: If watch_id is blank or a TV show has no episode
        """
        if not watch_id:
            raise ValidationError("watch_id is required", field_name="watch_id", invalid_value=watch_id)
        if isinstance(details, TvShow) and episode is None:
            raise ValidationError("An episode is required for TV shows", field_name="episode")
        if isinstance(details, Movie) and episode is not None:
            logger.debug(f"Ignoring episode {episode} for movie '{details.title}'")
            episode = None

        if not self.supports(Stage.LINKS):
            return LinkStream.finished(self._result(Stage.LINKS, Outcome.NOT_IMPLEMENTED, data=[]))

        return LinkStream(
            lambda: self.provider.get_links(watch_id, details, episode),
            provider_id=self.record.id,
            name=self.name,
            link_timeout=self.link_timeout,
            cancel_grace_period=self.cancel_grace_period,
            buffer_size=self.link_buffer_size,
        )

    async def collect_links(
        self,
        watch_id: str,
        details: Union[Movie, TvShow],
        episode: Optional[Episode] = None,
    ) -> StageResult[List[MediaLink]]:
        """Drain a link stream and return its result."""
        async with self.get_links(watch_id, details, episode) as stream:
            async for _ in stream:
                pass
        return stream.result

    async def self_test(self) -> Dict[Stage, StageResult]:
        """
        Run every stage against the provider's test film.

        Returns:
            Mapping of stage to its result, in pipeline order
        """
        film = getattr(self.provider, "test_film", None) or default_test_film()
        results: Dict[Stage, StageResult] = {}
        logger.info(f"Self-testing {self.name} with '{film.title}'")

        declared = self.catalogs()
        if declared and self.supports(Stage.CATALOG):
            results[Stage.CATALOG] = await self.get_catalog_items(declared[0])
        elif self.supports(Stage.CATALOG):
            results[Stage.CATALOG] = self._result(Stage.CATALOG, Outcome.CAPABILITY_ABSENT)
        else:
            results[Stage.CATALOG] = self._result(Stage.CATALOG, Outcome.NOT_IMPLEMENTED)

        search = await self.search(film.title, tmdb_id=film.tmdb_id, imdb_id=film.imdb_id)
        results[Stage.SEARCH] = search

        item = search.data.results[0] if search.ok else film.as_search_item()
        details = await self.get_film_details(item)
        results[Stage.DETAILS] = details

        target = details.data if details.ok else film
        episode = None
        if isinstance(target, TvShow):
            episode = next((s.episodes[0] for s in target.seasons if s.episodes), Episode(season=1, number=1))
        results[Stage.LINKS] = await self.collect_links(target.id, target, episode)

        return results

    async def cleanup(self) -> None:
        cleanup = getattr(self.provider, "cleanup", None)
        if cleanup is not None:
            await cleanup()

    def __repr__(self) -> str:
        return f"ProviderSession({self.provider!r})"


__all__ = [
    "classify_error",
    "StreamState",
    "LinkStream",
    "ProviderSession",
]
