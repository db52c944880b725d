"""
Render Context - The single, globally serialized page-rendering resource.

Some sources only work in a real browser (scripts, cookies, DOM). Browser
drivers are not thread-safe, so every renderer is created and driven on one
dedicated worker thread. Async callers queue for a single slot; waiting for
the slot and the render itself are both bounded by timeouts so a stuck page
cannot starve other providers.
"""

import asyncio
import functools
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Optional, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from flixhub.core.config_schemas import RenderingSettings
from flixhub.core.exceptions import (
    FlixHubError,
    MisconfiguredProviderError,
    RenderingError,
    RenderTimeoutError,
)
from flixhub.providers.base import provider_name


logger = logging.getLogger(__name__)


RENDER_THREAD_NAME = "flixhub-render"

T = TypeVar("T")


class RenderedPage(BaseModel):
    """The result of rendering one page."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Final URL after redirects")
    html: str = Field(..., description="Rendered DOM serialized as HTML")
    cookies: Dict[str, str] = Field(default_factory=dict, description="Cookies set by the page")
    title: Optional[str] = Field(None, description="Document title")

    @property
    def cookie_header(self) -> str:
        """Cookies formatted for a ``Cookie`` request header."""
        return "; ".join(f"{name}={value}" for name, value in self.cookies.items())


@runtime_checkable
class Renderer(Protocol):
    """A browser session. Every method runs on the render thread."""

    def load(self, url: str, wait_for: Optional[str] = None) -> RenderedPage: ...

    def reset(self) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class RenderingProvider(Protocol):
    """A provider that needs full page rendering."""

    uses_renderer: bool

    def get_renderer(self) -> Renderer: ...


def is_render_thread() -> bool:
    return threading.current_thread().name.startswith(RENDER_THREAD_NAME)


def require_render_thread() -> None:
    """
    Guard for code that may only run on the render thread.

    Raises:
        MisconfiguredProviderError: When called from any other thread
    """
    if not is_render_thread():
        raise MisconfiguredProviderError(
            f"Renderer code called from thread '{threading.current_thread().name}'; "
            f"it must run on the render thread"
        )


class RenderContext:
    """
    Single-slot rendering resource shared by all providers.

    Renderers are created lazily, one per provider id, by calling the
    provider's ``get_renderer`` on the render thread.
    """

    def __init__(self, settings: Optional[RenderingSettings] = None):
        """
        Initialize the render context.

        Args:
            settings: Rendering settings (timeouts, browser options)
        """
        self.settings = settings or RenderingSettings()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=RENDER_THREAD_NAME)
        self._slot = asyncio.Lock()
        self._renderers: Dict[str, Renderer] = {}
        self._waiting = 0
        self._closed = False

    @property
    def pending(self) -> int:
        """Number of requests queued for the slot."""
        return self._waiting

    @property
    def busy(self) -> bool:
        return self._slot.locked()

    @property
    def closed(self) -> bool:
        return self._closed

    async def _call(self, fn: Callable[..., T], *args) -> T:
        """Run a callable on the render thread."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    @asynccontextmanager
    async def _hold_slot(self):
        """Queue for the slot, bounded by the queue timeout."""
        self._waiting += 1
        try:
            await asyncio.wait_for(self._slot.acquire(), self.settings.queue_timeout)
        except asyncio.TimeoutError:
            raise RenderTimeoutError(
                f"Timed out after {self.settings.queue_timeout}s waiting for the render slot"
            )
        finally:
            self._waiting -= 1

        try:
            yield
        finally:
            self._slot.release()

    def _renderer_for(self, provider: Any) -> Renderer:
        """Get or create the provider's renderer. Runs on the render thread."""
        key = provider.record.id
        renderer = self._renderers.get(key)
        if renderer is not None:
            return renderer

        name = provider_name(provider)
        get_renderer = getattr(provider, "get_renderer", None)
        if get_renderer is None:
            raise MisconfiguredProviderError(
                f"{name} uses a renderer but does not provide get_renderer()",
                provider_name=name,
            )

        try:
            renderer = get_renderer()
        except NotImplementedError:
            raise MisconfiguredProviderError(
                f"{name} indicates that it uses a renderer but does not provide one",
                provider_name=name,
            ) from None

        if renderer is None:
            raise MisconfiguredProviderError(
                f"{name} returned no renderer from get_renderer()",
                provider_name=name,
            )

        logger.debug(f"Created renderer for {name}")
        self._renderers[key] = renderer
        return renderer

    def _reset_quietly(self, renderer: Renderer) -> None:
        try:
            renderer.reset()
        except Exception as e:
            logger.warning(f"Failed to reset renderer: {e}")

    async def run(self, provider: Any, action: Callable[[Renderer], T], *, timeout: Optional[float] = None) -> T:
        """
        Run an action against the provider's renderer while holding the slot.

        Args:
            provider: The rendering provider
            action: Callable receiving the renderer, executed on the render thread
            timeout: Render budget in seconds (defaults to settings)

        Returns:
            Whatever ``action`` returns

        Raises:
            RenderTimeoutError: If the slot or the render times out
            RenderingError: If the renderer fails
            MisconfiguredProviderError: If the provider supplies no renderer
        """
        if self._closed:
            raise RenderingError("Render context has been shut down")

        timeout = timeout or self.settings.render_timeout

        async with self._hold_slot():
            renderer = await self._call(self._renderer_for, provider)
            loop = asyncio.get_running_loop()
            future = loop.run_in_executor(self._executor, action, renderer)

            try:
                return await asyncio.wait_for(future, timeout)
            except asyncio.TimeoutError:
                self._executor.submit(self._reset_quietly, renderer)
                raise RenderTimeoutError(f"Render exceeded {timeout}s for {provider_name(provider)}")
            except asyncio.CancelledError:
                # The thread keeps running the action; queue a reset behind it
                self._executor.submit(self._reset_quietly, renderer)
                raise
            except FlixHubError:
                raise
            except Exception as e:
                raise RenderingError(f"Renderer failed for {provider_name(provider)}: {e}", details=repr(e))

    async def render(
        self,
        provider: Any,
        url: str,
        *,
        wait_for: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> RenderedPage:
        """Load a page in the provider's renderer and return its content and cookies."""
        logger.debug(f"Rendering {url} for {provider_name(provider)}")
        return await self.run(
            provider,
            lambda renderer: renderer.load(url, wait_for),
            timeout=timeout,
        )

    async def release(self, provider: Any) -> None:
        """Close the provider's renderer, if one was created."""
        renderer = self._renderers.pop(provider.record.id, None)
        if renderer is None or self._closed:
            return
        async with self._hold_slot():
            await self._call(self._close_quietly, renderer)

    def _close_quietly(self, renderer: Renderer) -> None:
        try:
            renderer.close()
        except Exception as e:
            logger.warning(f"Failed to close renderer: {e}")

    async def shutdown(self) -> None:
        """Close every renderer and stop the render thread."""
        if self._closed:
            return
        self._closed = True

        renderers = list(self._renderers.values())
        self._renderers.clear()
        for renderer in renderers:
            await self._call(self._close_quietly, renderer)

        self._executor.shutdown(wait=False)
        logger.debug("Render context shut down")


__all__ = [
    "RENDER_THREAD_NAME",
    "RenderedPage",
    "Renderer",
    "RenderingProvider",
    "RenderContext",
    "is_render_thread",
    "require_render_thread",
]
