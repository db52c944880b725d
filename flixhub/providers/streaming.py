"""
Concurrent Link Sources - Fan-in helper for link resolution.

Providers usually resolve links from several mirrors or servers. Each one
is an async iterator (or a coroutine returning a list); ``merge_sources``
runs them concurrently and yields links in arrival order.
"""

import asyncio
import inspect
import logging
from typing import AsyncIterator, Awaitable, Iterable, List, Union

from flixhub.core.models import MediaLink


logger = logging.getLogger(__name__)


LinkSource = Union[AsyncIterator[MediaLink], Awaitable[List[MediaLink]]]

_DONE = object()


async def merge_sources(sources: Iterable[LinkSource]) -> AsyncIterator[MediaLink]:
    """
    Yield links from several sources as soon as any of them produces one.

    A failing source is logged and skipped while others keep running. If
    every source fails and no link was produced, the first error is
    re-raised so the stage is reported as failed rather than empty.

    Closing the returned generator cancels the sources still running.
    """
    sources = list(sources)
    if not sources:
        return

    queue: asyncio.Queue = asyncio.Queue()
    errors: List[BaseException] = []

    async def pump(source: LinkSource) -> None:
        try:
            if inspect.isawaitable(source):
                for link in await source:
                    await queue.put(link)
            else:
                try:
                    async for link in source:
                        await queue.put(link)
                finally:
                    aclose = getattr(source, "aclose", None)
                    if aclose is not None:
                        await aclose()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Link source failed: {e}")
            errors.append(e)
        finally:
            queue.put_nowait(_DONE)

    tasks = [asyncio.ensure_future(pump(source)) for source in sources]
    remaining = len(tasks)
    emitted = 0

    try:
        while remaining:
            item = await queue.get()
            if item is _DONE:
                remaining -= 1
                continue
            emitted += 1
            yield item
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    if errors and not emitted and len(errors) == len(sources):
        raise errors[0]


__all__ = ["merge_sources", "LinkSource"]
