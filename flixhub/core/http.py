"""
HTTP Client - The network client shared by every provider.

One aiohttp session (and its connection pool) serves all providers and all
stages. The client adds per-host rate limiting, retries with linear backoff
for connection-level failures, and maps HTTP and decoding failures onto
NetworkError and ParseError.
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import urljoin, urlparse

import aiohttp

from flixhub.core.config_schemas import NetworkSettings
from flixhub.core.exceptions import NetworkError, ParseError


logger = logging.getLogger(__name__)


DEFAULT_HEADERS = {
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,application/json;q=0.9,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
    'Accept-Encoding': 'gzip, deflate',
    'Connection': 'keep-alive',
}


class HttpClient:
    """
    Shared asynchronous HTTP client.

    The session is created lazily inside the running event loop and reused
    until ``close`` is called. Providers must treat the client as read-only
    and never close it themselves.
    """

    def __init__(self, settings: Optional[NetworkSettings] = None):
        """
        Initialize the client.

        Args:
            settings: Network settings; defaults are used when omitted
        """
        self.settings = settings or NetworkSettings()
        self._session: Optional[aiohttp.ClientSession] = None
        self._last_request: Dict[str, float] = {}
        self._host_locks: Dict[str, asyncio.Lock] = {}

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session with proper configuration."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.settings.connection_limit,
                limit_per_host=max(1, self.settings.connection_limit // 4),
                ttl_dns_cache=300,
                use_dns_cache=True
            )

            timeout = aiohttp.ClientTimeout(total=self.settings.timeout)

            headers = dict(DEFAULT_HEADERS)
            headers['User-Agent'] = self.settings.user_agent

            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout,
                headers=headers
            )

        return self._session

    @property
    def closed(self) -> bool:
        return self._session is None or self._session.closed

    async def _rate_limit(self, host: str) -> None:
        """Enforce the minimum delay between requests to one host."""
        if self.settings.rate_limit <= 0:
            return

        # One lock per host, created inside the running loop
        lock = self._host_locks.get(host)
        if lock is None:
            lock = self._host_locks[host] = asyncio.Lock()

        async with lock:
            now = time.monotonic()
            elapsed = now - self._last_request.get(host, 0.0)
            if elapsed < self.settings.rate_limit:
                await asyncio.sleep(self.settings.rate_limit - elapsed)
            self._last_request[host] = time.monotonic()

    async def _fetch(
        self,
        method: str,
        url: str,
        *,
        base_url: Optional[str] = None,
        as_json: bool = False,
        **kwargs
    ) -> Any:
        """
        Make an HTTP request with rate limiting, retries and error mapping.

        Args:
            method: HTTP method
            url: Absolute URL, or one relative to ``base_url``
            base_url: Base for relative URLs
            as_json: Decode the body as JSON instead of text
            **kwargs: Additional arguments for the request

        Returns:
            Response text or decoded JSON

        Raises:
            NetworkError: On HTTP error status or when retries are exhausted
            ParseError: If a JSON body cannot be decoded
        """
        if not urlparse(url).netloc:
            if not base_url:
                raise NetworkError(f"Relative URL without a base: {url}", url=url)
            url = urljoin(base_url, url)

        await self._rate_limit(urlparse(url).netloc)

        last_exception: Optional[BaseException] = None
        attempts = self.settings.max_retries + 1

        for attempt in range(attempts):
            try:
                logger.debug(f"Making {method} request to {url} (attempt {attempt + 1})")

                async with self.session.request(method, url, **kwargs) as response:
                    if response.status >= 400:
                        error_text = await response.text()
                        raise NetworkError(
                            f"HTTP {response.status} error for {url}",
                            url=url,
                            status_code=response.status,
                            details=error_text[:500]
                        )

                    body = await response.text()

                if not as_json:
                    return body
                try:
                    return json.loads(body)
                except json.JSONDecodeError as e:
                    raise ParseError(f"Invalid JSON from {url}: {e}", source=url, details=body[:500])

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_exception = e
                logger.warning(f"Request failed (attempt {attempt + 1}): {e!r}")

                if attempt < attempts - 1:
                    await asyncio.sleep(self.settings.retry_delay * (attempt + 1))

        raise NetworkError(
            f"Request failed after {attempts} attempts: {last_exception!r}",
            url=url,
            details=str(last_exception)
        )

    async def get_text(self, url: str, **kwargs) -> str:
        """Get text content from URL."""
        return await self._fetch('GET', url, **kwargs)

    async def get_json(self, url: str, **kwargs) -> Any:
        """Get JSON content from URL."""
        return await self._fetch('GET', url, as_json=True, **kwargs)

    async def post_json(self, url: str, **kwargs) -> Any:
        """POST and decode a JSON response."""
        return await self._fetch('POST', url, as_json=True, **kwargs)

    async def close(self) -> None:
        """Close the underlying session."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("HTTP session closed")
        self._session = None

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


__all__ = ["HttpClient", "DEFAULT_HEADERS"]
