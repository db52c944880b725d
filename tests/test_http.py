"""Tests for the shared HTTP client."""

import asyncio
import time

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp import test_utils

from flixhub.core.config_schemas import NetworkSettings
from flixhub.core.exceptions import NetworkError, ParseError
from flixhub.core.http import HttpClient


async def _hello(request):
    return web.Response(text=f"hello {request.query.get('name', 'world')}")


async def _data(request):
    return web.json_response({"ok": True, "agent": request.headers.get("User-Agent")})


async def _garbled(request):
    return web.Response(text="{not json", content_type="application/json")


async def _missing(request):
    return web.Response(status=404, text="no such page")


@pytest_asyncio.fixture
async def server():
    app = web.Application()
    app.router.add_get("/hello", _hello)
    app.router.add_get("/data", _data)
    app.router.add_get("/garbled", _garbled)
    app.router.add_get("/missing", _missing)

    test_server = test_utils.TestServer(app)
    await test_server.start_server()
    yield test_server
    await test_server.close()


@pytest.mark.asyncio
async def test_get_text(server, http_client):
    """Test fetching a text body with query parameters."""
    body = await http_client.get_text(str(server.make_url("/hello")), params={"name": "flixhub"})

    assert body == "hello flixhub"


@pytest.mark.asyncio
async def test_relative_url_uses_base(server, http_client):
    """Test that relative URLs are joined onto the base URL."""
    body = await http_client.get_text("/hello", base_url=str(server.make_url("/")))

    assert body == "hello world"


@pytest.mark.asyncio
async def test_relative_url_without_base_is_rejected(http_client):
    """Test that a relative URL needs a base."""
    with pytest.raises(NetworkError):
        await http_client.get_text("/hello")


@pytest.mark.asyncio
async def test_get_json_sends_the_user_agent(server, http_client):
    """Test JSON decoding and the configured User-Agent."""
    data = await http_client.get_json(str(server.make_url("/data")))

    assert data["ok"] is True
    assert data["agent"] == http_client.settings.user_agent


@pytest.mark.asyncio
async def test_http_error_status(server, http_client):
    """Test that error statuses raise immediately with the status code."""
    with pytest.raises(NetworkError) as excinfo:
        await http_client.get_text(str(server.make_url("/missing")))

    assert excinfo.value.status_code == 404
    assert "no such page" in excinfo.value.details


@pytest.mark.asyncio
async def test_invalid_json_is_a_parse_error(server, http_client):
    """Test that an undecodable JSON body raises ParseError."""
    with pytest.raises(ParseError):
        await http_client.get_json(str(server.make_url("/garbled")))


@pytest.mark.asyncio
async def test_connection_failure_exhausts_retries(http_client):
    """Test that connection errors are retried and then reported."""
    app = web.Application()
    dead = test_utils.TestServer(app)
    await dead.start_server()
    url = str(dead.make_url("/gone"))
    await dead.close()

    with pytest.raises(NetworkError) as excinfo:
        await http_client.get_text(url)

    assert "3 attempts" in str(excinfo.value)
    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_close_is_idempotent(server, http_client):
    """Test that the session can be closed twice and recreated afterwards."""
    await http_client.get_text(str(server.make_url("/hello")))
    assert not http_client.closed

    await http_client.close()
    await http_client.close()
    assert http_client.closed

    assert await http_client.get_text(str(server.make_url("/hello"))) == "hello world"


@pytest.mark.asyncio
async def test_rate_limit_delays_the_same_host():
    """Test the minimum delay between two requests to one host."""
    client = HttpClient(NetworkSettings(rate_limit=0.3))

    await client._rate_limit("a.example")
    started = time.monotonic()
    await client._rate_limit("a.example")

    assert time.monotonic() - started >= 0.2


@pytest.mark.asyncio
async def test_rate_limit_does_not_block_other_hosts():
    """Test that one host's delay leaves other hosts free."""
    client = HttpClient(NetworkSettings(rate_limit=0.5))
    await client._rate_limit("a.example")

    async def timed(host):
        started = time.monotonic()
        await client._rate_limit(host)
        return time.monotonic() - started

    slow, fast = await asyncio.gather(timed("a.example"), timed("b.example"))

    assert slow >= 0.3
    assert fast < 0.1


def test_client_built_outside_a_loop_works_in_several_loops():
    """Test that a client created before any loop runs can be reused."""
    client = HttpClient(NetworkSettings(rate_limit=0.01))

    asyncio.run(client._rate_limit("a.example"))
    asyncio.run(client._rate_limit("a.example"))

    assert "a.example" in client._last_request
