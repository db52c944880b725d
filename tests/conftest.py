"""Shared pytest fixtures for the test suite."""

import pytest
import pytest_asyncio

from flixhub.core.config_manager import ConfigManager
from flixhub.core.config_schemas import NetworkSettings
from flixhub.core.http import HttpClient
from flixhub.core.pipeline import ProviderSession
from flixhub.providers import sample


@pytest.fixture
def config_dir(tmp_path):
    """A fresh configuration directory."""
    return tmp_path / "config"


@pytest.fixture
def config_manager(config_dir):
    """A configuration manager backed by a temporary directory."""
    return ConfigManager(config_dir)


@pytest.fixture
def sample_provider():
    """The bundled sample provider with simulated latency disabled."""
    return sample.SampleProvider(client=None, record=sample.provider_record, config={"delay": 0})


@pytest.fixture
def sample_session(sample_provider):
    """A pipeline session around the sample provider."""
    return ProviderSession(sample_provider, stage_timeout=5, link_timeout=5)


@pytest_asyncio.fixture
async def http_client():
    """An HTTP client with fast retries, closed after the test."""
    client = HttpClient(NetworkSettings(timeout=5, max_retries=2, retry_delay=0.0))
    yield client
    await client.close()
