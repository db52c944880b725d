"""Tests for provider discovery, the registration policy and multi-provider search."""

import textwrap

import pytest
import pytest_asyncio

from flixhub.core.config_manager import ConfigManager
from flixhub.core.exceptions import NetworkError, ValidationError
from flixhub.core.pipeline import ProviderSession
from flixhub.core.provider_manager import ProviderManager
from flixhub.core.results import Outcome
from tests.fakes import FullProvider, RaisingProvider, SearchOnlyProvider, make_record


PROVIDER_MODULE = '''
from flixhub.core.models import FilmKind, ProviderRecord, SearchItem, SearchResponseData
from flixhub.providers.base import ProviderBase

provider_record = ProviderRecord(
    id="{id}",
    name="{name}",
    version_name="1.0.{code}",
    version_code={code},
    build_url="https://example.invalid/{name}.py",
    language="en",
    provider_type="Movie",
    status="{status}",
    adult={adult},
)


class LocalProvider(ProviderBase):
    async def search(self, title, page=1, id=None, imdb_id=None, tmdb_id=None, filters=None):
        item = SearchItem(id="{name}-1", provider_id=self.record.id, title=title or "{name}", kind=FilmKind.MOVIE)
        return SearchResponseData(results=[item], page=page)


provider_class = LocalProvider
'''

SHARED_ID = "0123456789abcde"


class Working(FullProvider):
    def __init__(self, client=None, record=None, config=None):
        super().__init__(record)


class Broken(RaisingProvider):
    def __init__(self, client=None, record=None, config=None):
        super().__init__(NetworkError("down"))
        self.record = record


def write_provider(directory, key, name=None, code=1, status="Working", adult=False, provider_id=None):
    (directory / f"{key}.py").write_text(
        textwrap.dedent(PROVIDER_MODULE).format(
            id=provider_id or "",
            name=name or key,
            code=code,
            status=status,
            adult=adult,
        ),
        encoding="utf-8",
    )


@pytest.fixture
def providers_dir(tmp_path):
    directory = tmp_path / "providers"
    directory.mkdir()
    return directory


@pytest_asyncio.fixture
async def manager(config_manager, providers_dir):
    manager = ProviderManager(config_manager, providers_dir=providers_dir, include_bundled=False)
    yield manager
    await manager.cleanup()


@pytest.mark.asyncio
async def test_discovers_provider_modules(manager, providers_dir):
    """Test that modules exporting a record and class are registered."""
    write_provider(providers_dir, "alpha")
    write_provider(providers_dir, "beta")
    (providers_dir / "notes.txt").write_text("not a provider")
    (providers_dir / "helpers.py").write_text("VALUE = 1\n")

    await manager.discover_providers()

    assert sorted(manager.available) == ["alpha", "beta"]
    assert manager.available["alpha"].record.name == "alpha"
    assert manager.errors == {}


@pytest.mark.asyncio
async def test_import_errors_are_isolated(manager, providers_dir):
    """Test that one broken module does not stop discovery."""
    write_provider(providers_dir, "alpha")
    (providers_dir / "broken.py").write_text("raise RuntimeError('boom')\n")

    await manager.discover_providers()

    assert list(manager.available) == ["alpha"]
    assert "broken" in manager.errors
    assert manager.get_status()["providers"]["broken"]["error"]


@pytest.mark.asyncio
async def test_adult_and_down_providers_are_skipped(manager, providers_dir):
    """Test the trust policy applied at registration."""
    write_provider(providers_dir, "grown", adult=True)
    write_provider(providers_dir, "offline", status="Down")
    write_provider(providers_dir, "alpha")

    await manager.discover_providers()

    assert list(manager.available) == ["alpha"]
    assert manager.skipped == {
        "grown": "adult providers are not allowed",
        "offline": "provider status is Down",
    }


@pytest.mark.asyncio
async def test_policy_can_allow_adult_and_down(config_manager, providers_dir):
    """Test that the policy switches are honoured."""
    config_manager.providers.global_config.allow_adult = True
    config_manager.providers.global_config.skip_down = False
    write_provider(providers_dir, "grown", adult=True)
    write_provider(providers_dir, "offline", status="Down")

    manager = ProviderManager(config_manager, providers_dir=providers_dir, include_bundled=False)
    await manager.discover_providers()

    assert sorted(manager.available) == ["grown", "offline"]


@pytest.mark.asyncio
async def test_newer_version_replaces_older(manager, providers_dir):
    """Test that a higher version code supersedes the same provider id."""
    write_provider(providers_dir, "a_old", name="Shared", code=1, provider_id=SHARED_ID)
    write_provider(providers_dir, "b_new", name="Shared", code=2, provider_id=SHARED_ID)

    await manager.discover_providers()

    assert list(manager.available) == ["b_new"]
    assert manager.available["b_new"].record.version_code == 2


@pytest.mark.asyncio
async def test_older_version_is_refused(manager, providers_dir):
    """Test that an equal or lower version code does not replace a registration."""
    write_provider(providers_dir, "a_new", name="Shared", code=3, provider_id=SHARED_ID)
    write_provider(providers_dir, "b_old", name="Shared", code=2, provider_id=SHARED_ID)

    await manager.discover_providers()

    assert list(manager.available) == ["a_new"]
    assert "not newer" in manager.skipped["b_old"]


def test_register_validates_mapping_records(config_manager):
    """Test registering from interchange data."""
    manager = ProviderManager(config_manager, include_bundled=False)
    record = make_record()

    assert manager.register("fake", record.model_dump(by_alias=True), FullProvider)
    assert manager.available["fake"].record == record

    with pytest.raises(ValidationError):
        manager.register("bad", {"name": "Bad"}, FullProvider)


@pytest.mark.asyncio
async def test_load_provider_returns_a_session(manager, providers_dir, config_manager):
    """Test loading a provider with its configured options."""
    write_provider(providers_dir, "alpha")
    config_manager.update_provider_config("alpha", {"config": {"base_url": "https://alpha.invalid"}})

    session = await manager.load_provider("alpha")

    assert isinstance(session, ProviderSession)
    assert session.provider.base_url == "https://alpha.invalid"
    assert session.provider.client is manager.client
    assert await manager.load_provider("alpha") is session
    assert await manager.load_provider("missing") is None


@pytest.mark.asyncio
async def test_failed_construction_is_recorded(manager):
    """Test that a provider whose constructor raises is reported, not raised."""

    class Exploding(SearchOnlyProvider):
        def __init__(self, **kwargs):
            raise RuntimeError("cannot start")

    manager.register("exploding", make_record(name="Exploding"), Exploding)

    assert await manager.load_provider("exploding") is None
    assert "exploding" in manager.errors


@pytest.mark.asyncio
async def test_active_providers_follow_config_priority(manager, providers_dir, config_manager):
    """Test that only enabled providers are active, in priority order."""
    for key in ("alpha", "beta", "gamma"):
        write_provider(providers_dir, key)
    config_manager.update_provider_config("gamma", {"enabled": True, "priority": 3})
    config_manager.update_provider_config("alpha", {"enabled": True, "priority": 4})
    config_manager.update_provider_config("beta", {"enabled": False, "priority": 5})

    active = await manager.get_active_providers()

    assert list(active) == ["gamma", "alpha"]


@pytest.mark.asyncio
async def test_search_all_isolates_failures(manager, config_manager):
    """Test concurrent search where one provider fails."""
    await manager.discover_providers()
    manager.register("working", make_record(name="Working"), Working)
    manager.register("broken", make_record(name="Broken"), Broken)
    config_manager.update_provider_config("working", {"enabled": True, "priority": 10})
    config_manager.update_provider_config("broken", {"enabled": True, "priority": 11})

    results = await manager.search_all("anything", max_concurrent=1)

    assert list(results) == ["working", "broken"]
    assert results["working"].outcome == Outcome.SUCCEEDED
    assert results["working"].provider_id == manager.available["working"].record.id
    assert results["broken"].outcome == Outcome.FAILED
    assert isinstance(results["broken"].error, NetworkError)


@pytest.mark.asyncio
async def test_search_all_validates_arguments(manager, config_manager):
    """Test that invalid search arguments raise instead of being isolated."""
    await manager.discover_providers()
    manager.register("working", make_record(name="Working"), Working)
    config_manager.update_provider_config("working", {"enabled": True, "priority": 10})

    with pytest.raises(ValidationError):
        await manager.search_all("   ")


@pytest.mark.asyncio
async def test_bundled_providers(config_manager):
    """Test discovery of the bundled sample and archive providers."""
    # Keep the archive provider off the network
    config_manager.disable_provider("archive")
    config_manager.update_provider_config("sample", {"config": {"delay": 0}})
    manager = ProviderManager(config_manager)
    try:
        await manager.discover_providers()
        assert {"sample", "archive"} <= set(manager.available)

        results = await manager.search_all("test", filters={"movies_only": True})

        assert list(results) == ["sample"]
        assert results["sample"].outcome == Outcome.SUCCEEDED
        assert results["sample"].data.results[0].title == "Test Pattern"
    finally:
        await manager.cleanup()


@pytest.mark.asyncio
async def test_get_status(manager, providers_dir, config_manager):
    """Test the status report for discovered and loaded providers."""
    write_provider(providers_dir, "alpha")
    write_provider(providers_dir, "beta")
    config_manager.enable_provider("alpha")
    await manager.discover_providers()
    await manager.load_provider("alpha")

    status = manager.get_status()

    assert status["discovered"] == 2
    assert status["loaded"] == 1
    alpha = status["providers"]["alpha"]
    assert alpha["loaded"] and alpha["enabled"]
    assert alpha["capabilities"] == ["search"]
    assert not status["providers"]["beta"]["loaded"]


@pytest.mark.asyncio
async def test_reload_picks_up_changes(manager, providers_dir):
    """Test that reloading re-imports the module."""
    write_provider(providers_dir, "alpha", code=1)
    first = await manager.load_provider("alpha")

    write_provider(providers_dir, "alpha", code=10)
    assert await manager.reload_provider("alpha")

    second = await manager.load_provider("alpha")
    assert second is not first
    assert second.record.version_code == 10


@pytest.mark.asyncio
async def test_cleanup_closes_owned_resources(config_manager, providers_dir):
    """Test that cleanup releases sessions and the client it created."""
    write_provider(providers_dir, "alpha")
    manager = ProviderManager(config_manager, providers_dir=providers_dir, include_bundled=False)
    await manager.load_provider("alpha")
    client = manager.client

    await manager.cleanup()

    assert client.closed
    assert manager.get_status()["loaded"] == 0


def test_missing_directory_is_tolerated(tmp_path):
    """Test that a configured but absent providers directory only warns."""
    manager = ProviderManager(
        ConfigManager(tmp_path / "config"),
        providers_dir=tmp_path / "nowhere",
        include_bundled=False,
    )

    assert manager.providers_dirs == [tmp_path / "nowhere"]
