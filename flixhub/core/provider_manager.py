"""
Provider Manager - Dynamic provider discovery and management system.

This module handles the discovery, registration and loading of providers,
applies the trust and update policy to their records, and coordinates
operations across several providers with per-provider error isolation.
"""

import asyncio
import importlib
import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Type, Union

from flixhub.core.config_manager import ConfigManager
from flixhub.core.exceptions import ProviderError, ValidationError
from flixhub.core.http import HttpClient
from flixhub.core.models import ProviderRecord, ProviderStatus
from flixhub.core.pipeline import ProviderSession
from flixhub.core.results import StageResult


logger = logging.getLogger(__name__)


BUNDLED_PROVIDERS_DIR = Path(__file__).parent.parent / "providers"

# Support modules living next to the bundled providers
_SKIP_NAMES = {"__init__", "__pycache__", "base", "streaming", "common", "rendering"}


class ProviderEntry(NamedTuple):
    """A registered provider: its record and the class that implements it."""

    key: str
    record: ProviderRecord
    provider_class: Type[Any]


class ProviderManager:
    """
    Manages providers with dynamic discovery and loading.

    A provider module (or package) exports ``provider_record`` and
    ``provider_class``. Discovered providers are registered under the module
    name (their key); loading one yields a ``ProviderSession``.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        client: Optional[HttpClient] = None,
        render_context: Optional[Any] = None,
        providers_dir: Optional[Path] = None,
        include_bundled: bool = True,
    ):
        """
        Initialize provider manager.

        Args:
            config_manager: Configuration manager instance
            client: Shared HTTP client (created from settings when omitted)
            render_context: Shared RenderContext (created on demand when omitted)
            providers_dir: Extra directory with provider modules
                (defaults to the configured providers_dir)
            include_bundled: Whether to discover the bundled providers
        """
        self.config_manager = config_manager

        configured_dir = config_manager.providers.global_config.providers_dir
        extra_dir = providers_dir or (Path(configured_dir) if configured_dir else None)
        self.providers_dirs: List[Path] = []
        if include_bundled:
            self.providers_dirs.append(BUNDLED_PROVIDERS_DIR)
        if extra_dir is not None:
            self.providers_dirs.append(Path(extra_dir))

        self._owns_client = client is None
        self._client = client
        self._owns_render_context = render_context is None
        self._render_context = render_context

        # Provider storage
        self._available: Dict[str, ProviderEntry] = {}
        self._paths: Dict[str, Path] = {}
        self._sessions: Dict[str, ProviderSession] = {}
        self._retired: List[ProviderSession] = []
        self._errors: Dict[str, Exception] = {}
        self._skipped: Dict[str, str] = {}

        # Discovery state
        self._discovery_complete = False

    @property
    def client(self) -> HttpClient:
        """The shared HTTP client, created on first use."""
        if self._client is None:
            self._client = HttpClient(self.config_manager.settings.network)
        return self._client

    @property
    def render_context(self):
        """The shared render context, created on first use."""
        if self._render_context is None:
            from flixhub.providers.rendering import RenderContext

            self._render_context = RenderContext(self.config_manager.settings.rendering)
        return self._render_context

    @property
    def available(self) -> Dict[str, ProviderEntry]:
        return dict(self._available)

    @property
    def errors(self) -> Dict[str, Exception]:
        return dict(self._errors)

    @property
    def skipped(self) -> Dict[str, str]:
        """Providers refused by the trust or update policy, with the reason."""
        return dict(self._skipped)

    async def discover_providers(self) -> None:
        """
        Discover available providers in the providers directories.

        Import failures are recorded per module and never abort discovery.
        """
        self._available.clear()
        self._paths.clear()
        self._errors.clear()
        self._skipped.clear()

        for directory in self.providers_dirs:
            if not directory.is_dir():
                logger.warning(f"Providers directory does not exist: {directory}")
                continue

            logger.info(f"Discovering providers in {directory}")
            for path in sorted(directory.iterdir()):
                key = path.stem
                if key in _SKIP_NAMES or key.startswith(("_", ".")):
                    continue
                if path.is_file() and path.suffix != ".py":
                    continue
                if path.is_dir() and not (path / "__init__.py").exists():
                    continue

                try:
                    self._discover_module(key, path, bundled=directory == BUNDLED_PROVIDERS_DIR)
                except Exception as e:
                    self._errors[key] = e
                    logger.error(f"Failed to discover provider {key}: {e}")

        self._discovery_complete = True
        logger.info(f"Provider discovery complete: {len(self._available)} providers found")

    def _import(self, key: str, path: Path, bundled: bool):
        if bundled:
            return importlib.import_module(f"flixhub.providers.{key}")

        module_name = f"flixhub_provider_{key}"
        if path.is_dir():
            spec = importlib.util.spec_from_file_location(
                module_name, path / "__init__.py", submodule_search_locations=[str(path)]
            )
        else:
            spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ProviderError(f"Could not load module spec for {path}", provider_name=key)

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise
        return module

    def _discover_module(self, key: str, path: Path, bundled: bool = False) -> None:
        """Import one provider module and register its exports."""
        try:
            module = self._import(key, path, bundled)
        except Exception as e:
            raise ProviderError(f"Failed to import provider module {path}: {e}", provider_name=key) from e

        record = getattr(module, "provider_record", None)
        provider_class = getattr(module, "provider_class", None)
        if record is None or provider_class is None:
            logger.warning(f"No provider_record/provider_class exported by {path}")
            return
        if not inspect.isclass(provider_class):
            raise ProviderError(f"provider_class in {path} is not a class", provider_name=key)

        self._paths[key] = path
        self.register(key, record, provider_class)

    def register(
        self,
        key: str,
        record: Union[ProviderRecord, Mapping[str, Any]],
        provider_class: Type[Any],
    ) -> bool:
        """
        Register a provider, applying the trust and update policy.

        Adult providers are refused unless allowed, ``Down`` providers are
        refused when configured to skip them, and a record whose id is
        already registered only replaces it with a higher version code.

        Args:
            key: Key the provider is registered under
            record: The provider's record (or its interchange mapping)
            provider_class: Class implementing the provider

        Returns:
            True if the provider was registered
        """
        if not isinstance(record, ProviderRecord):
            try:
                record = ProviderRecord.model_validate(record)
            except ValueError as e:
                raise ValidationError(f"Invalid provider record for {key}: {e}", field_name="provider_record") from e

        policy = self.config_manager.providers.global_config

        if record.adult and not policy.allow_adult:
            return self._skip(key, "adult providers are not allowed")
        if record.status == ProviderStatus.DOWN and policy.skip_down:
            return self._skip(key, "provider status is Down")

        for existing in list(self._available.values()):
            if existing.record.id != record.id or existing.key == key:
                continue
            if not record.is_newer_than(existing.record):
                return self._skip(
                    key,
                    f"version {record.version_code} is not newer than "
                    f"{existing.record.version_code} registered as {existing.key}",
                )
            logger.info(f"Replacing {existing.key} with newer build {key} ({record})")
            self._unregister(existing.key)

        if key in self._available:
            logger.debug(f"Re-registering provider {key}")
            self._unregister(key)

        self._available[key] = ProviderEntry(key, record, provider_class)
        self._skipped.pop(key, None)
        logger.debug(f"Registered provider: {key} ({provider_class.__name__}, {record})")
        return True

    def _skip(self, key: str, reason: str) -> bool:
        self._skipped[key] = reason
        logger.info(f"Skipping provider {key}: {reason}")
        return False

    def _unregister(self, key: str) -> None:
        self._available.pop(key, None)
        session = self._sessions.pop(key, None)
        if session is not None:
            self._retired.append(session)

    async def load_provider(self, key: str) -> Optional[ProviderSession]:
        """
        Load a specific provider by key.

        Args:
            key: Key of the provider to load

        Returns:
            A ProviderSession, or None if the provider is unknown or failed to load
        """
        if key in self._sessions:
            return self._sessions[key]

        if key not in self._available and not self._discovery_complete:
            await self.discover_providers()
        if key not in self._available:
            logger.error(f"Provider not found: {key}")
            return None

        entry = self._available[key]
        provider_config = self.config_manager.providers.get_provider(key)
        config_dict = provider_config.config if provider_config else {}

        try:
            kwargs: Dict[str, Any] = {
                "client": self.client,
                "record": entry.record,
                "config": config_dict,
            }
            if getattr(entry.provider_class, "uses_renderer", False):
                kwargs["render_context"] = self.render_context

            provider = entry.provider_class(**kwargs)
            session = ProviderSession.from_settings(provider, self.config_manager.settings.pipeline)
        except Exception as e:
            self._errors[key] = e
            logger.error(f"Failed to load provider {key}: {e}")
            return None

        self._sessions[key] = session
        logger.info(f"Loaded provider: {key} ({entry.record})")
        return session

    async def get_active_providers(self) -> Dict[str, ProviderSession]:
        """
        Get all enabled providers that load successfully, in priority order.

        Returns:
            Dictionary of provider key to session
        """
        if not self._discovery_complete and self.config_manager.providers.global_config.auto_discover:
            await self.discover_providers()

        active = {}
        for key in self.config_manager.get_enabled_providers():
            if key not in self._available:
                continue
            session = await self.load_provider(key)
            if session is not None:
                active[key] = session
        return active

    async def search_all(
        self,
        title: str,
        page: int = 1,
        id: Optional[str] = None,
        imdb_id: Optional[str] = None,
        tmdb_id: Optional[int] = None,
        filters: Optional[Mapping[str, Any]] = None,
        max_concurrent: Optional[int] = None,
    ) -> Dict[str, StageResult]:
        """
        Search across all active providers concurrently.

        Each provider binds ``filters`` against its own declaration, so
        entries one provider does not know are simply dropped for it.

        Returns:
            Dictionary mapping provider keys to their search results

        Raises:
            ValidationError: If the search arguments are invalid
        """
        active = await self.get_active_providers()
        if not active:
            logger.warning("No active providers available for search")
            return {}

        if max_concurrent is None:
            max_concurrent = self.config_manager.settings.pipeline.max_concurrent_providers
        semaphore = asyncio.Semaphore(max_concurrent)

        async def search_provider(key: str, session: ProviderSession):
            async with semaphore:
                logger.debug(f"Searching provider {key} for: {title}")
                result = await session.search(
                    title, page=page, id=id, imdb_id=imdb_id, tmdb_id=tmdb_id, filters=filters
                )
                return key, result

        pairs = await asyncio.gather(*(search_provider(key, session) for key, session in active.items()))
        results = dict(pairs)

        hits = sum(len(result.data) for result in results.values() if result.ok)
        logger.info(f"Search complete: {hits} total results from {len(results)} providers")
        return results

    def get_status(self) -> Dict[str, Any]:
        """
        Get status information for all providers.

        Returns:
            Dictionary containing provider status information
        """
        status = {
            "discovered": len(self._available),
            "loaded": len(self._sessions),
            "errors": len(self._errors),
            "skipped": dict(self._skipped),
            "providers": {},
        }

        for key, entry in self._available.items():
            provider_config = self.config_manager.providers.get_provider(key)
            session = self._sessions.get(key)
            info = {
                "class": entry.provider_class.__name__,
                "name": entry.record.name,
                "id": entry.record.id,
                "version": entry.record.version_name,
                "status": entry.record.status.value,
                "loaded": session is not None,
                "enabled": bool(provider_config and provider_config.enabled),
                "error": str(self._errors[key]) if key in self._errors else None,
            }
            if session is not None:
                info["capabilities"] = [stage.value for stage in session.capabilities()]
            status["providers"][key] = info

        for key, error in self._errors.items():
            if key not in self._available:
                status["providers"][key] = {"loaded": False, "enabled": False, "error": str(error)}

        return status

    async def reload_provider(self, key: str) -> bool:
        """
        Re-import and reload a specific provider.

        Args:
            key: Key of the provider to reload

        Returns:
            True if reload was successful, False otherwise
        """
        session = self._sessions.pop(key, None)
        if session is not None:
            await session.cleanup()
        self._errors.pop(key, None)

        path = self._paths.get(key)
        if path is not None:
            self._available.pop(key, None)
            try:
                module_name = f"flixhub.providers.{key}"
                if path.parent == BUNDLED_PROVIDERS_DIR and module_name in sys.modules:
                    importlib.reload(sys.modules[module_name])
                self._discover_module(key, path, bundled=path.parent == BUNDLED_PROVIDERS_DIR)
            except Exception as e:
                self._errors[key] = e
                logger.error(f"Failed to reload provider {key}: {e}")
                return False

        return await self.load_provider(key) is not None

    async def cleanup(self) -> None:
        """Clean up all loaded providers and shared resources."""
        logger.info("Cleaning up provider manager")

        sessions = list(self._sessions.values()) + self._retired
        results = await asyncio.gather(*(session.cleanup() for session in sessions), return_exceptions=True)
        for session, result in zip(sessions, results):
            if isinstance(result, Exception):
                logger.warning(f"Cleanup failed for {session.name}: {result}")

        self._sessions.clear()
        self._retired.clear()

        if self._owns_render_context and self._render_context is not None:
            await self._render_context.shutdown()
            self._render_context = None
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

        logger.info("Provider manager cleanup complete")


# Export provider manager
__all__ = ["ProviderManager", "ProviderEntry", "BUNDLED_PROVIDERS_DIR"]
