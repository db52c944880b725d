"""
Configuration Manager - JSON-based settings and provider configuration.

This module provides centralized configuration management for FlixHub,
handling application settings and per-provider configuration with
validation, hot-reload capabilities, and default value management.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ValidationError

from flixhub.core.config_schemas import AppSettings, ProviderConfig, ProvidersConfig
from flixhub.core.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


SETTINGS_FILE = "settings.json"
PROVIDERS_FILE = "providers.json"


def get_default_providers() -> ProvidersConfig:
    """
    Get default providers configuration with the bundled providers.

    Returns:
        ProvidersConfig with the sample and archive providers enabled
    """
    return ProvidersConfig(
        providers={
            "sample": ProviderConfig(enabled=True, priority=1),
            "archive": ProviderConfig(enabled=True, priority=2),
        }
    )


class ConfigManager:
    """
    Manages application configuration with JSON persistence and validation.

    Provides thread-safe access to configuration data with automatic
    validation, default value management, and hot-reload capabilities.
    """

    def __init__(self, config_dir: Optional[Union[str, Path]] = None):
        """
        Initialize configuration manager.

        Args:
            config_dir: Directory containing configuration files.
                       Defaults to './config' if not specified.
        """
        self.config_dir = Path(config_dir or "config")
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self._settings_file = self.config_dir / SETTINGS_FILE
        self._providers_file = self.config_dir / PROVIDERS_FILE

        self._lock = RLock()
        self._settings: Optional[AppSettings] = None
        self._providers: Optional[ProvidersConfig] = None

        self._load_configurations()

    def _load_configurations(self) -> None:
        """Load all configuration files with error handling."""
        try:
            self._settings = self._load_file(self._settings_file, AppSettings, AppSettings)
            self._providers = self._load_file(self._providers_file, ProvidersConfig, get_default_providers)
            logger.info("Configuration loaded successfully")
        except ConfigurationError:
            raise
        except OSError as e:
            logger.error(f"Failed to load configuration: {e}")
            raise ConfigurationError(f"Configuration loading failed: {e}", str(self.config_dir))

    def _load_file(self, path: Path, schema, default_factory):
        """Load and validate one configuration file, recreating it when broken."""
        if not path.exists():
            logger.info(f"{path.name} not found, creating default configuration")
            config = default_factory()
            self._save_file(path, config)
            return config

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return schema.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Invalid {path.name}, using defaults: {e}")
            backup_path = path.with_suffix('.json.backup')
            path.replace(backup_path)
            logger.info(f"Corrupted {path.name} backed up to {backup_path}")

            config = default_factory()
            self._save_file(path, config)
            return config

    def _save_file(self, path: Path, config: BaseModel) -> None:
        """Save a configuration model with an atomic write."""
        temp_file = path.with_suffix('.tmp')
        try:
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(config.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
            temp_file.replace(path)
            logger.debug(f"{path.name} saved successfully")
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise ConfigurationError(f"Failed to save {path.name}: {e}", str(path))

    @property
    def settings(self) -> AppSettings:
        """Get current application settings (thread-safe)."""
        with self._lock:
            if self._settings is None:
                self._settings = self._load_file(self._settings_file, AppSettings, AppSettings)
            return self._settings

    @property
    def providers(self) -> ProvidersConfig:
        """Get current providers configuration (thread-safe)."""
        with self._lock:
            if self._providers is None:
                self._providers = self._load_file(self._providers_file, ProvidersConfig, get_default_providers)
            return self._providers

    def update_setting(self, key_path: str, value: Any) -> None:
        """
        Update a specific setting using dot notation.

        Args:
            key_path: Dot-separated path to the setting (e.g., 'network.timeout')
            value: New value for the setting

        Raises:
            ConfigurationError: If key path is invalid or value is invalid
        """
        with self._lock:
            settings_dict = self.settings.model_dump()

            keys = key_path.split('.')
            current = settings_dict

            for key in keys[:-1]:
                if not isinstance(current, dict) or key not in current:
                    raise ConfigurationError(f"Invalid setting path: {key_path}")
                current = current[key]

            final_key = keys[-1]
            if not isinstance(current, dict) or final_key not in current:
                raise ConfigurationError(f"Invalid setting key: {final_key}")

            current[final_key] = value

            try:
                updated_settings = AppSettings.model_validate(settings_dict)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid setting value: {e}")

            self._settings = updated_settings
            self._save_file(self._settings_file, updated_settings)
            logger.info(f"Setting updated: {key_path} = {value}")

    def get_setting(self, key_path: str, default: Any = None) -> Any:
        """
        Get a specific setting using dot notation.

        Args:
            key_path: Dot-separated path to the setting
            default: Default value if setting not found

        Returns:
            The setting value or default
        """
        current = self.settings.model_dump()
        try:
            for key in key_path.split('.'):
                current = current[key]
            return current
        except (KeyError, TypeError):
            return default

    def update_provider_config(self, provider_name: str, config: Dict[str, Any]) -> None:
        """
        Update configuration for a specific provider.

        Args:
            provider_name: Key of the provider module
            config: Fields to merge into the provider's configuration

        Raises:
            ConfigurationError: If configuration is invalid
        """
        with self._lock:
            providers_dict = self.providers.model_dump()
            providers_dict['providers'].setdefault(provider_name, {}).update(config)

            try:
                updated = ProvidersConfig.model_validate(providers_dict)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid provider configuration: {e}")

            self._providers = updated
            self._save_file(self._providers_file, updated)
            logger.info(f"Provider configuration updated: {provider_name}")

    def enable_provider(self, provider_name: str) -> None:
        """Enable a provider."""
        self.update_provider_config(provider_name, {"enabled": True})

    def disable_provider(self, provider_name: str) -> None:
        """Disable a provider."""
        self.update_provider_config(provider_name, {"enabled": False})

    def get_enabled_providers(self) -> Dict[str, ProviderConfig]:
        """Get all enabled provider configurations in priority order."""
        return self.providers.get_enabled_providers()

    def reload_configuration(self) -> None:
        """Reload configuration from files (hot-reload)."""
        with self._lock:
            logger.info("Reloading configuration from files")
            self._settings = None
            self._providers = None
            self._load_configurations()

    def reset_to_defaults(self) -> None:
        """Reset all configuration to default values."""
        with self._lock:
            logger.warning("Resetting configuration to defaults")
            self._settings = AppSettings()
            self._providers = get_default_providers()
            self._save_file(self._settings_file, self._settings)
            self._save_file(self._providers_file, self._providers)

    def export_config(self, output_path: Path) -> None:
        """
        Export current configuration to a file.

        Args:
            output_path: Path to export the configuration
        """
        with self._lock:
            config_data = {
                "settings": self.settings.model_dump(mode="json"),
                "providers": self.providers.model_dump(mode="json"),
                "export_timestamp": datetime.now().isoformat(),
            }

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(config_data, f, indent=2, ensure_ascii=False)

        logger.info(f"Configuration exported to {output_path}")

    def import_config(self, import_path: Path) -> None:
        """
        Import configuration from a file.

        Args:
            import_path: Path to import the configuration from

        Raises:
            ConfigurationError: If import file is invalid
        """
        try:
            with open(import_path, 'r', encoding='utf-8') as f:
                config_data = json.load(f)

            settings = AppSettings.model_validate(config_data.get('settings', {}))
            providers = ProvidersConfig.model_validate(config_data.get('providers', {}))
        except (json.JSONDecodeError, ValidationError, FileNotFoundError) as e:
            raise ConfigurationError(f"Failed to import configuration: {e}", str(import_path))

        with self._lock:
            self._settings = settings
            self._providers = providers
            self._save_file(self._settings_file, settings)
            self._save_file(self._providers_file, providers)

        logger.info(f"Configuration imported from {import_path}")

    def validate_configuration(self) -> Dict[str, Any]:
        """
        Validate current configuration and return validation report.

        Returns:
            Dictionary containing validation results and any issues found
        """
        report = {
            "valid": True,
            "issues": [],
            "warnings": []
        }

        for label, schema, config in (
            ("Settings", AppSettings, self.settings),
            ("Providers", ProvidersConfig, self.providers),
        ):
            try:
                schema.model_validate(config.model_dump())
            except ValidationError as e:
                report["valid"] = False
                report["issues"].append(f"{label} validation failed: {e}")

        if not self.get_enabled_providers():
            report["warnings"].append("No providers are enabled")

        providers_dir = self.providers.global_config.providers_dir
        if providers_dir and not Path(providers_dir).is_dir():
            report["warnings"].append(f"Providers directory does not exist: {providers_dir}")

        return report


# Export configuration manager
__all__ = ["ConfigManager", "get_default_providers", "SETTINGS_FILE", "PROVIDERS_FILE"]
