"""
Configuration Schemas - Pydantic models for configuration validation.

This module defines the data structures and validation rules for
application settings and provider configurations using Pydantic models.
"""

import logging
import re
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


logger = logging.getLogger(__name__)


class NetworkSettings(BaseModel):
    """Settings for the shared HTTP client."""

    timeout: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Network timeout in seconds"
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Maximum number of retry attempts"
    )
    retry_delay: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Base delay between retries in seconds"
    )
    user_agent: str = Field(
        default="FlixHub/0.1.0 (+https://github.com/flixhub/flixhub)",
        description="User-Agent header sent with every request"
    )
    rate_limit: float = Field(
        default=0.0,
        ge=0.0,
        le=60.0,
        description="Minimum seconds between requests to the same host"
    )
    connection_limit: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Maximum pooled connections"
    )


class RenderingSettings(BaseModel):
    """Settings for the shared page-rendering context."""

    headless: bool = Field(default=True, description="Run the browser without a window")
    window_size: str = Field(default="1920,1080", description="Browser window size")
    page_load_timeout: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Browser page load timeout in seconds"
    )
    render_timeout: float = Field(
        default=60.0,
        gt=0,
        le=600,
        description="Maximum seconds one render may take"
    )
    queue_timeout: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Maximum seconds to wait for the render slot"
    )
    driver_path: Optional[str] = Field(
        default=None,
        description="Path to chromedriver (auto-detected if None)"
    )
    disable_images: bool = Field(default=False, description="Skip image loading")

    @field_validator('window_size')
    @classmethod
    def validate_window_size(cls, v: str) -> str:
        """Validate 'width,height' format."""
        try:
            width, height = map(int, v.split(","))
        except ValueError:
            raise ValueError("window_size must look like '1920,1080'")
        if width <= 0 or height <= 0:
            raise ValueError("window_size dimensions must be positive")
        return v


class PipelineSettings(BaseModel):
    """Settings for stage dispatch and link streaming."""

    stage_timeout: float = Field(
        default=60.0,
        gt=0,
        le=600,
        description="Timeout for catalog, search and details stages"
    )
    link_timeout: float = Field(
        default=120.0,
        gt=0,
        le=1800,
        description="Timeout for a whole link resolution stream"
    )
    cancel_grace_period: float = Field(
        default=2.0,
        gt=0,
        le=60,
        description="Seconds to wait for a cancelled stream to wind down"
    )
    link_buffer_size: int = Field(
        default=32,
        ge=1,
        le=1024,
        description="Links buffered ahead of a slow consumer"
    )
    max_concurrent_providers: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum number of providers to query concurrently"
    )


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    file: Optional[str] = Field(
        default="flixhub.log",
        description="Log file name (None disables file logging)"
    )
    max_size: str = Field(
        default="10MB",
        description="Maximum log file size"
    )
    backup_count: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Number of backup log files to keep"
    )

    @field_validator('max_size')
    @classmethod
    def validate_max_size(cls, v: str) -> str:
        """Validate log file size format."""
        if not re.match(r'^\d+[KMGT]?B$', v.upper()):
            raise ValueError("Invalid size format. Use format like '10MB', '1GB'")
        return v.upper()

    @property
    def max_bytes(self) -> int:
        """Maximum log file size in bytes."""
        units = {"B": 1, "KB": 1024, "MB": 1024 ** 2, "GB": 1024 ** 3, "TB": 1024 ** 4}
        match = re.match(r'^(\d+)([KMGT]?B)$', self.max_size)
        number, unit = match.groups()
        return int(number) * units[unit]


class AppSettings(BaseModel):
    """Main application settings container."""

    network: NetworkSettings = Field(default_factory=NetworkSettings)
    rendering: RenderingSettings = Field(default_factory=RenderingSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode='after')
    def validate_settings_consistency(self) -> 'AppSettings':
        """Validate that settings are internally consistent."""
        # A stream must outlive a single stage
        if self.pipeline.link_timeout < self.pipeline.stage_timeout:
            self.pipeline.link_timeout = self.pipeline.stage_timeout

        return self


class ProviderConfig(BaseModel):
    """Configuration for an individual provider."""

    enabled: bool = Field(
        default=False,
        description="Whether the provider is enabled"
    )
    priority: int = Field(
        default=1,
        ge=1,
        le=100,
        description="Provider priority (lower numbers = higher priority)"
    )
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Provider-specific configuration"
    )

    @field_validator('config')
    @classmethod
    def validate_config(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        """Validate provider-specific configuration."""
        if 'timeout' in v and (not isinstance(v['timeout'], (int, float)) or v['timeout'] <= 0):
            raise ValueError("timeout must be a positive number")

        if 'base_url' in v and not str(v['base_url']).startswith(('http://', 'https://')):
            raise ValueError("base_url must start with http:// or https://")

        return v


class GlobalProviderConfig(BaseModel):
    """Global configuration for provider management."""

    allow_adult: bool = Field(
        default=False,
        description="Whether adult-only providers may be registered"
    )
    skip_down: bool = Field(
        default=True,
        description="Skip providers whose published status is Down"
    )
    auto_discover: bool = Field(
        default=True,
        description="Whether to automatically discover provider modules"
    )
    providers_dir: Optional[str] = Field(
        default=None,
        description="Extra directory scanned for provider modules"
    )


class ProvidersConfig(BaseModel):
    """Providers configuration container."""

    providers: Dict[str, ProviderConfig] = Field(
        default_factory=dict,
        description="Individual provider configurations"
    )
    global_config: GlobalProviderConfig = Field(
        default_factory=GlobalProviderConfig,
        description="Global provider management settings"
    )

    @model_validator(mode='after')
    def validate_provider_priorities(self) -> 'ProvidersConfig':
        """Warn about duplicate priorities."""
        priorities = {}
        for name, config in self.providers.items():
            if config.priority in priorities:
                # Log warning but don't fail validation
                logger.warning(
                    f"Duplicate priority {config.priority} for providers "
                    f"{name} and {priorities[config.priority]}"
                )
            priorities[config.priority] = name

        return self

    def get_enabled_providers(self) -> Dict[str, ProviderConfig]:
        """Get all enabled providers sorted by priority."""
        enabled = {
            name: config for name, config in self.providers.items()
            if config.enabled
        }

        # Sort by priority (lower numbers first)
        return dict(sorted(
            enabled.items(),
            key=lambda item: item[1].priority
        ))

    def get_provider(self, name: str) -> Optional[ProviderConfig]:
        """Get configuration for a specific provider."""
        return self.providers.get(name)


# Export all configuration models
__all__ = [
    "NetworkSettings",
    "RenderingSettings",
    "PipelineSettings",
    "LoggingSettings",
    "AppSettings",
    "ProviderConfig",
    "GlobalProviderConfig",
    "ProvidersConfig",
]
