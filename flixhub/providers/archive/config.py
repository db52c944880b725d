"""
Archive Configuration - Provider-specific configuration management.

This module handles configuration validation for the Internet Archive
provider. Values come from the provider's ``config`` entry in
providers.json.
"""

from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ArchiveConfig(BaseModel):
    """Configuration model for the Internet Archive provider."""

    model_config = ConfigDict(extra="ignore")

    rows: int = Field(25, ge=1, le=100, description="Results per search or catalog page")
    media_type: str = Field("movies", description="Archive mediatype searched")
    subtitle_language: str = Field("en", description="Language assumed for untagged subtitle files")
    include_derivatives: bool = Field(True, description="Offer archive-generated transcodes as streams")

    @field_validator('subtitle_language')
    @classmethod
    def validate_subtitle_language(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("subtitle_language must not be empty")
        return v


def get_default_config() -> Dict[str, Any]:
    """Get default configuration for the Internet Archive provider."""
    return ArchiveConfig().model_dump()


def load_config(config: Mapping[str, Any]) -> ArchiveConfig:
    """Validate a provider config mapping, ignoring keys handled elsewhere."""
    return ArchiveConfig.model_validate(dict(config))


__all__ = ["ArchiveConfig", "get_default_config", "load_config"]
