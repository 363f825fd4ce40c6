"""
Feature gate configuration using Pydantic Settings.
"""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeatureGateSettings(BaseSettings):
    """
    Feature gate configuration.

    Controls the default result produced when a gated unit is denied
    and no custom handler is registered for its surface.
    """

    model_config = SettingsConfigDict(
        env_prefix="FEATURE_GATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    deny_status_code: int = Field(
        default=404,
        ge=400,
        le=599,
        description="Status code of the default deny response",
    )
    deny_detail: str = Field(
        default="Not Found",
        description="Body/detail of the default deny response",
    )
    log_denials: bool = Field(
        default=True,
        description="Log every denied gated unit",
    )


@lru_cache
def get_settings() -> FeatureGateSettings:
    """Get cached settings instance."""
    return FeatureGateSettings()
