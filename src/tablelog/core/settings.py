"""
Process-level configuration for tablelog using Pydantic v2 Settings.

Component settings (batch size, period, table name) live on the sink config
model; this module only carries toggles shared across components.
"""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Keep explicit version to allow schema gating and forward migrations later
LATEST_CONFIG_SCHEMA_VERSION = "1.0"


class CoreSettings(BaseModel):
    """Core toggles for diagnostics and metrics."""

    internal_logging_enabled: bool = Field(
        default=False,
        description=("Emit DEBUG/WARN diagnostics for internal errors"),
    )
    diagnostics_rate_limit_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description=(
            "Minimum seconds between two diagnostics sharing a rate limit key"
        ),
    )
    enable_metrics: bool = Field(
        default=False,
        description=("Enable Prometheus-compatible metrics"),
    )


class Settings(BaseSettings):
    """Top-level configuration model with versioning and core settings."""

    schema_version: str = Field(default=LATEST_CONFIG_SCHEMA_VERSION)

    core: CoreSettings = Field(default_factory=CoreSettings)

    model_config = SettingsConfigDict(
        env_prefix="TABLELOG_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    def to_dict(self) -> dict[str, object]:
        from typing import cast

        return cast(
            dict[str, object],
            self.model_dump(by_alias=True, exclude_none=True),
        )


__all__ = ["CoreSettings", "LATEST_CONFIG_SCHEMA_VERSION", "Settings"]
