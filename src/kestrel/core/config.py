"""Environment configuration utilities.

Values are loaded from environment variables or a local ``.env`` file. Every
knob has a working default so the engine runs with no configuration at all.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from kestrel.contracts import (
    DEFAULT_AUDIT_CAPACITY,
    DEFAULT_COALESCE_WINDOW_MS,
    DEFAULT_MAX_RUNS_PER_SEC,
    DEFAULT_PERSISTENCE_KEY,
)


class ReadinessIntegration(str, Enum):
    """How per-domain penalties collapse into one readiness score."""

    DOMINANT = "dominant"
    WEIGHTED = "weighted"


class KestrelSettings(BaseSettings):
    """Top-level configuration container for the readiness engine."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        frozen=True,
        extra="ignore",
    )

    redis_url: str = Field(alias="REDIS_URL", default="redis://localhost:6379/0")
    persistence_key: str = Field(
        alias="KESTREL_PERSISTENCE_KEY", default=DEFAULT_PERSISTENCE_KEY
    )

    # Store scheduling
    coalesce_window_ms: int = Field(
        alias="KESTREL_COALESCE_WINDOW_MS", default=DEFAULT_COALESCE_WINDOW_MS, ge=0
    )
    # None or 0 disables the limit
    max_runs_per_sec: float | None = Field(
        alias="KESTREL_MAX_RUNS_PER_SEC", default=DEFAULT_MAX_RUNS_PER_SEC
    )
    audit_capacity: int = Field(
        alias="KESTREL_AUDIT_CAPACITY", default=DEFAULT_AUDIT_CAPACITY, ge=1
    )

    readiness_integration: ReadinessIntegration = Field(
        alias="KESTREL_READINESS_INTEGRATION", default=ReadinessIntegration.DOMINANT
    )
    # Optional override for the packaged classifier threshold table
    threshold_table: str | None = Field(alias="KESTREL_THRESHOLD_TABLE", default=None)

    # Cloud advisory collaborator (disabled when no URL is configured)
    advisory_url: str | None = Field(alias="KESTREL_ADVISORY_URL", default=None)
    advisory_timeout_s: float = Field(
        alias="KESTREL_ADVISORY_TIMEOUT_S", default=8.0, gt=0
    )

    # Server endpoint that receives events captured while offline
    sync_url: str | None = Field(alias="KESTREL_SYNC_URL", default=None)

    log_level: str = Field(alias="KESTREL_LOG_LEVEL", default="INFO")


__all__ = ["KestrelSettings", "ReadinessIntegration"]
