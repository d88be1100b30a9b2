"""Application settings.

Read from environment variables prefixed ``COVERAGE_`` (and an optional
``.env`` file); command-line flags override them.
"""

from __future__ import annotations

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.coverage.classifier import DEFAULT_STEP_M
from infrastructure.terrain.rgb_tiles import DEFAULT_CACHE_SIZE


class CoverageSettings(BaseSettings):
    """Tunables for batch coverage runs."""

    model_config = SettingsConfigDict(
        env_prefix="COVERAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    step_m: float = Field(default=DEFAULT_STEP_M, gt=0)
    max_workers: int = Field(default=1, ge=1)
    two_tier: bool = False

    # Terrain-RGB tiles
    tile_zoom: int = Field(default=12, ge=0, le=22)
    tile_cache_size: int = Field(default=DEFAULT_CACHE_SIZE, ge=1)

    # GeoTIFF DEM memory budget in bytes (None = unlimited)
    dem_max_bytes: int | None = Field(default=None, gt=0)

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level
