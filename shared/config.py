"""
Shared configuration management for the coalesce wrappers.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WrapperSettings(BaseSettings):
    """Process-wide defaults for debouncers and memoization caches."""

    model_config = SettingsConfigDict(
        env_prefix="COALESCE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Logging
    log_level: str = Field(default="info")
    log_cache_events: bool = Field(default=False)

    # Debounce
    default_delay_ms: float = Field(default=250.0, gt=0)

    # Memoization
    default_ttl_ms: Optional[float] = Field(default=None, gt=0)

    # Metrics
    metrics_enabled: bool = Field(default=False)


@lru_cache(maxsize=1)
def get_settings() -> WrapperSettings:
    """Get the cached process-wide settings."""
    return WrapperSettings()
