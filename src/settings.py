"""Centralized settings for the GEX analytics core.

Uses pydantic-settings to load from environment variables (prefixed GEX_)
with defaults matching the dataclass configs.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """GEX analytics settings loaded from environment variables."""

    # --- Pricing ---
    risk_free_rate: float = 0.0
    dividend_yield: float = 0.0
    binomial_steps: int = Field(default=100, ge=1)
    default_volatility: float = Field(default=0.30, gt=0)

    # --- Aggregation ---
    max_workers: int = Field(default=1, ge=1)
    zero_gamma_window_days: int = Field(default=60, ge=1)

    # --- Logging ---
    log_level: str = "INFO"
    log_format: str = "json"

    model_config = {
        "env_prefix": "GEX_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
