"""Gamma Exposure Analytics Configuration.

Contains all configurable parameters for chain normalization,
option pricing, exposure aggregation and the level finders.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class OptionSide(str, Enum):
    CALL = "call"
    PUT = "put"


class PricingMethod(str, Enum):
    """Pricing model selector threaded through every aggregator call."""
    BLACK_SCHOLES = "black-scholes"
    BINOMIAL = "binomial"


@dataclass
class NormalizerConfig:
    """Raw chain normalization settings."""

    fallback_expiration_days: int = 30
    suspect_year_window: int = 20
    two_digit_year_cutoff: int = 70
    min_timestamp: float = 1e9
    millisecond_threshold: float = 1e11


@dataclass
class PricingConfig:
    """Options pricing engine configuration."""

    risk_free_rate: float = 0.0
    dividend_yield: float = 0.0
    binomial_steps: int = 100
    bump_pct: float = 0.01
    epsilon: float = 1e-8


@dataclass
class ExposureConfig:
    """Notional gamma exposure settings."""

    contract_size: int = 100
    move_pct: float = 0.01
    billions: float = 1e9
    default_volatility: float = 0.30
    trading_days_per_year: int = 252
    max_workers: int = 1


@dataclass
class ZeroGammaConfig:
    """Zero-gamma sweep settings."""

    window_days: int = 60
    num_levels: int = 30
    lower_bound: float = 0.8
    upper_bound: float = 1.2
    flat_tolerance: float = 1e-8
    flip_horizon_days: int = 365


@dataclass
class ExpectedMoveConfig:
    """16-delta strangle settings."""

    target_delta: float = 0.16
    horizon_days: int = 365
    calendar_days_per_year: int = 365


@dataclass
class GammaExposureConfig:
    """Top-level gamma exposure analytics configuration."""

    normalizer: NormalizerConfig = field(default_factory=NormalizerConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    exposure: ExposureConfig = field(default_factory=ExposureConfig)
    zero_gamma: ZeroGammaConfig = field(default_factory=ZeroGammaConfig)
    expected_move: ExpectedMoveConfig = field(default_factory=ExpectedMoveConfig)

    @classmethod
    def from_settings(cls, settings: Optional["Settings"] = None) -> "GammaExposureConfig":  # noqa: F821
        """Build a config from environment-driven settings."""
        if settings is None:
            from src.settings import get_settings
            settings = get_settings()

        return cls(
            pricing=PricingConfig(
                risk_free_rate=settings.risk_free_rate,
                dividend_yield=settings.dividend_yield,
                binomial_steps=settings.binomial_steps,
            ),
            exposure=ExposureConfig(
                default_volatility=settings.default_volatility,
                max_workers=settings.max_workers,
            ),
            zero_gamma=ZeroGammaConfig(window_days=settings.zero_gamma_window_days),
        )


DEFAULT_GEX_CONFIG = GammaExposureConfig()
