"""Gamma Exposure (GEX) Analytics.

Normalizes raw option chains, prices missing Greeks with
Black-Scholes or an American binomial tree, and derives dealer
gamma exposure, the zero-gamma level, expected moves and
open-interest walls.
"""

from src.gamma_exposure.config import (
    GammaExposureConfig,
    NormalizerConfig,
    PricingConfig,
    ExposureConfig,
    ZeroGammaConfig,
    ExpectedMoveConfig,
    OptionSide,
    PricingMethod,
    DEFAULT_GEX_CONFIG,
)
from src.gamma_exposure.exceptions import GammaExposureError, InvalidInputError
from src.gamma_exposure.models import (
    OptionRecord,
    PricingInput,
    OptionPrice,
    PricedOptionRecord,
    StrikeGEX,
    ExpirationGEX,
    ExposureSummary,
    GammaProfile,
    GammaFlip,
    ExpectedMove,
    WallResult,
    AnalyticsReport,
)
from src.gamma_exposure.normalizer import OptionNormalizer
from src.gamma_exposure.pricing import (
    PricingModel,
    BlackScholesModel,
    BinomialTreeModel,
    get_pricing_model,
    resolve_pricing_method,
    norm_cdf,
    norm_pdf,
)
from src.gamma_exposure.dates import time_to_expiry
from src.gamma_exposure.exposure import GammaExposureAggregator
from src.gamma_exposure.zero_gamma import ZeroGammaSolver, find_zero_crossing
from src.gamma_exposure.expected_move import ExpectedMoveCalculator
from src.gamma_exposure.walls import WallDetector
from src.gamma_exposure.analytics import GammaAnalytics

__all__ = [
    # Config
    "GammaExposureConfig",
    "NormalizerConfig",
    "PricingConfig",
    "ExposureConfig",
    "ZeroGammaConfig",
    "ExpectedMoveConfig",
    "OptionSide",
    "PricingMethod",
    "DEFAULT_GEX_CONFIG",
    # Errors
    "GammaExposureError",
    "InvalidInputError",
    # Models
    "OptionRecord",
    "PricingInput",
    "OptionPrice",
    "PricedOptionRecord",
    "StrikeGEX",
    "ExpirationGEX",
    "ExposureSummary",
    "GammaProfile",
    "GammaFlip",
    "ExpectedMove",
    "WallResult",
    "AnalyticsReport",
    # Normalization
    "OptionNormalizer",
    # Pricing
    "PricingModel",
    "BlackScholesModel",
    "BinomialTreeModel",
    "get_pricing_model",
    "resolve_pricing_method",
    "norm_cdf",
    "norm_pdf",
    "time_to_expiry",
    # Analytics
    "GammaExposureAggregator",
    "ZeroGammaSolver",
    "find_zero_crossing",
    "ExpectedMoveCalculator",
    "WallDetector",
    "GammaAnalytics",
]
