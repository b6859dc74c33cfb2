"""Gamma Analytics Facade.

Single entry point over the normalizer and the analytics components:
takes an opaque option snapshot plus a spot price and returns one
JSON-ready report.
"""

import logging
import math
from datetime import date, datetime
from typing import Any, Optional, Sequence, Union

from src.gamma_exposure.config import GammaExposureConfig, PricingMethod
from src.gamma_exposure.dates import utc_today
from src.gamma_exposure.exceptions import InvalidInputError
from src.gamma_exposure.expected_move import ExpectedMoveCalculator
from src.gamma_exposure.exposure import GammaExposureAggregator
from src.gamma_exposure.models import AnalyticsReport
from src.gamma_exposure.normalizer import OptionNormalizer
from src.gamma_exposure.pricing import resolve_pricing_method
from src.gamma_exposure.walls import WallDetector
from src.gamma_exposure.zero_gamma import ZeroGammaSolver
from src.logging_config import log_performance

logger = logging.getLogger(__name__)


def validate_spot(spot: Any) -> float:
    """Spot must be a finite, strictly positive number."""
    if isinstance(spot, bool):
        raise InvalidInputError("Spot price must be a number", field="spot", value=spot)
    try:
        value = float(spot)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Spot price is not numeric: {spot!r}", field="spot", value=spot) from None
    if not math.isfinite(value) or value <= 0:
        raise InvalidInputError(f"Spot price must be finite and positive, got {spot!r}", field="spot", value=spot)
    return value


def resolve_expiration(expiration: Union[str, date, None]) -> Optional[date]:
    """Parse the expiration filter; ``None`` means all expirations."""
    if expiration is None:
        return None
    if isinstance(expiration, datetime):
        return expiration.date()
    if isinstance(expiration, date):
        return expiration
    if isinstance(expiration, str):
        text = expiration.strip()
        if text.lower() in ("", "all"):
            return None
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
    raise InvalidInputError(
        f"Expiration filter must be 'all' or an ISO date, got {expiration!r}",
        field="expiration",
        value=expiration,
    )


class GammaAnalytics:
    """Runs the full GEX dashboard computation for one snapshot.

    Example:
        analytics = GammaAnalytics()
        report = analytics.analyze(chain, spot=550.0, pricing_method="binomial")
        payload = report.to_dict()
    """

    def __init__(self, config: Optional[GammaExposureConfig] = None):
        self.config = config or GammaExposureConfig()
        self.normalizer = OptionNormalizer(self.config.normalizer)
        self.aggregator = GammaExposureAggregator(self.config)
        self.zero_gamma = ZeroGammaSolver(self.config)
        self.expected_moves = ExpectedMoveCalculator(self.config)
        self.walls = WallDetector()

    @log_performance(threshold_ms=5000)
    def analyze(
        self,
        raw_records: Sequence,
        spot: float,
        pricing_method: Union[str, PricingMethod, None] = PricingMethod.BLACK_SCHOLES,
        expiration: Union[str, date, None] = "all",
        as_of: Optional[date] = None,
    ) -> AnalyticsReport:
        """Compute every dashboard aggregate.

        Args:
            raw_records: Sequence of option maps of unknown shape.
            spot: Current underlying price.
            pricing_method: 'black-scholes' or 'binomial' for missing gammas.
            expiration: 'all' (default) or a single expiration date.
            as_of: Valuation date (default: UTC today).

        Returns:
            AnalyticsReport; call ``to_dict()`` for the JSON payload.

        Raises:
            InvalidInputError: On a bad spot, pricing method, expiration
                filter or a non-sequence snapshot.
        """
        spot = validate_spot(spot)
        method = resolve_pricing_method(pricing_method)
        selected = resolve_expiration(expiration)
        as_of = as_of or utc_today()

        records = self.normalizer.normalize(raw_records, as_of)
        scoped = [r for r in records if r.expiration == selected] if selected else records

        exposure = self.aggregator.aggregate(scoped, spot, method, as_of)
        zero_gamma_level = self.zero_gamma.solve(records, spot, selected, as_of)
        gamma_flips = self.zero_gamma.solve_by_expiration(records, spot, as_of)
        expected_moves = self.expected_moves.compute(records, spot, selected, as_of)
        walls = [self.walls.detect(records, selected)] if selected else self.walls.detect_all(records)

        logger.info(
            f"GEX snapshot: {len(records)}/{len(raw_records)} records, spot={spot}, "
            f"method={method.value}, total={exposure.total:.4f}B, zero_gamma={zero_gamma_level}"
        )

        return AnalyticsReport(
            spot=spot,
            pricing_method=method.value,
            as_of=as_of,
            records_in=len(raw_records),
            records_used=len(scoped),
            exposure=exposure,
            zero_gamma_level=zero_gamma_level,
            expected_moves=expected_moves,
            walls=walls,
            gamma_flips=gamma_flips,
            volume_by_strike=self.aggregator.volume_by_strike(scoped),
            expiration=selected,
        )
