"""Expected Move Calculator.

Uses the 16-delta strangle as a one-standard-deviation proxy: the call
closest to +0.16 delta bounds the move from above, the put closest to
-0.16 delta from below.
"""

import logging
import math
from collections import defaultdict
from datetime import date, timedelta
from typing import Optional, Sequence

from src.gamma_exposure.config import GammaExposureConfig
from src.gamma_exposure.dates import time_to_expiry, utc_today
from src.gamma_exposure.models import ExpectedMove, OptionRecord, PricingInput
from src.gamma_exposure.pricing import BlackScholesModel

logger = logging.getLogger(__name__)


class ExpectedMoveCalculator:
    """Derives per-expiration move bands from the delta surface."""

    def __init__(
        self,
        config: Optional[GammaExposureConfig] = None,
        model: Optional[BlackScholesModel] = None,
    ):
        self.config = config or GammaExposureConfig()
        self.model = model or BlackScholesModel()

    def record_delta(self, record: OptionRecord, spot: float, as_of: date) -> float:
        """Supplied delta, or a Black-Scholes delta when the source had none."""
        if record.delta != 0:
            return record.delta

        inp = PricingInput.for_record(
            record,
            spot,
            time_to_expiry(record.expiration, as_of, self.config.expected_move.calendar_days_per_year),
            rate=self.config.pricing.risk_free_rate,
            default_volatility=self.config.exposure.default_volatility,
            dividend_yield=self.config.pricing.dividend_yield,
            epsilon=self.config.pricing.epsilon,
        )
        return self.model.price_and_greeks(inp).delta

    def compute(
        self,
        records: Sequence[OptionRecord],
        spot: float,
        expiration: Optional[date] = None,
        as_of: Optional[date] = None,
    ) -> list[ExpectedMove]:
        """Expected move band for each expiration.

        Args:
            records: Normalized option records.
            spot: Current underlying price.
            expiration: Restrict to this single expiration.
            as_of: Valuation date (default: UTC today).

        Returns:
            Bands sorted by expiration; expirations lacking calls or puts
            are omitted.
        """
        if not math.isfinite(spot) or spot <= 0:
            return []

        as_of = as_of or utc_today()
        cfg = self.config.expected_move

        if expiration is not None:
            selected = [r for r in records if r.expiration == expiration]
        else:
            horizon = as_of + timedelta(days=cfg.horizon_days)
            selected = [r for r in records if r.expiration <= horizon]

        by_expiration: dict[date, list[OptionRecord]] = defaultdict(list)
        for record in selected:
            by_expiration[record.expiration].append(record)

        moves = []
        for exp in sorted(by_expiration):
            group = by_expiration[exp]
            calls = [r for r in group if r.is_call]
            puts = [r for r in group if not r.is_call]
            if not calls or not puts:
                logger.debug(f"Skipping expected move for {exp.isoformat()}: calls={len(calls)}, puts={len(puts)}")
                continue

            upper = min(calls, key=lambda r: abs(self.record_delta(r, spot, as_of) - cfg.target_delta))
            lower = min(puts, key=lambda r: abs(self.record_delta(r, spot, as_of) + cfg.target_delta))

            moves.append(ExpectedMove(
                expiration=exp,
                upper_strike=upper.strike,
                lower_strike=lower.strike,
                upper_pct=round((upper.strike - spot) / spot * 100, 2),
                lower_pct=round((lower.strike - spot) / spot * 100, 2),
            ))

        return moves
