"""Zero-Gamma (Gamma Flip) Level Solver.

Sweeps hypothetical spot levels around the current price, recomputes
net dealer gamma at each one and interpolates where it changes sign.
Always uses closed-form Black-Scholes gamma: the sweep is a fast
qualitative picture, not exact American pricing.
"""

import logging
import math
from datetime import date, timedelta
from functools import partial
from typing import Optional, Sequence

import numpy as np

from src.gamma_exposure.config import GammaExposureConfig
from src.gamma_exposure.dates import days_until, utc_today
from src.gamma_exposure.models import GammaFlip, GammaProfile, OptionRecord
from src.gamma_exposure.parallel import parallel_map
from src.gamma_exposure.pricing import BlackScholesModel

logger = logging.getLogger(__name__)


def find_zero_crossing(
    levels: Sequence[float],
    values: Sequence[float],
    flat_tolerance: float = 1e-8,
) -> Optional[float]:
    """Locate the first (lowest-level) sign change in sampled net gamma.

    Exact-zero and non-finite samples are skipped when looking for a sign
    change; an exact zero lying between two opposite-signed samples is
    returned as the crossing itself. Otherwise the crossing is linearly
    interpolated between the bracketing samples.

    Returns:
        The interpolated level, or None when every sample shares a sign.
    """
    if len(levels) != len(values):
        raise ValueError(f"levels ({len(levels)}) and values ({len(values)}) differ in length")

    prev: Optional[int] = None
    for i, value in enumerate(values):
        if not math.isfinite(value) or value == 0:
            continue
        if prev is not None and (values[prev] < 0) != (value < 0):
            if i - prev > 1 and values[prev + 1] == 0:
                return float(levels[prev + 1])
            lo, hi = levels[prev], levels[i]
            diff = value - values[prev]
            if abs(diff) < flat_tolerance:
                return float((lo + hi) / 2)
            return float(hi - (hi - lo) * value / diff)
        prev = i
    return None


class ZeroGammaSolver:
    """Finds the spot level where net dealer gamma crosses zero."""

    def __init__(
        self,
        config: Optional[GammaExposureConfig] = None,
        model: Optional[BlackScholesModel] = None,
    ):
        self.config = config or GammaExposureConfig()
        self.model = model or BlackScholesModel()

    def levels(self, spot: float) -> list[float]:
        """Evenly spaced hypothetical spot levels around ``spot``."""
        cfg = self.config.zero_gamma
        return np.linspace(spot * cfg.lower_bound, spot * cfg.upper_bound, cfg.num_levels).tolist()

    def eligible(
        self,
        records: Sequence[OptionRecord],
        cutoff_expiration: Optional[date] = None,
        as_of: Optional[date] = None,
    ) -> list[OptionRecord]:
        """Records expiring on or before the cutoff (default: the sweep window)."""
        as_of = as_of or utc_today()
        cutoff = cutoff_expiration or as_of + timedelta(days=self.config.zero_gamma.window_days)
        return [r for r in records if r.expiration <= cutoff]

    def net_gamma_at(
        self,
        level: float,
        strikes: np.ndarray,
        years: np.ndarray,
        vols: np.ndarray,
        weights: np.ndarray,
    ) -> float:
        """Call GEX minus put GEX at a hypothetical spot, in billions.

        ``weights`` is signed open interest (+calls, -puts).
        """
        exp_cfg = self.config.exposure
        gamma = self.model.gamma_array(
            level,
            strikes,
            years,
            vols,
            rate=self.config.pricing.risk_free_rate,
            dividend_yield=self.config.pricing.dividend_yield,
        )
        scale = level * level * exp_cfg.contract_size * exp_cfg.move_pct
        return float(np.sum(gamma * weights) * scale / exp_cfg.billions)

    def profile(
        self,
        records: Sequence[OptionRecord],
        spot: float,
        cutoff_expiration: Optional[date] = None,
        as_of: Optional[date] = None,
    ) -> GammaProfile:
        """Full sweep: levels, net gamma at each level and the crossing."""
        as_of = as_of or utc_today()
        selected = self.eligible(records, cutoff_expiration, as_of)
        if not selected or not math.isfinite(spot) or spot <= 0:
            return GammaProfile()

        exp_cfg = self.config.exposure
        strikes = np.array([r.strike for r in selected], dtype=float)
        years = np.array(
            [max(days_until(r.expiration, as_of), 1) / exp_cfg.trading_days_per_year for r in selected],
            dtype=float,
        )
        vols = np.array(
            [r.implied_volatility if r.implied_volatility > 0 else exp_cfg.default_volatility for r in selected],
            dtype=float,
        )
        weights = np.array(
            [r.open_interest if r.is_call else -r.open_interest for r in selected],
            dtype=float,
        )

        levels = self.levels(spot)
        func = partial(self.net_gamma_at, strikes=strikes, years=years, vols=vols, weights=weights)
        net_gamma = parallel_map(func, levels, exp_cfg.max_workers)

        crossing = find_zero_crossing(levels, net_gamma, self.config.zero_gamma.flat_tolerance)
        if cutoff_expiration is not None:
            logger.debug(
                f"Gamma flip through {cutoff_expiration.isoformat()}: "
                f"{len(selected)} options, level={crossing}"
            )
        return GammaProfile(levels=levels, net_gamma=net_gamma, zero_gamma_level=crossing)

    def solve(
        self,
        records: Sequence[OptionRecord],
        spot: float,
        cutoff_expiration: Optional[date] = None,
        as_of: Optional[date] = None,
    ) -> Optional[float]:
        """Zero-gamma spot level, or None when no crossing lies in the swept range."""
        return self.profile(records, spot, cutoff_expiration, as_of).zero_gamma_level

    def solve_by_expiration(
        self,
        records: Sequence[OptionRecord],
        spot: float,
        as_of: Optional[date] = None,
    ) -> list[GammaFlip]:
        """Cumulative flip level for each expiration within the horizon."""
        as_of = as_of or utc_today()
        horizon = as_of + timedelta(days=self.config.zero_gamma.flip_horizon_days)
        expirations = sorted({r.expiration for r in records if r.expiration <= horizon})

        return [
            GammaFlip(
                expiration=expiration,
                level=self.solve(records, spot, expiration, as_of),
                days_to_expiry=max(days_until(expiration, as_of), 0),
            )
            for expiration in expirations
        ]
