"""Gamma Exposure (GEX) Aggregator.

Core formula (per contract, currency units for a 1% move):
    GEX = Spot² × Gamma × Open Interest × 100 × 0.01

Call GEX is positive and put GEX is negated (dealers are modeled as
net short gamma on puts). Rollups are reported in billions.
"""

import logging
from datetime import date
from functools import partial
from typing import Optional, Sequence, Union

import pandas as pd

from src.gamma_exposure.config import GammaExposureConfig, PricingMethod
from src.gamma_exposure.dates import time_to_expiry, utc_today
from src.gamma_exposure.models import (
    ExpirationGEX,
    ExposureSummary,
    OptionRecord,
    PricedOptionRecord,
    PricingInput,
    StrikeGEX,
)
from src.gamma_exposure.parallel import parallel_map
from src.gamma_exposure.pricing import PricingModel, get_pricing_model
from src.logging_config import log_performance

logger = logging.getLogger(__name__)


class GammaExposureAggregator:
    """Computes per-option notional GEX and rolls it up.

    Supplied gammas are used as-is; missing ones (0) are computed with
    the selected pricing model on a 252-trading-day clock.
    """

    def __init__(self, config: Optional[GammaExposureConfig] = None):
        self.config = config or GammaExposureConfig()

    def notional_gex(self, record: OptionRecord, spot: float, gamma: float) -> float:
        """Signed dollar gamma exposure of one record (not scaled to billions)."""
        cfg = self.config.exposure
        gex = spot * spot * abs(gamma) * record.open_interest * cfg.contract_size * cfg.move_pct
        return gex if record.is_call else -gex

    def price_record(
        self,
        record: OptionRecord,
        spot: float,
        model: PricingModel,
        as_of: date,
    ) -> PricedOptionRecord:
        greeks = None
        gamma = record.gamma
        if gamma == 0:
            inp = PricingInput.for_record(
                record,
                spot,
                time_to_expiry(record.expiration, as_of, self.config.exposure.trading_days_per_year),
                rate=self.config.pricing.risk_free_rate,
                default_volatility=self.config.exposure.default_volatility,
                dividend_yield=self.config.pricing.dividend_yield,
                epsilon=self.config.pricing.epsilon,
            )
            greeks = model.price_and_greeks(inp)
            gamma = greeks.gamma

        return PricedOptionRecord(
            record=record,
            greeks=greeks,
            gamma=gamma,
            gex=self.notional_gex(record, spot, gamma),
        )

    def price_records(
        self,
        records: Sequence[OptionRecord],
        spot: float,
        pricing_method: Union[str, PricingMethod, None] = PricingMethod.BLACK_SCHOLES,
        as_of: Optional[date] = None,
    ) -> list[PricedOptionRecord]:
        """Map step: price every record independently."""
        model = get_pricing_model(pricing_method, self.config.pricing)
        func = partial(self.price_record, spot=spot, model=model, as_of=as_of or utc_today())
        return parallel_map(func, list(records), self.config.exposure.max_workers)

    @log_performance(threshold_ms=2000)
    def aggregate(
        self,
        records: Sequence[OptionRecord],
        spot: float,
        pricing_method: Union[str, PricingMethod, None] = PricingMethod.BLACK_SCHOLES,
        as_of: Optional[date] = None,
    ) -> ExposureSummary:
        """Roll GEX up by strike, by expiration and in total.

        Args:
            records: Normalized option records.
            spot: Current underlying price.
            pricing_method: Model used for records lacking a supplied gamma.
            as_of: Valuation date (default: UTC today).

        Returns:
            ExposureSummary with billions-scaled rollups and the priced records.
        """
        priced = self.price_records(records, spot, pricing_method, as_of)
        if not priced:
            return ExposureSummary()

        billions = self.config.exposure.billions
        frame = pd.DataFrame({
            "strike": [p.record.strike for p in priced],
            "expiration": [p.record.expiration for p in priced],
            "gex": [p.gex for p in priced],
            "is_call": [p.record.is_call for p in priced],
        })

        by_strike = frame.groupby("strike", sort=True)["gex"].sum()
        by_expiration = frame.groupby("expiration", sort=True)["gex"].sum()

        summary = ExposureSummary(
            per_strike=[StrikeGEX(strike=float(k), gex=float(v) / billions) for k, v in by_strike.items()],
            per_expiration=[
                ExpirationGEX(expiration=k, gex=float(v) / billions) for k, v in by_expiration.items()
            ],
            total=float(frame["gex"].sum()) / billions,
            total_call_gex=float(frame.loc[frame["is_call"], "gex"].sum()) / billions,
            total_put_gex=float(frame.loc[~frame["is_call"], "gex"].sum()) / billions,
            priced=priced,
        )
        logger.debug(
            f"Aggregated GEX for {len(priced)} options: total={summary.total:.4f}B "
            f"across {len(summary.per_strike)} strikes"
        )
        return summary

    @staticmethod
    def volume_by_strike(records: Sequence[OptionRecord]) -> list[tuple[float, int]]:
        """Traded volume (calls and puts combined) per strike, sorted by strike."""
        totals: dict[float, int] = {}
        for record in records:
            if record.volume > 0:
                totals[record.strike] = totals.get(record.strike, 0) + record.volume
        return sorted(totals.items())
