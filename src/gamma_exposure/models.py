"""Gamma Exposure Data Models.

Canonical option records, pricing inputs/outputs and the
JSON-ready result types produced by the analytics components.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from src.gamma_exposure.config import OptionSide


@dataclass(frozen=True)
class OptionRecord:
    """Canonical option contract, immutable once normalized."""
    strike: float
    side: OptionSide
    expiration: date
    implied_volatility: float = 0.0
    open_interest: int = 0
    volume: int = 0
    delta: float = 0.0
    gamma: float = 0.0
    bid: Optional[float] = None
    ask: Optional[float] = None
    last: Optional[float] = None
    symbol: str = ""

    @property
    def is_call(self) -> bool:
        return self.side == OptionSide.CALL

    @property
    def mid(self) -> Optional[float]:
        if self.bid is not None and self.ask is not None:
            return (self.bid + self.ask) / 2
        return self.last

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "strike": self.strike,
            "side": self.side.value,
            "expiration": self.expiration.isoformat(),
            "implied_volatility": self.implied_volatility,
            "open_interest": self.open_interest,
            "volume": self.volume,
            "delta": self.delta,
            "gamma": self.gamma,
            "bid": self.bid,
            "ask": self.ask,
            "last": self.last,
        }


@dataclass(frozen=True)
class PricingInput:
    """Single-option pricing request."""
    spot: float
    strike: float
    time_to_expiry: float
    rate: float
    volatility: float
    side: OptionSide
    dividend_yield: float = 0.0

    @classmethod
    def for_record(
        cls,
        record: OptionRecord,
        spot: float,
        time_to_expiry: float,
        rate: float = 0.0,
        default_volatility: float = 0.30,
        dividend_yield: float = 0.0,
        epsilon: float = 1e-8,
    ) -> "PricingInput":
        """Build an input from a record, clamping derived T and sigma above zero.

        A zero implied volatility is the "unknown" sentinel and is replaced
        by ``default_volatility``.
        """
        sigma = record.implied_volatility if record.implied_volatility > 0 else default_volatility
        return cls(
            spot=spot,
            strike=record.strike,
            time_to_expiry=max(time_to_expiry, epsilon),
            rate=rate,
            volatility=max(sigma, epsilon),
            side=record.side,
            dividend_yield=dividend_yield,
        )


@dataclass(frozen=True)
class OptionPrice:
    """Complete option pricing result with Greeks.

    Theta is per calendar day; vega and rho are per 1 percentage point.
    """
    price: float = 0.0
    delta: float = 0.0
    gamma: float = 0.0
    theta: float = 0.0
    vega: float = 0.0
    rho: float = 0.0
    side: OptionSide = OptionSide.CALL
    model: str = "black-scholes"

    @classmethod
    def zero(cls, side: OptionSide, model: str) -> "OptionPrice":
        return cls(side=side, model=model)

    def to_dict(self) -> dict:
        return {
            "price": self.price,
            "delta": self.delta,
            "gamma": self.gamma,
            "theta": self.theta,
            "vega": self.vega,
            "rho": self.rho,
            "side": self.side.value,
            "model": self.model,
        }


@dataclass(frozen=True)
class PricedOptionRecord:
    """Record augmented with model Greeks and its signed notional GEX."""
    record: OptionRecord
    greeks: Optional[OptionPrice]
    gamma: float
    gex: float

    def to_dict(self) -> dict:
        return {
            **self.record.to_dict(),
            "greeks": self.greeks.to_dict() if self.greeks else None,
            "gamma_used": self.gamma,
            "gex": self.gex,
        }


@dataclass(frozen=True)
class StrikeGEX:
    strike: float
    gex: float

    def to_dict(self) -> dict:
        return {"strike": self.strike, "gex": self.gex}


@dataclass(frozen=True)
class ExpirationGEX:
    expiration: date
    gex: float

    def to_dict(self) -> dict:
        return {"expiration": self.expiration.isoformat(), "gex": self.gex}


@dataclass
class ExposureSummary:
    """Gamma exposure rolled up by strike, by expiration and in total (billions)."""
    per_strike: list[StrikeGEX] = field(default_factory=list)
    per_expiration: list[ExpirationGEX] = field(default_factory=list)
    total: float = 0.0
    total_call_gex: float = 0.0
    total_put_gex: float = 0.0
    priced: list[PricedOptionRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "per_strike": [s.to_dict() for s in self.per_strike],
            "per_expiration": [e.to_dict() for e in self.per_expiration],
            "total_gex": self.total,
            "total_call_gex": self.total_call_gex,
            "total_put_gex": self.total_put_gex,
        }


@dataclass
class GammaProfile:
    """Net gamma swept across hypothetical spot levels."""
    levels: list[float] = field(default_factory=list)
    net_gamma: list[float] = field(default_factory=list)
    zero_gamma_level: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "levels": [round(v, 4) for v in self.levels],
            "net_gamma": self.net_gamma,
            "zero_gamma_level": self.zero_gamma_level,
        }


@dataclass(frozen=True)
class GammaFlip:
    """Cumulative zero-gamma level for everything expiring by ``expiration``."""
    expiration: date
    level: Optional[float]
    days_to_expiry: int

    def to_dict(self) -> dict:
        return {
            "expiration": self.expiration.isoformat(),
            "level": self.level,
            "days_to_expiry": self.days_to_expiry,
        }


@dataclass(frozen=True)
class ExpectedMove:
    """16-delta strangle band for one expiration."""
    expiration: date
    upper_strike: float
    lower_strike: float
    upper_pct: float
    lower_pct: float

    @property
    def width(self) -> float:
        return self.upper_strike - self.lower_strike

    def to_dict(self) -> dict:
        return {
            "expiration": self.expiration.isoformat(),
            "upper_strike": self.upper_strike,
            "lower_strike": self.lower_strike,
            "upper_pct": self.upper_pct,
            "lower_pct": self.lower_pct,
        }


@dataclass
class WallResult:
    """Open-interest walls for one expiration."""
    expiration: date
    call_wall: Optional[float] = None
    put_wall: Optional[float] = None
    call_oi: list[tuple[float, int]] = field(default_factory=list)
    put_oi: list[tuple[float, int]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "expiration": self.expiration.isoformat(),
            "call_wall": self.call_wall,
            "put_wall": self.put_wall,
            "call_oi": [{"strike": s, "oi": oi} for s, oi in self.call_oi],
            "put_oi": [{"strike": s, "oi": oi} for s, oi in self.put_oi],
        }


@dataclass
class AnalyticsReport:
    """Everything the dashboard needs for one snapshot and spot price."""
    spot: float
    pricing_method: str
    as_of: date
    records_in: int
    records_used: int
    exposure: ExposureSummary
    zero_gamma_level: Optional[float] = None
    expected_moves: list[ExpectedMove] = field(default_factory=list)
    walls: list[WallResult] = field(default_factory=list)
    gamma_flips: list[GammaFlip] = field(default_factory=list)
    volume_by_strike: list[tuple[float, int]] = field(default_factory=list)
    expiration: Optional[date] = None

    def to_dict(self) -> dict:
        exposure = self.exposure.to_dict()
        return {
            "spot": self.spot,
            "pricing_method": self.pricing_method,
            "as_of": self.as_of.isoformat(),
            "expiration": self.expiration.isoformat() if self.expiration else "all",
            "records_in": self.records_in,
            "records_used": self.records_used,
            "per_strike": exposure["per_strike"],
            "per_expiration": exposure["per_expiration"],
            "total_gex": exposure["total_gex"],
            "total_call_gex": exposure["total_call_gex"],
            "total_put_gex": exposure["total_put_gex"],
            "zero_gamma_level": (
                round(self.zero_gamma_level, 2) if self.zero_gamma_level is not None else None
            ),
            "expected_moves": [m.to_dict() for m in self.expected_moves],
            "walls": [w.to_dict() for w in self.walls],
            "gamma_flips": [f.to_dict() for f in self.gamma_flips],
            "volume_by_strike": [
                {"strike": s, "volume": v} for s, v in self.volume_by_strike
            ],
        }
