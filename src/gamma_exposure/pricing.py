"""Options Pricing Engine.

Implements Black-Scholes (European) and Binomial Tree (American)
pricing behind a single strategy interface, each returning the
price with delta, gamma, theta, vega and rho.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Optional, Union

import numpy as np

from src.gamma_exposure.config import OptionSide, PricingConfig, PricingMethod
from src.gamma_exposure.exceptions import InvalidInputError
from src.gamma_exposure.models import OptionPrice, PricingInput

logger = logging.getLogger(__name__)


# ============================================================================
# Normal distribution
# ============================================================================

# Abramowitz & Stegun 26.2.17, |error| < 7.5e-8
_AS_P = 0.2316419
_AS_B = (0.319381530, -0.356563782, 1.781477937, -1.821255978, 1.330274429)
_INV_SQRT_2PI = 1.0 / math.sqrt(2.0 * math.pi)


def norm_pdf(x: float) -> float:
    """Standard normal PDF."""
    return _INV_SQRT_2PI * math.exp(-0.5 * x * x)


def norm_cdf(x: float) -> float:
    """Standard normal CDF."""
    if math.isnan(x):
        return x
    if math.isinf(x):
        return 1.0 if x > 0 else 0.0

    z = abs(x)
    t = 1.0 / (1.0 + _AS_P * z)
    b1, b2, b3, b4, b5 = _AS_B
    poly = t * (b1 + t * (b2 + t * (b3 + t * (b4 + t * b5))))
    tail = norm_pdf(z) * poly
    return 1.0 - tail if x >= 0 else tail


def norm_pdf_array(x: np.ndarray) -> np.ndarray:
    """Vectorized standard normal PDF."""
    return _INV_SQRT_2PI * np.exp(-0.5 * x * x)


# ============================================================================
# Models
# ============================================================================

class PricingModel(ABC):
    """Strategy interface for single-option pricing."""

    name: str = ""

    @abstractmethod
    def price_and_greeks(self, inp: PricingInput) -> OptionPrice:
        """Price one option and compute its Greeks."""

    @staticmethod
    def is_degenerate(inp: PricingInput) -> bool:
        values = (inp.spot, inp.strike, inp.time_to_expiry, inp.volatility, inp.rate, inp.dividend_yield)
        if not all(math.isfinite(v) for v in values):
            return True
        return inp.time_to_expiry <= 0 or inp.volatility <= 0 or inp.spot <= 0 or inp.strike <= 0

    def _checked(self, result: OptionPrice) -> OptionPrice:
        values = (result.price, result.delta, result.gamma, result.theta, result.vega, result.rho)
        if all(math.isfinite(v) for v in values):
            return result
        logger.debug(f"{self.name}: non-finite result {result}, returning zeros")
        return OptionPrice.zero(result.side, self.name)


class BlackScholesModel(PricingModel):
    """Closed-form Black-Scholes pricing for European exercise.

    Example:
        model = BlackScholesModel()
        result = model.price_and_greeks(PricingInput(
            spot=100, strike=105, time_to_expiry=0.25, rate=0.05,
            volatility=0.20, side=OptionSide.CALL,
        ))
    """

    name = PricingMethod.BLACK_SCHOLES.value

    def price_and_greeks(self, inp: PricingInput) -> OptionPrice:
        if self.is_degenerate(inp):
            return OptionPrice.zero(inp.side, self.name)

        S, K, T = inp.spot, inp.strike, inp.time_to_expiry
        r, q, sigma = inp.rate, inp.dividend_yield, inp.volatility

        sqrt_t = math.sqrt(T)
        d1 = (math.log(S / K) + (r - q + 0.5 * sigma ** 2) * T) / (sigma * sqrt_t)
        d2 = d1 - sigma * sqrt_t

        disc_q = math.exp(-q * T)
        disc_r = math.exp(-r * T)
        pdf_d1 = norm_pdf(d1)

        gamma = disc_q * pdf_d1 / (S * sigma * sqrt_t)
        vega = S * disc_q * pdf_d1 * sqrt_t / 100
        decay = -S * disc_q * pdf_d1 * sigma / (2 * sqrt_t)

        if inp.side == OptionSide.CALL:
            n_d1, n_d2 = norm_cdf(d1), norm_cdf(d2)
            price = S * disc_q * n_d1 - K * disc_r * n_d2
            delta = disc_q * n_d1
            theta = (decay - r * K * disc_r * n_d2 + q * S * disc_q * n_d1) / 365
            rho = K * T * disc_r * n_d2 / 100
        else:
            n_md1, n_md2 = norm_cdf(-d1), norm_cdf(-d2)
            price = K * disc_r * n_md2 - S * disc_q * n_md1
            delta = disc_q * (norm_cdf(d1) - 1)
            theta = (decay + r * K * disc_r * n_md2 - q * S * disc_q * n_md1) / 365
            rho = -K * T * disc_r * n_md2 / 100

        return self._checked(OptionPrice(
            price=price,
            delta=delta,
            gamma=gamma,
            theta=theta,
            vega=vega,
            rho=rho,
            side=inp.side,
            model=self.name,
        ))

    def gamma_array(
        self,
        spot: float,
        strikes: np.ndarray,
        time_to_expiry: np.ndarray,
        volatility: np.ndarray,
        rate: float = 0.0,
        dividend_yield: float = 0.0,
    ) -> np.ndarray:
        """Vectorized gamma for many options at one spot level.

        Degenerate entries (T, sigma or K not positive) yield 0.
        """
        strikes = np.asarray(strikes, dtype=float)
        T = np.asarray(time_to_expiry, dtype=float)
        sigma = np.asarray(volatility, dtype=float)

        if spot <= 0 or not math.isfinite(spot):
            return np.zeros_like(strikes)

        valid = (T > 0) & (sigma > 0) & (strikes > 0)
        safe_t = np.where(valid, T, 1.0)
        safe_sigma = np.where(valid, sigma, 1.0)
        safe_k = np.where(valid, strikes, spot)

        sqrt_t = np.sqrt(safe_t)
        d1 = (np.log(spot / safe_k) + (rate - dividend_yield + 0.5 * safe_sigma ** 2) * safe_t) / (
            safe_sigma * sqrt_t
        )
        gamma = np.exp(-dividend_yield * safe_t) * norm_pdf_array(d1) / (spot * safe_sigma * sqrt_t)
        gamma = np.where(valid & np.isfinite(gamma), gamma, 0.0)
        return gamma


class BinomialTreeModel(PricingModel):
    """Cox-Ross-Rubinstein binomial tree with early exercise (American).

    Greeks come from bump-and-reprice, so every call prices a dozen
    full trees; prefer Black-Scholes for European-style underlyings.
    """

    name = PricingMethod.BINOMIAL.value

    def __init__(self, steps: Optional[int] = None, config: Optional[PricingConfig] = None):
        self.config = config or PricingConfig()
        self.steps = steps or self.config.binomial_steps

    def tree_price(self, inp: PricingInput) -> float:
        """American option value from backward induction."""
        if self.is_degenerate(inp):
            return 0.0

        n = self.steps
        S, K = inp.spot, inp.strike
        dt = inp.time_to_expiry / n
        u = math.exp(inp.volatility * math.sqrt(dt))
        d = 1.0 / u
        p = (math.exp((inp.rate - inp.dividend_yield) * dt) - d) / (u - d)
        disc = math.exp(-inp.rate * dt)
        is_call = inp.side == OptionSide.CALL

        # Terminal prices, highest first
        prices = S * u ** np.arange(n, -1, -1) * d ** np.arange(0, n + 1)
        values = np.maximum(prices - K, 0.0) if is_call else np.maximum(K - prices, 0.0)

        for _ in range(n):
            prices = prices[:-1] * d
            values = disc * (p * values[:-1] + (1 - p) * values[1:])
            exercise = np.maximum(prices - K, 0.0) if is_call else np.maximum(K - prices, 0.0)
            values = np.maximum(values, exercise)

        return float(values[0])

    def _delta(self, inp: PricingInput, spot: float, d_s: float) -> float:
        up = self.tree_price(replace(inp, spot=spot + d_s))
        down = self.tree_price(replace(inp, spot=spot - d_s))
        return (up - down) / (2 * d_s)

    def price_and_greeks(self, inp: PricingInput) -> OptionPrice:
        if self.is_degenerate(inp):
            return OptionPrice.zero(inp.side, self.name)

        S, T, sigma = inp.spot, inp.time_to_expiry, inp.volatility
        price = self.tree_price(inp)

        d_s = S * self.config.bump_pct
        delta = self._delta(inp, S, d_s)
        gamma = (self._delta(inp, S + d_s, d_s) - self._delta(inp, S - d_s, d_s)) / (2 * d_s)

        d_t = min(1 / 365, T / 2)
        theta = (self.tree_price(replace(inp, time_to_expiry=T - d_t)) - price) / (d_t * 365)

        vol_up, vol_down = sigma + 0.01, max(sigma - 0.01, sigma / 2)
        vega = (
            self.tree_price(replace(inp, volatility=vol_up))
            - self.tree_price(replace(inp, volatility=vol_down))
        ) / (vol_up - vol_down) / 100

        rho = (
            self.tree_price(replace(inp, rate=inp.rate + 0.01))
            - self.tree_price(replace(inp, rate=inp.rate - 0.01))
        ) / 0.02 / 100

        return self._checked(OptionPrice(
            price=price,
            delta=delta,
            gamma=gamma,
            theta=theta,
            vega=vega,
            rho=rho,
            side=inp.side,
            model=self.name,
        ))


def resolve_pricing_method(method: Union[str, PricingMethod, None]) -> PricingMethod:
    """Parse a pricing method selector, defaulting to Black-Scholes."""
    if method is None:
        return PricingMethod.BLACK_SCHOLES
    if isinstance(method, PricingMethod):
        return method
    normalized = str(method).strip().lower().replace("_", "-")
    if normalized in ("bs", "blackscholes"):
        normalized = PricingMethod.BLACK_SCHOLES.value
    try:
        return PricingMethod(normalized)
    except ValueError:
        valid = ", ".join(m.value for m in PricingMethod)
        raise InvalidInputError(
            f"Unknown pricing method {method!r}; expected one of: {valid}",
            field="pricing_method",
            value=method,
        ) from None


def get_pricing_model(
    method: Union[str, PricingMethod, None] = None,
    config: Optional[PricingConfig] = None,
) -> PricingModel:
    """Unified model factory.

    Args:
        method: 'black-scholes' or 'binomial'.
        config: Pricing configuration (binomial step count).

    Returns:
        PricingModel strategy instance.
    """
    config = config or PricingConfig()
    if resolve_pricing_method(method) == PricingMethod.BINOMIAL:
        return BinomialTreeModel(config=config)
    return BlackScholesModel()
