"""Pytest configuration and shared fixtures."""

import logging
import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.gamma_exposure.config import OptionSide  # noqa: E402
from src.gamma_exposure.models import OptionRecord  # noqa: E402
from src.logging_config import ConsoleFormatter, StructuredFormatter  # noqa: E402
from src.settings import get_settings  # noqa: E402

AS_OF = date(2025, 6, 2)


@pytest.fixture(autouse=True)
def restore_logging_and_settings():
    """Undo configure_logging() and cached settings after each test."""
    root = logging.getLogger()
    original_level = root.level
    get_settings.cache_clear()

    yield

    for handler in root.handlers[:]:
        if isinstance(handler.formatter, (StructuredFormatter, ConsoleFormatter)):
            root.removeHandler(handler)
    root.setLevel(original_level)
    get_settings.cache_clear()


@pytest.fixture
def as_of():
    """Fixed valuation date."""
    return AS_OF


@pytest.fixture
def expiry_30d(as_of):
    return as_of + timedelta(days=30)


@pytest.fixture
def scenario_records(expiry_30d):
    """Four-contract chain: ATM straddle plus 110 call / 90 put wings."""
    return [
        OptionRecord(strike=100.0, side=OptionSide.CALL, expiration=expiry_30d,
                     implied_volatility=0.20, open_interest=500),
        OptionRecord(strike=100.0, side=OptionSide.PUT, expiration=expiry_30d,
                     implied_volatility=0.20, open_interest=500),
        OptionRecord(strike=110.0, side=OptionSide.CALL, expiration=expiry_30d,
                     implied_volatility=0.25, open_interest=300),
        OptionRecord(strike=90.0, side=OptionSide.PUT, expiration=expiry_30d,
                     implied_volatility=0.25, open_interest=400),
    ]


@pytest.fixture
def scenario_raw(expiry_30d):
    """The same chain as provider-shaped maps with mixed field names."""
    exp = expiry_30d.isoformat()
    return [
        {"strike": 100, "type": "call", "expiration": exp, "open_interest": 500, "iv": 0.20},
        {"strike": "100", "option_type": "P", "exp_date": exp, "oi": "500", "implied_volatility": 0.20},
        {"strikePrice": 110, "optionType": "CALL", "expirationDate": exp, "openInterest": 300,
         "impliedVolatility": 0.25},
        {"strike_price": 90.0, "put_call": "put", "expiry": exp, "oi": 400, "greeks": {"mid_iv": 0.25}},
    ]


@pytest.fixture
def cboe_chain():
    """CBOE-style option maps keyed by OCC symbol."""
    return [
        {"option": "SPY250620C00550000", "open_interest": 1200, "volume": 340, "iv": 0.18,
         "delta": 0.52, "gamma": 0.011, "bid": 12.1, "ask": 12.4, "last_trade_price": 12.2},
        {"option": "SPY250620P00545000", "open_interest": 900, "volume": 410, "iv": 0.21,
         "delta": -0.41, "gamma": 0.010, "bid": 8.0, "ask": 8.3},
        {"option": "SPY250718C00600000", "open_interest": 300, "volume": 0, "iv": 0.15,
         "delta": 0.12, "gamma": 0.004},
        {"option": "SPY250718P00500000", "open_interest": 0, "volume": 25, "iv": 0.30},
    ]
