"""Option Chain Normalizer.

Turns loosely-typed option entries from any upstream provider into
canonical ``OptionRecord`` objects. Field names, date encodings and
Greeks coverage vary by source; bad rows are dropped, never raised.
"""

import logging
import math
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable, Optional

import pandas as pd

from src.gamma_exposure.config import NormalizerConfig, OptionSide
from src.gamma_exposure.dates import utc_today
from src.gamma_exposure.exceptions import InvalidInputError
from src.gamma_exposure.models import OptionRecord

logger = logging.getLogger(__name__)


SYMBOL_FIELDS = ("option", "symbol", "contract_symbol", "contractSymbol", "occ_symbol")
SIDE_FIELDS = ("type", "option_type", "optionType", "side", "put_call", "right")
STRIKE_FIELDS = ("strike", "strike_price", "strikePrice")
EXPIRATION_FIELDS = ("expiration", "exp_date", "expiration_date", "expirationDate", "expiry")
GAMMA_FIELDS = ("gamma", "greeks.gamma")
OPEN_INTEREST_FIELDS = ("open_interest", "openInterest", "oi")
VOLUME_FIELDS = ("volume", "vol", "trade_volume", "daily_volume")
IV_FIELDS = ("iv", "implied_volatility", "impliedVolatility", "greeks.mid_iv")
DELTA_FIELDS = ("delta", "greeks.delta")
BID_FIELDS = ("bid", "bid_price")
ASK_FIELDS = ("ask", "ask_price", "offer")
LAST_FIELDS = ("last", "last_price", "close", "price")

_SIDE_IN_SYMBOL = (re.compile(r"\d([CP])\d"), re.compile(r"([CP])\d"))
_OCC_STRIKE = re.compile(r"\d[CP](\d{8})$")
_STRIKE_IN_SYMBOL = (re.compile(r"\d[CP](\d+)\d\d\d"), re.compile(r"[CP](\d+)"))
_EXPIRY_IN_SYMBOL = (
    re.compile(r"[A-Z](\d{2})(\d{2})(\d{2})[CP]"),
    re.compile(r"^[A-Z_]*(\d{2})(\d{2})(\d{2})[CP]"),
)
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}(T\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?)?$")
_SLASH_DATE = re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}$")

_SIDE_ALIASES = {
    "C": OptionSide.CALL,
    "CALL": OptionSide.CALL,
    "CALLS": OptionSide.CALL,
    "P": OptionSide.PUT,
    "PUT": OptionSide.PUT,
    "PUTS": OptionSide.PUT,
}


def _lookup(item: Mapping, key: str) -> Any:
    """Fetch ``key`` from ``item``; dotted keys descend into nested maps."""
    value: Any = item
    for part in key.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def _first(item: Mapping, keys: Iterable[str]) -> Any:
    """First truthy value among candidate field names."""
    for key in keys:
        value = _lookup(item, key)
        if value:
            return value
    return None


def _to_float(value: Any) -> float:
    """Lenient numeric conversion; anything unusable becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip().replace(",", "")
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _to_price(value: Any) -> Optional[float]:
    number = _to_float(value)
    return number if number > 0 else None


class OptionNormalizer:
    """Normalizes raw option chains of unknown shape.

    Example:
        normalizer = OptionNormalizer()
        records = normalizer.normalize([
            {"option": "SPY250620C00550000", "open_interest": 1200, "iv": 0.18},
            {"strike": "545", "type": "put", "expiration": "2025-06-20", "oi": 900},
        ])
    """

    def __init__(self, config: Optional[NormalizerConfig] = None):
        self.config = config or NormalizerConfig()

    def normalize(
        self,
        raw_records: Sequence,
        as_of: Optional[date] = None,
    ) -> list[OptionRecord]:
        """Normalize a batch, dropping entries that fail the record invariants.

        Args:
            raw_records: Sequence of option maps with provider-specific keys.
            as_of: Reference date for fallback expirations (default: UTC today).

        Returns:
            Canonical records with strike > 0 and open interest > 0.

        Raises:
            InvalidInputError: If ``raw_records`` is not a sequence.
        """
        if not isinstance(raw_records, Sequence) or isinstance(raw_records, (str, bytes, bytearray)):
            raise InvalidInputError(
                f"Option data must be a sequence of records, got {type(raw_records).__name__}",
                field="raw_records",
            )

        as_of = as_of or utc_today()
        records: list[OptionRecord] = []

        for index, item in enumerate(raw_records):
            try:
                record = self.normalize_record(item, index, as_of)
            except Exception:
                logger.error(f"Failed to parse option record at index {index}", exc_info=True)
                continue
            if record is not None:
                records.append(record)

        dropped = len(raw_records) - len(records)
        if dropped:
            logger.debug(f"Normalized {len(records)} option records, dropped {dropped}")
        return records

    def normalize_record(
        self,
        item: Any,
        index: int = 0,
        as_of: Optional[date] = None,
    ) -> Optional[OptionRecord]:
        """Parse a single raw entry; returns None if it violates an invariant."""
        if not isinstance(item, Mapping):
            logger.debug(f"Skipping record {index}: not a mapping ({type(item).__name__})")
            return None

        as_of = as_of or utc_today()
        symbol = str(_first(item, SYMBOL_FIELDS) or "").strip()
        compact = re.sub(r"\s+", "", symbol).upper()

        side = self._parse_side(item, compact, index)
        strike = self._parse_strike(item, compact)
        expiration = self.parse_expiration(_first(item, EXPIRATION_FIELDS), compact)
        if expiration is None:
            expiration = as_of + timedelta(days=self.config.fallback_expiration_days)
            logger.warning(
                f"No usable expiration for {symbol or f'record {index}'}; "
                f"assuming {expiration.isoformat()}"
            )
        else:
            self._check_year(expiration, symbol, as_of)

        open_interest = int(max(_to_float(_first(item, OPEN_INTEREST_FIELDS)), 0.0))

        if strike <= 0 or open_interest <= 0:
            logger.debug(
                f"Dropping record {index} ({symbol}): strike={strike}, open_interest={open_interest}"
            )
            return None

        return OptionRecord(
            strike=strike,
            side=side,
            expiration=expiration,
            implied_volatility=max(_to_float(_first(item, IV_FIELDS)), 0.0),
            open_interest=open_interest,
            volume=int(max(_to_float(_first(item, VOLUME_FIELDS)), 0.0)),
            delta=_to_float(_first(item, DELTA_FIELDS)),
            gamma=_to_float(_first(item, GAMMA_FIELDS)),
            bid=_to_price(_first(item, BID_FIELDS)),
            ask=_to_price(_first(item, ASK_FIELDS)),
            last=_to_price(_first(item, LAST_FIELDS)),
            symbol=symbol,
        )

    # ------------------------------------------------------------------
    # Field parsers
    # ------------------------------------------------------------------

    def _parse_side(self, item: Mapping, symbol: str, index: int) -> OptionSide:
        explicit = _first(item, SIDE_FIELDS)
        if explicit is not None:
            side = _SIDE_ALIASES.get(str(explicit).strip().upper())
            if side is not None:
                return side

        for pattern in _SIDE_IN_SYMBOL:
            match = pattern.search(symbol)
            if match:
                return _SIDE_ALIASES[match.group(1)]

        logger.debug(f"Record {index} has no recognizable side; defaulting to call")
        return OptionSide.CALL

    def _parse_strike(self, item: Mapping, symbol: str) -> float:
        strike = _to_float(_first(item, STRIKE_FIELDS))
        if strike > 0 or not symbol:
            return strike

        occ = _OCC_STRIKE.search(symbol)
        if occ:
            return int(occ.group(1)) / 1000.0

        for pattern in _STRIKE_IN_SYMBOL:
            match = pattern.search(symbol)
            if match:
                return float(int(match.group(1)))
        return 0.0

    def parse_expiration(self, value: Any, symbol: str = "") -> Optional[date]:
        """Resolve an expiration date, trying each known encoding in order.

        Order: YYMMDD in the symbol, ISO date/timestamp, M/D/Y,
        Unix seconds or milliseconds, then pandas' generic parser.
        Timestamps carrying a non-UTC offset resolve to their UTC date.
        """
        from_symbol = self._expiration_from_symbol(symbol.upper()) if symbol else None
        if from_symbol is not None:
            return from_symbol

        if value is None or value == "" or isinstance(value, bool):
            return None
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                return value.astimezone(timezone.utc).date()
            return value.date()
        if isinstance(value, date):
            return value

        text = str(value).strip()
        if not text:
            return None

        try:
            iso = _ISO_DATE.match(text)
            if iso and iso.group(4) in (None, "Z"):
                return date(int(text[0:4]), int(text[5:7]), int(text[8:10]))

            if _SLASH_DATE.match(text):
                month, day, year = (int(part) for part in text.split("/"))
                if year < 100:
                    year += 1900 if year >= self.config.two_digit_year_cutoff else 2000
                return date(year, month, day)
        except ValueError:
            return None

        timestamp = _to_float(text)
        if timestamp > self.config.min_timestamp:
            if timestamp >= self.config.millisecond_threshold:
                timestamp /= 1000.0
            try:
                return datetime.fromtimestamp(timestamp, tz=timezone.utc).date()
            except (OverflowError, OSError, ValueError):
                return None

        try:
            parsed = pd.to_datetime(text, utc=True)
        except (ValueError, TypeError, OverflowError):
            return None
        if pd.isna(parsed):
            return None
        return parsed.date()

    def _expiration_from_symbol(self, symbol: str) -> Optional[date]:
        for pattern in _EXPIRY_IN_SYMBOL:
            match = pattern.search(symbol)
            if not match:
                continue
            yy, mm, dd = (int(g) for g in match.groups())
            try:
                return date(2000 + yy, mm, dd)
            except ValueError:
                logger.debug(f"Symbol {symbol} encodes an impossible date {yy:02d}{mm:02d}{dd:02d}")
        return None

    def _check_year(self, expiration: date, symbol: str, as_of: date) -> None:
        if expiration.year < 2000 or expiration.year > as_of.year + self.config.suspect_year_window:
            logger.warning(
                f"Suspicious expiration year for {symbol or 'unnamed option'}: {expiration.isoformat()}"
            )
