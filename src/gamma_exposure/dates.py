"""Calendar helpers shared by the pricing and exposure components."""

from datetime import date, datetime, timezone
from typing import Optional


def utc_today() -> date:
    """Current UTC calendar date."""
    return datetime.now(timezone.utc).date()


def days_until(expiration: date, as_of: Optional[date] = None) -> int:
    """Calendar days from ``as_of`` to ``expiration`` (negative once expired)."""
    return (expiration - (as_of or utc_today())).days


def time_to_expiry(
    expiration: date,
    as_of: Optional[date] = None,
    days_per_year: float = 252,
) -> float:
    """Year fraction until expiration.

    Same-day and already-expired contracts count as one full day so
    that gamma stays finite.
    """
    return max(days_until(expiration, as_of), 1) / days_per_year
