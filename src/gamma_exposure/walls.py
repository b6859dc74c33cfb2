"""Open-Interest Wall Detector.

A wall is the strike holding the most open interest on one side of
the chain for a single expiration, read as support (puts) or
resistance (calls).
"""

from datetime import date
from typing import Optional, Sequence

from src.gamma_exposure.models import OptionRecord, WallResult


def _oi_by_strike(records: Sequence[OptionRecord]) -> dict[float, int]:
    totals: dict[float, int] = {}
    for record in records:
        totals[record.strike] = totals.get(record.strike, 0) + record.open_interest
    return totals


def _peak(totals: dict[float, int]) -> Optional[float]:
    # max() keeps the first strike seen on ties
    if not totals:
        return None
    return max(totals, key=totals.__getitem__)


class WallDetector:
    """Detects call and put walls per expiration."""

    def detect(self, records: Sequence[OptionRecord], expiration: date) -> WallResult:
        expiring = [r for r in records if r.expiration == expiration]
        call_totals = _oi_by_strike([r for r in expiring if r.is_call])
        put_totals = _oi_by_strike([r for r in expiring if not r.is_call])

        return WallResult(
            expiration=expiration,
            call_wall=_peak(call_totals),
            put_wall=_peak(put_totals),
            call_oi=sorted(call_totals.items()),
            put_oi=sorted(put_totals.items()),
        )

    def detect_all(self, records: Sequence[OptionRecord]) -> list[WallResult]:
        """One result per distinct expiration, in date order."""
        return [self.detect(records, exp) for exp in sorted({r.expiration for r in records})]
