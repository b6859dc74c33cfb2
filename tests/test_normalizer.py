"""Tests for option chain normalization."""

import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from src.gamma_exposure.config import NormalizerConfig, OptionSide
from src.gamma_exposure.exceptions import InvalidInputError
from src.gamma_exposure.normalizer import OptionNormalizer


@pytest.fixture
def normalizer():
    return OptionNormalizer()


# =============================================================================
# Batch behaviour
# =============================================================================

class TestNormalizeBatch:
    """Tests for OptionNormalizer.normalize."""

    def test_cboe_chain(self, normalizer, cboe_chain, as_of):
        records = normalizer.normalize(cboe_chain, as_of)

        # Zero open interest row is dropped
        assert len(records) == 3
        first = records[0]
        assert first.symbol == "SPY250620C00550000"
        assert first.side == OptionSide.CALL
        assert first.strike == 550.0
        assert first.expiration == date(2025, 6, 20)
        assert first.open_interest == 1200
        assert first.volume == 340
        assert first.implied_volatility == pytest.approx(0.18)
        assert first.delta == pytest.approx(0.52)
        assert first.gamma == pytest.approx(0.011)
        assert first.bid == pytest.approx(12.1)
        assert first.ask == pytest.approx(12.4)

    def test_put_from_symbol(self, normalizer, cboe_chain, as_of):
        records = normalizer.normalize(cboe_chain, as_of)
        put = records[1]
        assert put.side == OptionSide.PUT
        assert put.strike == 545.0

    def test_mixed_field_names(self, normalizer, scenario_raw, scenario_records, as_of):
        records = normalizer.normalize(scenario_raw, as_of)
        assert records == scenario_records

    def test_empty_input(self, normalizer):
        assert normalizer.normalize([]) == []

    def test_tuple_input_accepted(self, normalizer, scenario_raw, as_of):
        assert len(normalizer.normalize(tuple(scenario_raw), as_of)) == 4

    @pytest.mark.parametrize("bad", [None, "SPY250620C00550000", b"[]", {"strike": 100}, 42])
    def test_non_sequence_rejected(self, normalizer, bad):
        with pytest.raises(InvalidInputError) as exc_info:
            normalizer.normalize(bad)
        assert exc_info.value.field == "raw_records"

    def test_invalid_input_is_value_error(self, normalizer):
        with pytest.raises(ValueError):
            normalizer.normalize(None)

    def test_non_mapping_elements_dropped(self, normalizer, scenario_raw, as_of):
        records = normalizer.normalize([None, "junk", 7, *scenario_raw], as_of)
        assert len(records) == 4

    def test_invariant_violations_dropped(self, normalizer, as_of):
        raw = [
            {"strike": 0, "type": "call", "expiration": "2025-07-01", "oi": 10},
            {"strike": -5, "type": "call", "expiration": "2025-07-01", "oi": 10},
            {"strike": 100, "type": "call", "expiration": "2025-07-01", "oi": 0},
            {"strike": 100, "type": "call", "expiration": "2025-07-01"},
            {"strike": 100, "type": "call", "expiration": "2025-07-01", "oi": 10},
        ]
        records = normalizer.normalize(raw, as_of)
        assert len(records) == 1
        assert all(r.strike > 0 and r.open_interest > 0 for r in records)

    def test_record_crash_is_logged_and_skipped(self, normalizer, scenario_raw, as_of, caplog, monkeypatch):
        original = normalizer.normalize_record

        def flaky(item, index=0, as_of=None):
            if index == 1:
                raise RuntimeError("boom")
            return original(item, index, as_of)

        monkeypatch.setattr(normalizer, "normalize_record", flaky)
        with caplog.at_level(logging.ERROR, logger="src.gamma_exposure.normalizer"):
            records = normalizer.normalize(scenario_raw, as_of)

        assert len(records) == 3
        assert "index 1" in caplog.text


# =============================================================================
# Field parsing
# =============================================================================

class TestFieldParsing:
    """Tests for side, strike and numeric field extraction."""

    def test_explicit_side_wins_over_symbol(self, normalizer, as_of):
        record = normalizer.normalize_record(
            {"option": "SPY250620C00550000", "type": "put", "oi": 5}, as_of=as_of
        )
        assert record.side == OptionSide.PUT

    def test_unknown_side_defaults_to_call(self, normalizer, as_of):
        record = normalizer.normalize_record(
            {"strike": 100, "type": "straddle", "expiration": "2025-07-01", "oi": 5}, as_of=as_of
        )
        assert record.side == OptionSide.CALL

    def test_symbol_with_spaces(self, normalizer, as_of):
        record = normalizer.normalize_record({"symbol": "SPXW  250620P05400000", "oi": 3}, as_of=as_of)
        assert record.side == OptionSide.PUT
        assert record.strike == 5400.0
        assert record.expiration == date(2025, 6, 20)
        assert record.symbol == "SPXW  250620P05400000"

    def test_fractional_occ_strike(self, normalizer, as_of):
        record = normalizer.normalize_record({"option": "AAPL250620C00182500", "oi": 1}, as_of=as_of)
        assert record.strike == 182.5

    def test_explicit_strike_wins_over_symbol(self, normalizer, as_of):
        record = normalizer.normalize_record(
            {"option": "SPY250620C00550000", "strike": "551.5", "oi": 1}, as_of=as_of
        )
        assert record.strike == 551.5

    def test_numeric_strings_with_commas(self, normalizer, as_of):
        record = normalizer.normalize_record(
            {"strike": "5,400", "type": "C", "expiration": "2025-07-01", "oi": "1,250", "volume": "3,000"},
            as_of=as_of,
        )
        assert record.strike == 5400.0
        assert record.open_interest == 1250
        assert record.volume == 3000

    def test_non_numeric_and_non_finite_become_zero(self, normalizer, as_of):
        record = normalizer.normalize_record(
            {"strike": 100, "type": "C", "expiration": "2025-07-01", "oi": 5,
             "iv": "n/a", "gamma": float("nan"), "delta": float("inf")},
            as_of=as_of,
        )
        assert record.implied_volatility == 0.0
        assert record.gamma == 0.0
        assert record.delta == 0.0

    def test_negative_iv_and_volume_clamped(self, normalizer, as_of):
        record = normalizer.normalize_record(
            {"strike": 100, "type": "C", "expiration": "2025-07-01", "oi": 5, "iv": -0.2, "volume": -10},
            as_of=as_of,
        )
        assert record.implied_volatility == 0.0
        assert record.volume == 0

    def test_nested_greeks(self, normalizer, as_of):
        record = normalizer.normalize_record(
            {"strike": 100, "type": "P", "expiration": "2025-07-01", "oi": 5,
             "greeks": {"gamma": 0.02, "delta": -0.3, "mid_iv": 0.27}},
            as_of=as_of,
        )
        assert record.gamma == pytest.approx(0.02)
        assert record.delta == pytest.approx(-0.3)
        assert record.implied_volatility == pytest.approx(0.27)

    def test_quotes_none_when_missing_or_non_positive(self, normalizer, as_of):
        record = normalizer.normalize_record(
            {"strike": 100, "type": "C", "expiration": "2025-07-01", "oi": 5, "bid": 0, "ask": "x"},
            as_of=as_of,
        )
        assert record.bid is None
        assert record.ask is None
        assert record.last is None
        assert record.mid is None

    def test_mid_from_quotes(self, normalizer, as_of):
        record = normalizer.normalize_record(
            {"strike": 100, "type": "C", "expiration": "2025-07-01", "oi": 5,
             "bid_price": 1.0, "offer": 1.5, "close": 1.2},
            as_of=as_of,
        )
        assert record.mid == pytest.approx(1.25)
        assert record.last == pytest.approx(1.2)

    def test_record_is_immutable(self, normalizer, as_of):
        record = normalizer.normalize_record(
            {"strike": 100, "type": "C", "expiration": "2025-07-01", "oi": 5}, as_of=as_of
        )
        with pytest.raises(AttributeError):
            record.gamma = 0.5


# =============================================================================
# Expiration parsing
# =============================================================================

class TestParseExpiration:
    """Tests for the expiration fallback chain."""

    def test_symbol_yymmdd(self, normalizer):
        assert normalizer.parse_expiration(None, "SPX250620C05000000") == date(2025, 6, 20)

    def test_symbol_takes_precedence_over_field(self, normalizer):
        assert normalizer.parse_expiration("2026-01-16", "SPY250620C00550000") == date(2025, 6, 20)

    def test_impossible_symbol_date_falls_through(self, normalizer):
        assert normalizer.parse_expiration("2025-06-20", "SPY251340C00550000") == date(2025, 6, 20)

    def test_iso_date(self, normalizer):
        assert normalizer.parse_expiration("2025-06-20") == date(2025, 6, 20)

    def test_iso_timestamp(self, normalizer):
        assert normalizer.parse_expiration("2025-06-20T16:00:00Z") == date(2025, 6, 20)
        assert normalizer.parse_expiration("2025-06-20T16:00:00") == date(2025, 6, 20)

    def test_offset_timestamp_uses_utc_date(self, normalizer):
        assert normalizer.parse_expiration("2025-06-20T22:00:00-05:00") == date(2025, 6, 21)
        assert normalizer.parse_expiration("2025-06-21T01:30:00+02:00") == date(2025, 6, 20)
        assert normalizer.parse_expiration("2025-06-20T12:00:00+00:00") == date(2025, 6, 20)

    def test_slash_four_digit_year(self, normalizer):
        assert normalizer.parse_expiration("6/20/2025") == date(2025, 6, 20)

    def test_slash_two_digit_year(self, normalizer):
        assert normalizer.parse_expiration("06/20/25") == date(2025, 6, 20)
        assert normalizer.parse_expiration("06/20/85") == date(1985, 6, 20)

    def test_unix_seconds(self, normalizer):
        ts = datetime(2025, 6, 20, 20, 0, tzinfo=timezone.utc).timestamp()
        assert normalizer.parse_expiration(ts) == date(2025, 6, 20)

    def test_unix_milliseconds(self, normalizer):
        ts = datetime(2025, 6, 20, 20, 0, tzinfo=timezone.utc).timestamp() * 1000
        assert normalizer.parse_expiration(int(ts)) == date(2025, 6, 20)

    def test_native_objects(self, normalizer):
        assert normalizer.parse_expiration(date(2025, 6, 20)) == date(2025, 6, 20)
        assert normalizer.parse_expiration(datetime(2025, 6, 20, 9, 30)) == date(2025, 6, 20)

    def test_generic_fallback(self, normalizer):
        assert normalizer.parse_expiration("June 20, 2025") == date(2025, 6, 20)

    @pytest.mark.parametrize("value", [None, "", "not a date", "2025-13-45", True])
    def test_unparseable(self, normalizer, value):
        assert normalizer.parse_expiration(value) is None

    def test_malformed_expiration_defaults_forward(self, normalizer, as_of, caplog):
        with caplog.at_level(logging.WARNING, logger="src.gamma_exposure.normalizer"):
            record = normalizer.normalize_record(
                {"strike": 100, "type": "C", "expiration": "garbage", "oi": 5}, as_of=as_of
            )
        assert record is not None
        assert record.expiration == as_of + timedelta(days=30)
        assert "No usable expiration" in caplog.text

    def test_custom_fallback_days(self, as_of):
        normalizer = OptionNormalizer(NormalizerConfig(fallback_expiration_days=7))
        record = normalizer.normalize_record({"strike": 100, "type": "C", "oi": 5}, as_of=as_of)
        assert record.expiration == as_of + timedelta(days=7)

    def test_suspect_year_logged_but_kept(self, normalizer, as_of, caplog):
        with caplog.at_level(logging.WARNING, logger="src.gamma_exposure.normalizer"):
            record = normalizer.normalize_record(
                {"strike": 100, "type": "C", "expiration": "1999-12-17", "oi": 5}, as_of=as_of
            )
        assert record.expiration == date(1999, 12, 17)
        assert "Suspicious expiration year" in caplog.text
