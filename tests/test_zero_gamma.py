"""Tests for the zero-gamma (gamma flip) solver."""

from datetime import timedelta

import pytest

from src.gamma_exposure.config import ExposureConfig, GammaExposureConfig, OptionSide, ZeroGammaConfig
from src.gamma_exposure.models import GammaFlip, OptionRecord
from src.gamma_exposure.zero_gamma import ZeroGammaSolver, find_zero_crossing


@pytest.fixture
def solver():
    return ZeroGammaSolver()


class TestFindZeroCrossing:
    """Tests for sign-change interpolation."""

    def test_interpolates_between_samples(self):
        level = find_zero_crossing([90, 95, 100, 105], [-2, -1, 1, 2])
        assert 95 < level < 100
        assert level == pytest.approx(97.5)

    def test_same_sign_returns_none(self):
        assert find_zero_crossing([90, 95, 100], [1, 2, 3]) is None
        assert find_zero_crossing([90, 95, 100], [-3, -2, -1]) is None

    def test_all_zero_returns_none(self):
        assert find_zero_crossing([90, 95, 100], [0.0, 0.0, 0.0]) is None

    def test_exact_zero_sample_is_crossing(self):
        assert find_zero_crossing([90, 95, 100], [-1.0, 0.0, 1.0]) == 95

    def test_lowest_crossing_wins(self):
        assert find_zero_crossing([1, 2, 3, 4], [-1, 1, -1, 1]) == pytest.approx(1.5)

    def test_flat_neighbours_return_midpoint(self):
        assert find_zero_crossing([10, 20], [-1e-10, 1e-10]) == pytest.approx(15.0)

    def test_uneven_interpolation(self):
        # Zero at 1/4 of the way from 100 to 104
        assert find_zero_crossing([100, 104], [-1.0, 3.0]) == pytest.approx(101.0)

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            find_zero_crossing([1, 2, 3], [1, 2])


class TestZeroGammaSolver:
    """Tests for the spot-level sweep."""

    def test_levels_span(self, solver):
        levels = solver.levels(100.0)
        assert len(levels) == 30
        assert levels[0] == pytest.approx(80.0)
        assert levels[-1] == pytest.approx(120.0)

    def test_scenario_has_flip(self, solver, scenario_records, as_of):
        profile = solver.profile(scenario_records, 100.0, as_of=as_of)

        assert len(profile.net_gamma) == 30
        assert profile.net_gamma[0] < 0  # 90 put dominates low
        assert profile.net_gamma[-1] > 0  # 110 call dominates high
        assert 80.0 < profile.zero_gamma_level < 120.0
        assert solver.solve(scenario_records, 100.0, as_of=as_of) == profile.zero_gamma_level

    def test_all_calls_no_flip(self, solver, expiry_30d, as_of):
        records = [
            OptionRecord(strike=k, side=OptionSide.CALL, expiration=expiry_30d,
                         implied_volatility=0.2, open_interest=100)
            for k in (95.0, 100.0, 105.0)
        ]
        profile = solver.profile(records, 100.0, as_of=as_of)
        assert all(v > 0 for v in profile.net_gamma)
        assert profile.zero_gamma_level is None

    def test_empty_and_bad_spot(self, solver, scenario_records, as_of):
        assert solver.solve([], 100.0, as_of=as_of) is None
        assert solver.solve(scenario_records, 0.0, as_of=as_of) is None
        assert solver.solve(scenario_records, float("nan"), as_of=as_of) is None

    def test_default_window_excludes_far_expirations(self, solver, scenario_records, as_of):
        far = [
            OptionRecord(strike=r.strike, side=r.side, expiration=as_of + timedelta(days=90),
                         implied_volatility=r.implied_volatility, open_interest=r.open_interest)
            for r in scenario_records
        ]
        assert solver.eligible(far, as_of=as_of) == []
        assert solver.solve(far, 100.0, as_of=as_of) is None
        assert solver.solve(far, 100.0, cutoff_expiration=as_of + timedelta(days=90), as_of=as_of) is not None

    def test_configured_window(self, scenario_records, as_of):
        config = GammaExposureConfig(zero_gamma=ZeroGammaConfig(window_days=10))
        assert ZeroGammaSolver(config).solve(scenario_records, 100.0, as_of=as_of) is None

    def test_parallel_sweep_matches_serial(self, scenario_records, as_of):
        config = GammaExposureConfig(exposure=ExposureConfig(max_workers=3))
        threaded = ZeroGammaSolver(config).profile(scenario_records, 100.0, as_of=as_of)
        serial = ZeroGammaSolver().profile(scenario_records, 100.0, as_of=as_of)
        assert threaded.net_gamma == serial.net_gamma

    def test_solve_by_expiration(self, solver, scenario_records, as_of, expiry_30d):
        later = [
            OptionRecord(strike=100.0, side=OptionSide.CALL, expiration=expiry_30d + timedelta(days=28),
                         implied_volatility=0.2, open_interest=50),
            OptionRecord(strike=100.0, side=OptionSide.CALL, expiration=as_of + timedelta(days=500),
                         implied_volatility=0.2, open_interest=50),
        ]
        flips = solver.solve_by_expiration(scenario_records + later, 100.0, as_of=as_of)

        assert [f.expiration for f in flips] == [expiry_30d, expiry_30d + timedelta(days=28)]
        assert all(isinstance(f, GammaFlip) for f in flips)
        assert flips[0].days_to_expiry == 30
        assert flips[0].level == solver.solve(scenario_records, 100.0, expiry_30d, as_of)
        assert flips[1].to_dict()["days_to_expiry"] == 58
