"""Unit tests for the return estimator."""

import numpy as np
import pandas as pd
import pytest

from montecast.analysis.errors import InsufficientHistory, InvalidParameter
from montecast.analysis.returns import estimate_returns, to_price_frame
from montecast.analysis.sim_models import ReturnKind

from conftest import make_prices


class TestPercentReturns:
    def test_scenario_changes(self, scenario_prices):
        stats = estimate_returns(scenario_prices, 10, ReturnKind.PERCENT)
        expected = [2.0, -0.98, 3.96, -0.95, 3.85, -0.93, 2.80, -0.91, 2.75, 2.68]
        np.testing.assert_allclose(stats.changes.to_numpy(), expected, atol=0.01)

    def test_scenario_mean_std(self, scenario_prices):
        stats = estimate_returns(scenario_prices, 10)
        assert stats.mean == pytest.approx(1.4273, abs=1e-3)
        assert stats.std == pytest.approx(2.1152, abs=1e-3)

    def test_window_holds_last_duration_plus_one(self, scenario_prices, scenario_closes):
        stats = estimate_returns(scenario_prices, 10)
        assert len(stats.window) == 11
        assert stats.window["close"].tolist() == [float(c) for c in scenario_closes]
        assert stats.last_close == 115.0
        assert stats.last_date == scenario_prices["date"].iloc[-1]

    def test_kind_accepts_string(self, scenario_prices):
        stats = estimate_returns(scenario_prices, 10, "percent")
        assert stats.kind is ReturnKind.PERCENT


class TestLogReturns:
    def test_changes_are_log_ratios(self, scenario_prices, scenario_closes):
        stats = estimate_returns(scenario_prices, 10, ReturnKind.LOG)
        closes = np.array(scenario_closes, dtype=float)
        np.testing.assert_allclose(stats.changes.to_numpy(), np.log(closes[1:] / closes[:-1]))

    def test_first_date_dropped(self, scenario_prices):
        stats = estimate_returns(scenario_prices, 10, ReturnKind.LOG)
        assert stats.changes.index[0] == stats.window["date"].iloc[1]
        assert stats.changes.index[-1] == stats.last_date

    def test_mean_std_sample(self, realistic_prices):
        stats = estimate_returns(realistic_prices, 120, ReturnKind.LOG)
        assert stats.mean == pytest.approx(float(np.mean(stats.changes)))
        assert stats.std == pytest.approx(float(np.std(stats.changes, ddof=1)))


class TestChangeLength:
    @pytest.mark.parametrize("duration", [2, 5, 30, 298])
    @pytest.mark.parametrize("kind", [ReturnKind.PERCENT, ReturnKind.LOG])
    def test_length_equals_duration(self, realistic_prices, duration, kind):
        stats = estimate_returns(realistic_prices, duration, kind)
        assert len(stats.changes) == duration
        assert stats.duration == duration


class TestErrors:
    def test_duration_equal_rows_minus_one(self):
        prices = make_prices(range(100, 111))  # 11 rows
        with pytest.raises(InsufficientHistory):
            estimate_returns(prices, 10)

    def test_duration_exceeds_rows(self):
        prices = make_prices(range(100, 106))
        with pytest.raises(InsufficientHistory):
            estimate_returns(prices, 50, ReturnKind.LOG)

    def test_largest_allowed_duration(self):
        prices = make_prices(range(100, 111))
        stats = estimate_returns(prices, 9)
        assert len(stats.changes) == 9

    def test_duration_too_small(self, realistic_prices):
        with pytest.raises(InvalidParameter):
            estimate_returns(realistic_prices, 1)

    def test_missing_columns(self):
        df = pd.DataFrame({"date": pd.bdate_range("2024-01-01", periods=5), "open": range(5)})
        with pytest.raises(InvalidParameter):
            estimate_returns(df, 2)

    def test_insufficient_history_is_value_error(self):
        with pytest.raises(ValueError):
            estimate_returns(make_prices([1, 2, 3]), 2)


class TestReturnStats:
    def test_compares_by_identity(self, scenario_prices):
        a = estimate_returns(scenario_prices, 10)
        b = estimate_returns(scenario_prices, 10)
        assert a == a
        assert a != b
        assert len({a, b}) == 2


class TestPriceFrame:
    def test_series_input(self):
        idx = pd.bdate_range("2024-03-01", periods=4)
        frame = to_price_frame(pd.Series([1.0, 2.0, 3.0, 4.0], index=idx))
        assert list(frame.columns) == ["date", "close"]
        assert frame["date"].tolist() == list(idx)

    def test_uppercase_columns(self):
        df = pd.DataFrame({"Date": ["2024-01-02", "2024-01-03"], "Close": [1, 2], "Volume": [5, 6]})
        frame = to_price_frame(df)
        assert list(frame.columns) == ["date", "close"]
        assert frame["close"].dtype == float

    def test_input_not_mutated(self, scenario_prices):
        before = scenario_prices.copy()
        estimate_returns(scenario_prices, 10)
        pd.testing.assert_frame_equal(scenario_prices, before)
