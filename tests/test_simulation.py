"""Integration tests for the forecast pipeline."""

from dataclasses import replace

import numpy as np
import pandas as pd
import pytest

from montecast.analysis.errors import InsufficientHistory, InvalidParameter
from montecast.analysis.returns import estimate_returns
from montecast.analysis.sim_models import ReturnKind, SimModel
from montecast.analysis import simulation
from montecast.analysis.simulation import (
    run_distribution,
    run_monte_carlo,
    simulate,
    stable_seed,
)


class TestSimulate:
    @pytest.mark.parametrize("model", list(SimModel))
    def test_ensemble_layout(self, realistic_prices, model):
        stats = estimate_returns(realistic_prices, 60, model.return_kind)
        ensemble = simulate(stats, 25, 15, model, seed=1)

        assert list(ensemble.columns) == ["date"] + [f"close_{i}" for i in range(1, 26)]
        assert len(ensemble) == 16
        assert ensemble["date"].iloc[0] == stats.last_date
        assert np.all(ensemble.iloc[0, 1:].to_numpy() == stats.last_close)

    def test_dates_skip_weekends(self, realistic_prices):
        stats = estimate_returns(realistic_prices, 60)
        ensemble = simulate(stats, 3, 40, seed=1)
        assert all(d.weekday() < 5 for d in pd.DatetimeIndex(ensemble["date"]))

    def test_final_only_returns_array(self, realistic_prices):
        stats = estimate_returns(realistic_prices, 60)
        terminal = simulate(stats, 1000, 10, final_only=True, seed=1)
        assert isinstance(terminal, np.ndarray)
        assert terminal.shape == (1000,)

    def test_kind_mismatch_rejected(self, realistic_prices):
        stats = estimate_returns(realistic_prices, 60, ReturnKind.PERCENT)
        with pytest.raises(InvalidParameter):
            simulate(stats, 10, 5, SimModel.GBM)

    @pytest.mark.parametrize("num_sim,days", [(0, 5), (5, -1)])
    def test_invalid_counts(self, realistic_prices, num_sim, days):
        stats = estimate_returns(realistic_prices, 60)
        with pytest.raises(InvalidParameter):
            simulate(stats, num_sim, days)

    def test_zero_volatility_paths_identical(self, flat_prices):
        stats = estimate_returns(flat_prices, 20)
        ensemble = simulate(stats, 10, 5, seed=4)
        values = ensemble.iloc[:, 1:].to_numpy()
        assert np.all(values == 50.0)


class TestRunMonteCarlo:
    def test_result_structure(self, realistic_prices):
        result = run_monte_carlo(realistic_prices, duration=120, num_sim=200,
                                 days_to_sim=30, seed=42)
        assert result.model is SimModel.ADDITIVE
        assert result.ensemble is not None
        assert list(result.mean.columns) == ["date", "close_avg"]
        assert len(result.mean) == 31
        assert result.terminal.shape == (200,)
        assert result.summary["p5"] <= result.summary["p50"] <= result.summary["p95"]

    def test_single_path_mean_equals_path(self, realistic_prices):
        result = run_monte_carlo(realistic_prices, duration=60, num_sim=1,
                                 days_to_sim=20, seed=3)
        np.testing.assert_array_equal(
            result.mean["close_avg"].to_numpy(), result.ensemble["close_1"].to_numpy()
        )

    def test_gbm_pipeline(self, realistic_prices):
        result = run_monte_carlo(realistic_prices, duration=120, num_sim=300,
                                 days_to_sim=20, model="gbm", seed=42)
        assert result.stats.kind is ReturnKind.LOG
        assert result.mean["close_avg"].iloc[0] == pytest.approx(result.stats.last_close)

    def test_scenario_forced_flat_step(self, scenario_prices):
        stats = replace(estimate_returns(scenario_prices, 10), mean=0.0, std=0.0)
        ensemble = simulate(stats, 1, 1, SimModel.ADDITIVE)
        assert ensemble["close_1"].iloc[-1] == 115.0

        log_stats = replace(estimate_returns(scenario_prices, 10, ReturnKind.LOG), mean=0.0, std=0.0)
        ensemble = simulate(log_stats, 1, 1, SimModel.GBM)
        assert ensemble["close_1"].iloc[-1] == 115.0

    def test_reproducible_with_seed(self, realistic_prices):
        r1 = run_monte_carlo(realistic_prices, 60, 100, 10, seed=stable_seed("MSFT"))
        r2 = run_monte_carlo(realistic_prices, 60, 100, 10, seed=stable_seed("MSFT"))
        pd.testing.assert_frame_equal(r1.ensemble, r2.ensemble)

    def test_auto_final_only_above_limit(self, realistic_prices, monkeypatch):
        monkeypatch.setattr(simulation, "FULL_PATH_LIMIT", 50)
        result = run_monte_carlo(realistic_prices, 60, 100, 5, seed=1)
        assert result.ensemble is None
        assert result.mean is None
        assert result.terminal.shape == (100,)

    def test_insufficient_history(self, realistic_prices):
        with pytest.raises(InsufficientHistory):
            run_monte_carlo(realistic_prices, duration=len(realistic_prices) - 1)

    def test_invalid_before_estimation(self, realistic_prices):
        with pytest.raises(InvalidParameter):
            run_monte_carlo(realistic_prices, duration=10_000, num_sim=0)

    def test_zero_last_close_not_guarded(self, realistic_prices):
        prices = realistic_prices.copy()
        prices.loc[prices.index[-1], "close"] = 0.0
        result = run_monte_carlo(prices, 60, 20, 5, seed=1)
        assert np.all(result.terminal == 0.0)
        assert np.isnan(result.summary["predicted_change_pct"])

    def test_predicted_change_matches_mean(self, realistic_prices):
        result = run_monte_carlo(realistic_prices, 60, 400, 10, seed=8)
        base = result.stats.last_close
        expected = (result.terminal.mean() - base) / base * 100
        assert result.summary["predicted_change_pct"] == pytest.approx(expected, abs=1e-3)


class TestRunDistribution:
    def test_never_keeps_paths(self, realistic_prices):
        result = run_distribution(realistic_prices, 60, 5000, 30, seed=1)
        assert result.ensemble is None
        assert result.terminal.shape == (5000,)

    def test_matches_full_terminal(self, realistic_prices):
        full = run_monte_carlo(realistic_prices, 60, 300, 15, seed=21)
        dist = run_distribution(realistic_prices, 60, 300, 15, seed=21)
        np.testing.assert_allclose(dist.terminal, full.terminal)

    def test_parallel_distribution(self, realistic_prices):
        seq = run_distribution(realistic_prices, 60, 3000, 10, "gbm", seed=9, chunk_size=500)
        par = run_distribution(realistic_prices, 60, 3000, 10, "gbm", seed=9, chunk_size=500,
                               executor="thread", max_workers=3)
        np.testing.assert_array_equal(seq.terminal, par.terminal)


class TestStableSeed:
    def test_deterministic(self):
        assert stable_seed("AAPL") == stable_seed("AAPL")

    def test_range_and_distinct(self):
        seed = stable_seed("AAPL")
        assert 0 <= seed < 2**32
        assert seed != stable_seed("MSFT")
