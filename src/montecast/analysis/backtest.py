"""Backtest: simulate from a past point and compare with realized closes.

Offsets are measured from the series end. With ``n`` rows:
- estimation window: rows n-1-backtest-duration .. n-1-backtest (inclusive)
- simulation start: row n-1-backtest
- realized span: the last backtest + 1 rows

The ensemble date axis is the realized trading dates.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from montecast.analysis.ensemble import build_ensemble, mean_trajectory
from montecast.analysis.errors import InsufficientHistory, InvalidParameter
from montecast.analysis.returns import MIN_DURATION, ReturnStats, to_price_frame, window_stats
from montecast.analysis.sim_models import SimModel
from montecast.analysis.sim_models.executor import DEFAULT_CHUNK_SIZE, run_paths

logger = logging.getLogger(__name__)

DEFAULT_BACKTEST_DAYS = 30


@dataclass
class BacktestResult:
    stats: ReturnStats
    model: SimModel
    ensemble: pd.DataFrame  # date, close_actual, close_1..close_N
    comparison: pd.DataFrame  # date, predicted_mean, actual


def run_backtest(
    prices: pd.DataFrame | pd.Series,
    duration: int,
    backtest: int = DEFAULT_BACKTEST_DAYS,
    num_sim: int = 200,
    model: SimModel | str = SimModel.ADDITIVE,
    *,
    seed: int | None = None,
    executor: str = "sequential",
    max_workers: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> BacktestResult:
    """Re-run the forecast from ``backtest`` rows before the series end.

    Args:
        prices: Date-sorted table with ``date`` and ``close`` columns.
        duration: Number of changes in the estimation window.
        backtest: Number of most recent rows held out and simulated.
        num_sim: Number of simulated paths.
        model: ``additive`` or ``gbm``.
        seed: Root seed for reproducible runs.
        executor: "sequential", "thread" or "process".
        max_workers: Worker count for parallel executors.
        chunk_size: Paths per executor task.

    Returns:
        BacktestResult whose ensemble carries ``close_actual``.

    Raises:
        InsufficientHistory: if ``duration + backtest >= rows``.
        InvalidParameter: for negative ``backtest``, ``num_sim < 1`` or
            ``duration`` below two.
    """
    model = SimModel(model)
    if backtest < 0:
        raise InvalidParameter(f"backtest must be >= 0, got {backtest}")
    if num_sim < 1:
        raise InvalidParameter(f"num_sim must be >= 1, got {num_sim}")
    if duration < MIN_DURATION:
        raise InvalidParameter(f"duration must be >= {MIN_DURATION}, got {duration}")

    df = to_price_frame(prices)
    rows = len(df)
    if duration + backtest >= rows:
        raise InsufficientHistory(
            f"duration={duration} + backtest={backtest} needs more than "
            f"{duration + backtest} rows, have {rows}"
        )

    start = rows - 1 - backtest
    stats = window_stats(df.iloc[start - duration:start + 1], model.return_kind)
    realized = df.iloc[start:]

    paths = run_paths(
        model,
        stats.last_close,
        stats.mean,
        stats.std,
        num_sim,
        backtest,
        seed=seed,
        executor=executor,
        max_workers=max_workers,
        chunk_size=chunk_size,
    )

    ensemble = build_ensemble(pd.DatetimeIndex(realized["date"]), paths)
    ensemble.insert(1, "close_actual", realized["close"].to_numpy(dtype=float))

    comparison = compare(ensemble)
    logger.info(
        "Backtest %s over %d days from %s: final predicted %.2f vs actual %.2f",
        model.value, backtest, stats.last_date.date(),
        comparison["predicted_mean"].iloc[-1], comparison["actual"].iloc[-1],
    )
    return BacktestResult(stats=stats, model=model, ensemble=ensemble, comparison=comparison)


def compare(ensemble: pd.DataFrame) -> pd.DataFrame:
    """Ensemble mean versus realized close, per date."""
    if "close_actual" not in ensemble.columns:
        raise InvalidParameter("Backtest ensemble has no close_actual column")

    mean = mean_trajectory(ensemble)
    return pd.DataFrame({
        "date": mean["date"],
        "predicted_mean": mean["close_avg"],
        "actual": mean["close_actual"],
    })


def backtest_errors(comparison: pd.DataFrame) -> dict[str, float]:
    """Error metrics of the predicted mean over the held-out span.

    The first row is the shared starting point and is excluded.
    """
    held_out = comparison.iloc[1:]
    if held_out.empty:
        return {"mae": 0.0, "mape_pct": 0.0, "final_error_pct": 0.0}

    predicted = held_out["predicted_mean"].to_numpy(dtype=float)
    actual = held_out["actual"].to_numpy(dtype=float)
    error = predicted - actual

    return {
        "mae": round(float(np.mean(np.abs(error))), 6),
        "mape_pct": round(float(np.mean(np.abs(error / actual)) * 100), 4),
        "final_error_pct": round(float(error[-1] / actual[-1] * 100), 4),
    }
