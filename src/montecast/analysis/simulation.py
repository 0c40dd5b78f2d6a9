"""Monte Carlo forecast orchestrator.

Return estimation -> path simulation -> ensemble aggregation. Every
parameter is passed explicitly; nothing here reads configuration.
"""

import hashlib
import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from montecast.analysis.calendar import project_dates
from montecast.analysis.ensemble import (
    build_ensemble,
    mean_trajectory,
    summarize_terminal,
    terminal_prices,
)
from montecast.analysis.errors import InvalidParameter
from montecast.analysis.returns import ReturnStats, estimate_returns
from montecast.analysis.sim_models import SimModel, TerminalSummary
from montecast.analysis.sim_models.executor import DEFAULT_CHUNK_SIZE, run_paths

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_DURATION = 180
DEFAULT_NUM_SIMULATIONS = 200
DEFAULT_DAYS_TO_SIM = 30

# Above this many paths only terminal prices are kept
FULL_PATH_LIMIT = 20_000


@dataclass
class ForecastResult:
    stats: ReturnStats
    model: SimModel
    days_to_sim: int
    terminal: np.ndarray
    summary: TerminalSummary
    ensemble: pd.DataFrame | None = None  # date, close_1..close_N
    mean: pd.DataFrame | None = None  # date, close_avg


def stable_seed(label: str) -> int:
    """Reproducible 32-bit seed for a ticker or run label."""
    return int(hashlib.sha256(label.encode()).hexdigest(), 16) % (2**32)


def _check_counts(num_sim: int, days_to_sim: int) -> None:
    if num_sim < 1:
        raise InvalidParameter(f"num_sim must be >= 1, got {num_sim}")
    if days_to_sim < 0:
        raise InvalidParameter(f"days_to_sim must be >= 0, got {days_to_sim}")


def simulate(
    stats: ReturnStats,
    num_sim: int,
    days_to_sim: int,
    model: SimModel | str = SimModel.ADDITIVE,
    *,
    final_only: bool = False,
    seed: int | None = None,
    executor: str = "sequential",
    max_workers: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> pd.DataFrame | np.ndarray:
    """Simulate paths forward from the last close of ``stats.window``.

    Returns the full path table (``date``, ``close_1`` .. ``close_N``), or
    the flat terminal-price array when ``final_only`` is set.
    """
    model = SimModel(model)
    _check_counts(num_sim, days_to_sim)
    if stats.kind is not model.return_kind:
        raise InvalidParameter(
            f"Model {model.value} needs {model.return_kind.value} returns, got {stats.kind.value}"
        )

    paths = run_paths(
        model,
        stats.last_close,
        stats.mean,
        stats.std,
        num_sim,
        days_to_sim,
        final_only=final_only,
        seed=seed,
        executor=executor,
        max_workers=max_workers,
        chunk_size=chunk_size,
    )
    if final_only:
        return paths

    dates = project_dates(stats.last_date, days_to_sim)
    return build_ensemble(dates, paths)


def run_monte_carlo(
    prices: pd.DataFrame | pd.Series,
    duration: int = DEFAULT_DURATION,
    num_sim: int = DEFAULT_NUM_SIMULATIONS,
    days_to_sim: int = DEFAULT_DAYS_TO_SIM,
    model: SimModel | str = SimModel.ADDITIVE,
    *,
    keep_paths: bool | None = None,
    seed: int | None = None,
    executor: str = "sequential",
    max_workers: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> ForecastResult:
    """Run the forward-looking forecast pipeline.

    Args:
        prices: Date-sorted table with ``date`` and ``close`` columns.
        duration: Number of historical changes used for the statistics.
        num_sim: Number of simulated paths.
        days_to_sim: Trading days to project.
        model: ``additive`` (percent returns) or ``gbm`` (log returns).
        keep_paths: Keep every path. None keeps them up to FULL_PATH_LIMIT.
        seed: Root seed for reproducible runs.
        executor: "sequential", "thread" or "process".
        max_workers: Worker count for parallel executors.
        chunk_size: Paths per executor task.

    Returns:
        ForecastResult with stats, terminal distribution summary and, when
        paths are kept, the ensemble table and its mean trajectory.
    """
    model = SimModel(model)
    _check_counts(num_sim, days_to_sim)

    stats = estimate_returns(prices, duration, model.return_kind)

    if keep_paths is None:
        keep_paths = num_sim <= FULL_PATH_LIMIT
        if not keep_paths:
            logger.info(
                "num_sim=%d exceeds %d, keeping terminal prices only",
                num_sim, FULL_PATH_LIMIT,
            )

    options = dict(seed=seed, executor=executor, max_workers=max_workers, chunk_size=chunk_size)

    if keep_paths:
        ensemble = simulate(stats, num_sim, days_to_sim, model, **options)
        mean = mean_trajectory(ensemble)
        terminal = terminal_prices(ensemble)
    else:
        ensemble = None
        mean = None
        terminal = simulate(stats, num_sim, days_to_sim, model, final_only=True, **options)

    summary = summarize_terminal(terminal, stats.last_close)
    logger.info(
        "%s forecast: %d paths, %d days, last close %.2f -> predicted %.2f (%+.2f%%)",
        model.value, num_sim, days_to_sim, stats.last_close,
        summary["predicted_price"], summary["predicted_change_pct"],
    )

    return ForecastResult(
        stats=stats,
        model=model,
        days_to_sim=days_to_sim,
        terminal=terminal,
        summary=summary,
        ensemble=ensemble,
        mean=mean,
    )


def run_distribution(
    prices: pd.DataFrame | pd.Series,
    duration: int = DEFAULT_DURATION,
    num_sim: int = DEFAULT_NUM_SIMULATIONS,
    days_to_sim: int = DEFAULT_DAYS_TO_SIM,
    model: SimModel | str = SimModel.ADDITIVE,
    **options,
) -> ForecastResult:
    """Terminal-distribution forecast; never materialises full paths."""
    return run_monte_carlo(
        prices, duration, num_sim, days_to_sim, model, keep_paths=False, **options
    )
