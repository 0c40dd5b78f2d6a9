"""Ensemble aggregation over simulated price paths.

Works on path tables (``date`` column plus one ``close_<n>`` column per
path) and on flat terminal-price arrays. Inputs are never mutated.
"""

import logging
import re

import numpy as np
import pandas as pd

from montecast.analysis.errors import InvalidParameter
from montecast.analysis.sim_models import TerminalSummary

logger = logging.getLogger(__name__)

PATH_COLUMN = re.compile(r"^close_\d+$")
DEFAULT_HISTOGRAM_BINS = 50


def build_ensemble(dates: pd.DatetimeIndex, paths: np.ndarray) -> pd.DataFrame:
    """Lay a (num_sim, steps) path matrix out as a table keyed by date."""
    if paths.ndim != 2 or paths.shape[1] != len(dates):
        raise InvalidParameter(
            f"Path matrix {paths.shape} does not match a date axis of {len(dates)}"
        )
    columns = {f"close_{i + 1}": paths[i] for i in range(paths.shape[0])}
    return pd.concat(
        [pd.DataFrame({"date": np.asarray(dates)}), pd.DataFrame(columns)],
        axis=1,
    )


def path_columns(ensemble: pd.DataFrame) -> list[str]:
    """Names of the per-path price columns, in path order."""
    cols = [c for c in ensemble.columns if PATH_COLUMN.match(str(c))]
    if not cols:
        raise InvalidParameter("Ensemble has no close_<n> path columns")
    return cols


def mean_trajectory(ensemble: pd.DataFrame) -> pd.DataFrame:
    """Per-date arithmetic mean across all paths.

    Returns a ``date``/``close_avg`` table aligned to the ensemble axis.
    Backtest ensembles keep their ``close_actual`` column alongside.
    """
    values = ensemble[path_columns(ensemble)].to_numpy(dtype=float)
    result = pd.DataFrame({
        "date": ensemble["date"].to_numpy(),
        "close_avg": values.mean(axis=1),
    })
    if "close_actual" in ensemble.columns:
        result["close_actual"] = ensemble["close_actual"].to_numpy()
    return result


def terminal_prices(ensemble: pd.DataFrame) -> np.ndarray:
    """Final price of every path as a flat array."""
    return ensemble[path_columns(ensemble)].iloc[-1].to_numpy(dtype=float)


def summarize_terminal(terminal: np.ndarray, base_price: float) -> TerminalSummary:
    """Percentile and change statistics of a terminal price distribution.

    A zero base price is not guarded: the percent fields come out as
    inf or nan.
    """
    terminal = np.asarray(terminal, dtype=float)
    if terminal.size == 0:
        raise InvalidParameter("Cannot summarise an empty terminal distribution")

    base = np.float64(base_price)
    predicted = np.mean(terminal)
    p5, p25, p50, p75, p95 = np.percentile(terminal, [5, 25, 50, 75, 95])
    with np.errstate(divide="ignore", invalid="ignore"):
        change_pct = (predicted - base) / base * 100
        var_pct = (p5 / base - 1) * 100
    return TerminalSummary(
        p5=float(p5),
        p25=float(p25),
        p50=float(p50),
        p75=float(p75),
        p95=float(p95),
        predicted_price=float(predicted),
        predicted_change_pct=round(float(change_pct), 4),
        var_5pct_pct=round(float(var_pct), 4),
        upside_prob=round(float(np.mean(terminal > base)), 4),
    )


def histogram(
    terminal: np.ndarray, bins: int = DEFAULT_HISTOGRAM_BINS
) -> tuple[np.ndarray, np.ndarray]:
    """Counts and bin edges for plotting the terminal distribution."""
    return np.histogram(np.asarray(terminal, dtype=float), bins=bins)
