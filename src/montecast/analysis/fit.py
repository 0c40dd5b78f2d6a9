"""Normality diagnostics for daily log returns."""

import logging
from dataclasses import dataclass

import numpy as np
from scipy import stats as sp_stats

from montecast.analysis.errors import InvalidParameter
from montecast.analysis.returns import ReturnStats
from montecast.analysis.sim_models import ReturnKind

logger = logging.getLogger(__name__)

DEFAULT_ALPHA = 0.05


@dataclass
class FitReport:
    statistic: float
    p_value: float
    alpha: float
    consistent: bool  # p_value >= alpha


def _ks_normal(returns, mean: float | None, std: float | None):
    x = np.asarray(returns, dtype=float)
    if x.size < 2:
        raise InvalidParameter(f"Need at least two returns for a KS test, got {x.size}")

    mu = float(np.mean(x)) if mean is None else float(mean)
    sigma = float(np.std(x, ddof=1)) if std is None else float(std)
    if not sigma > 0:
        raise InvalidParameter(f"Normal reference needs a positive std, got {sigma}")

    return sp_stats.kstest(x, "norm", args=(mu, sigma))


def ks_normal_test(returns, mean: float | None = None, std: float | None = None) -> float:
    """One-sample Kolmogorov-Smirnov test against Normal(mean, std).

    Args:
        returns: Empirical (log) return series.
        mean: Reference mean; defaults to the sample mean.
        std: Reference std; defaults to the sample std (ddof=1).

    Returns:
        p-value of the test.
    """
    return float(_ks_normal(returns, mean, std).pvalue)


def check_normality(stats: ReturnStats, alpha: float = DEFAULT_ALPHA) -> FitReport:
    """Report whether a log-return window looks normal. Diagnostic only."""
    if stats.kind is not ReturnKind.LOG:
        raise InvalidParameter("Normality check expects log-form return statistics")

    result = _ks_normal(stats.changes.to_numpy(), stats.mean, stats.std)
    report = FitReport(
        statistic=float(result.statistic),
        p_value=float(result.pvalue),
        alpha=alpha,
        consistent=bool(result.pvalue >= alpha),
    )
    logger.debug(
        "KS normality over %d returns: D=%.4f p=%.4f",
        stats.duration, report.statistic, report.p_value,
    )
    return report
