"""Return statistics over a historical closing-price window.

Pure computation functions. No I/O - operates on price tables passed as
arguments.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from montecast.analysis.errors import InsufficientHistory, InvalidParameter
from montecast.analysis.sim_models import ReturnKind

logger = logging.getLogger(__name__)

MIN_DURATION = 2  # sample std needs at least two changes


@dataclass(frozen=True, eq=False)
class ReturnStats:
    """Mean/std of period-over-period changes over one window."""

    mean: float
    std: float
    kind: ReturnKind
    window: pd.DataFrame  # date, close (duration + 1 rows)
    changes: pd.Series  # per-step change indexed by date, first date dropped

    @property
    def last_date(self) -> pd.Timestamp:
        return self.window["date"].iloc[-1]

    @property
    def last_close(self) -> float:
        return float(self.window["close"].iloc[-1])

    @property
    def duration(self) -> int:
        return len(self.changes)


def to_price_frame(prices: pd.DataFrame | pd.Series) -> pd.DataFrame:
    """Normalise a price table to ``date``/``close`` columns, oldest first.

    Accepts a DataFrame with (case-insensitive) ``date`` and ``close``
    columns, or a Series of closes indexed by date. Always returns a copy.
    """
    if isinstance(prices, pd.Series):
        df = pd.DataFrame({"date": prices.index, "close": prices.to_numpy()})
    elif isinstance(prices, pd.DataFrame):
        df = prices.rename(columns=lambda c: str(c).lower())
    else:
        raise InvalidParameter(f"Expected DataFrame or Series, got {type(prices).__name__}")

    missing = {"date", "close"} - set(df.columns)
    if missing:
        raise InvalidParameter(f"Price table is missing columns: {sorted(missing)}")

    df = df[["date", "close"]].copy()
    df["date"] = pd.to_datetime(df["date"])
    df["close"] = df["close"].astype(float)
    return df.reset_index(drop=True)


def window_stats(window: pd.DataFrame, kind: ReturnKind | str) -> ReturnStats:
    """Compute change series and sample mean/std for an already-sliced window."""
    kind = ReturnKind(kind)
    closes = window["close"].to_numpy(dtype=float)

    if kind is ReturnKind.PERCENT:
        change = (closes[1:] - closes[:-1]) / closes[:-1] * 100
    else:
        change = np.log(closes[1:] / closes[:-1])

    changes = pd.Series(change, index=pd.DatetimeIndex(window["date"].iloc[1:], name="date"),
                        name=f"{kind.value}_change")

    mean = float(np.mean(change))
    std = float(np.std(change, ddof=1))

    logger.debug(
        "%s returns over %d steps: mean=%.6f std=%.6f",
        kind.value, len(change), mean, std,
    )
    return ReturnStats(
        mean=mean,
        std=std,
        kind=kind,
        window=window.reset_index(drop=True),
        changes=changes,
    )


def estimate_returns(
    prices: pd.DataFrame | pd.Series,
    duration: int,
    kind: ReturnKind | str = ReturnKind.PERCENT,
) -> ReturnStats:
    """Estimate drift/volatility from the most recent ``duration`` changes.

    Args:
        prices: Date-sorted table with ``date`` and ``close`` columns.
        duration: Number of changes to use. The window holds the last
            ``duration + 1`` closes.
        kind: ``percent`` for the additive model, ``log`` for GBM.

    Returns:
        ReturnStats for the window.

    Raises:
        InsufficientHistory: if ``duration >= rows - 1``.
        InvalidParameter: if ``duration`` is below two.
    """
    if duration < MIN_DURATION:
        raise InvalidParameter(f"duration must be >= {MIN_DURATION}, got {duration}")

    df = to_price_frame(prices)
    rows = len(df)
    if duration >= rows - 1:
        raise InsufficientHistory(
            f"duration={duration} needs more than {duration + 1} rows, have {rows}"
        )

    return window_stats(df.iloc[rows - duration - 1:], kind)
