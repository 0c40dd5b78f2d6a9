"""Local CSV price loader used by the CLI.

Stands in for the market-data provider: reads a daily price export and
hands the core a cleaned, date-sorted ``date``/``close`` table.
"""

import logging

import pandas as pd

from montecast.analysis.returns import to_price_frame

logger = logging.getLogger(__name__)


def load_price_csv(path: str) -> pd.DataFrame:
    """Read a CSV with ``date`` (or ``timestamp``) and ``close`` columns."""
    df = pd.read_csv(path)
    df = df.rename(columns=lambda c: str(c).strip().lower())
    if "date" not in df.columns and "timestamp" in df.columns:
        df = df.rename(columns={"timestamp": "date"})

    df = to_price_frame(df)
    df = df.dropna(subset=["close"]).sort_values("date").drop_duplicates("date", keep="last")
    df = df.reset_index(drop=True)

    logger.info(
        "Loaded %d closes from %s (%s .. %s)",
        len(df), path,
        df["date"].iloc[0].date() if len(df) else None,
        df["date"].iloc[-1].date() if len(df) else None,
    )
    return df
