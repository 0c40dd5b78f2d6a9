"""Projected trading-day axis for simulated paths."""

from datetime import timedelta

import pandas as pd

from montecast.analysis.errors import InvalidParameter

SATURDAY = 5
SUNDAY = 6


def project_dates(last_date, days_to_sim: int) -> pd.DatetimeIndex:
    """Build the shared date axis of a simulation.

    Starts at ``last_date`` and advances one calendar day per step. A step
    landing on Saturday moves on to Monday (+2), one landing on Sunday moves
    on to Monday (+1), so no projected date falls on a weekend. The first
    entry is ``last_date`` as given, even when that is itself a weekend.

    Args:
        last_date: Last observed date of the input series.
        days_to_sim: Number of future steps.

    Returns:
        DatetimeIndex of length ``days_to_sim + 1`` whose first entry is
        ``last_date``.
    """
    if days_to_sim < 0:
        raise InvalidParameter(f"days_to_sim must be >= 0, got {days_to_sim}")

    current = pd.Timestamp(last_date).normalize()
    dates = [current]
    for _ in range(days_to_sim):
        current += timedelta(days=1)
        if current.weekday() == SATURDAY:
            current += timedelta(days=2)
        elif current.weekday() == SUNDAY:
            current += timedelta(days=1)
        dates.append(current)

    return pd.DatetimeIndex(dates, name="date")
