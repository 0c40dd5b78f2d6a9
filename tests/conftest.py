"""Pytest configuration and shared fixtures."""

import numpy as np
import pandas as pd
import pytest


def make_prices(closes, start="2024-01-02") -> pd.DataFrame:
    """Business-day price table for a list of closes."""
    dates = pd.bdate_range(start=start, periods=len(closes))
    return pd.DataFrame({"date": dates, "close": [float(c) for c in closes]})


@pytest.fixture
def scenario_closes():
    """Ten-change window used in the worked example."""
    return [100, 102, 101, 105, 104, 108, 107, 110, 109, 112, 115]


@pytest.fixture
def scenario_prices(scenario_closes):
    """Scenario window preceded by one extra close so duration=10 is allowed."""
    return make_prices([99] + scenario_closes)


@pytest.fixture
def realistic_prices():
    """300 business days of lognormal prices."""
    rng = np.random.default_rng(42)
    daily_returns = rng.normal(0.0003, 0.015, 299)
    closes = 150.0 * np.exp(np.concatenate([[0.0], np.cumsum(daily_returns)]))
    return make_prices(closes)


@pytest.fixture
def flat_prices():
    """Constant closes: zero-variance returns."""
    return make_prices([50.0] * 40)
