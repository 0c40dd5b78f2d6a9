"""Additive percentage-change model.

Each step draws a percentage change from Normal(mean, std) and applies
price[t] = price[t-1] * (1 + change / 100).
"""

import numpy as np


def draw(rng: np.random.Generator, mean: float, std: float, shape: tuple[int, int]) -> np.ndarray:
    """Draw percentage shocks in the units of percent-form ReturnStats."""
    return rng.normal(mean, std, shape)


def grow(start_price: float, shocks: np.ndarray, final_only: bool = False) -> np.ndarray:
    """Turn a (paths, steps) shock matrix into prices.

    Returns (paths, steps + 1) prices starting at ``start_price``, or only
    the terminal price of each path when ``final_only`` is set.
    """
    factors = 1.0 + shocks / 100.0
    if final_only:
        return start_price * np.prod(factors, axis=1)

    paths = np.empty((shocks.shape[0], shocks.shape[1] + 1))
    paths[:, 0] = start_price
    paths[:, 1:] = start_price * np.cumprod(factors, axis=1)
    return paths
