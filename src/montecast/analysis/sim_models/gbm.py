"""Geometric Brownian Motion on one-day log increments."""

import numpy as np


def draw(rng: np.random.Generator, mean: float, std: float, shape: tuple[int, int]) -> np.ndarray:
    """Draw standard normal shocks; drift and diffusion are applied in ``grow``."""
    return rng.standard_normal(shape)


def grow(
    start_price: float,
    shocks: np.ndarray,
    mean: float,
    std: float,
    final_only: bool = False,
) -> np.ndarray:
    """Apply price[t] = price[t-1] * exp(mean + std * z) along each path.

    Args:
        start_price: Last observed close.
        shocks: (paths, steps) standard normal draws.
        mean: Daily log-return drift.
        std: Daily log-return volatility.
        final_only: Return only terminal prices.

    Returns:
        (paths, steps + 1) price matrix, or (paths,) terminal prices.
    """
    log_increments = mean + std * shocks
    if final_only:
        return start_price * np.exp(np.sum(log_increments, axis=1))

    paths = np.empty((shocks.shape[0], shocks.shape[1] + 1))
    paths[:, 0] = start_price
    paths[:, 1:] = start_price * np.exp(np.cumsum(log_increments, axis=1))
    return paths
