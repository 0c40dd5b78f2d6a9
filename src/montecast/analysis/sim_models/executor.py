"""Chunked path generation, sequential or data-parallel.

Paths are split into fixed-size chunks. Each chunk draws from its own
generator seeded by a child of one root SeedSequence, and writes into its
own rows of a buffer allocated up front. Output is identical for every
executor mode and worker count.
"""

import logging
import os
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed

import numpy as np

from montecast.analysis.errors import InvalidParameter
from montecast.analysis.sim_models import SimModel
from montecast.analysis.sim_models import additive, gbm

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000
EXECUTORS = ("sequential", "thread", "process")


def _simulate_chunk(
    model: str,
    start_price: float,
    mean: float,
    std: float,
    num_paths: int,
    days_to_sim: int,
    final_only: bool,
    seed: np.random.SeedSequence,
) -> np.ndarray:
    """Picklable worker: simulate ``num_paths`` paths with a private generator."""
    rng = np.random.default_rng(seed)
    shape = (num_paths, days_to_sim)

    if SimModel(model) is SimModel.GBM:
        shocks = gbm.draw(rng, mean, std, shape)
        return gbm.grow(start_price, shocks, mean, std, final_only=final_only)

    shocks = additive.draw(rng, mean, std, shape)
    return additive.grow(start_price, shocks, final_only=final_only)


def _chunk_bounds(num_sim: int, chunk_size: int) -> list[tuple[int, int]]:
    return [(lo, min(lo + chunk_size, num_sim)) for lo in range(0, num_sim, chunk_size)]


def run_paths(
    model: SimModel | str,
    start_price: float,
    mean: float,
    std: float,
    num_sim: int,
    days_to_sim: int,
    *,
    final_only: bool = False,
    seed: int | None = None,
    executor: str = "sequential",
    max_workers: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> np.ndarray:
    """Generate ``num_sim`` independent price paths.

    Args:
        model: Path model (additive or gbm).
        start_price: Price every path starts from.
        mean: Model drift (percent or log units, matching the model).
        std: Model volatility.
        num_sim: Number of paths, >= 1.
        days_to_sim: Steps per path, >= 0.
        final_only: Keep only the terminal price of each path.
        seed: Root seed; None draws fresh OS entropy.
        executor: "sequential", "thread" or "process".
        max_workers: Worker count for parallel modes (default: CPU count).
        chunk_size: Paths per task.

    Returns:
        (num_sim, days_to_sim + 1) array, or (num_sim,) when ``final_only``.
    """
    model = SimModel(model)
    if num_sim < 1:
        raise InvalidParameter(f"num_sim must be >= 1, got {num_sim}")
    if days_to_sim < 0:
        raise InvalidParameter(f"days_to_sim must be >= 0, got {days_to_sim}")
    if chunk_size < 1:
        raise InvalidParameter(f"chunk_size must be >= 1, got {chunk_size}")
    if max_workers is not None and max_workers < 1:
        raise InvalidParameter(f"max_workers must be >= 1, got {max_workers}")
    if executor not in EXECUTORS:
        raise InvalidParameter(f"Unknown executor {executor!r}, expected one of {EXECUTORS}")

    out = np.empty(num_sim) if final_only else np.empty((num_sim, days_to_sim + 1))

    bounds = _chunk_bounds(num_sim, chunk_size)
    seeds = np.random.SeedSequence(seed).spawn(len(bounds))
    tasks = [
        (model.value, float(start_price), float(mean), float(std), hi - lo, days_to_sim, final_only, s)
        for (lo, hi), s in zip(bounds, seeds)
    ]

    if executor == "sequential" or len(tasks) == 1:
        for (lo, hi), task in zip(bounds, tasks):
            out[lo:hi] = _simulate_chunk(*task)
        return out

    workers = min(max_workers if max_workers is not None else os.cpu_count() or 1, len(tasks))
    pool_cls = ProcessPoolExecutor if executor == "process" else ThreadPoolExecutor

    logger.info(
        "Simulating %d %s paths x %d days in %d chunks with %d %s workers",
        num_sim, model.value, days_to_sim, len(tasks), workers, executor,
    )

    with pool_cls(max_workers=workers) as pool:
        futures = {pool.submit(_simulate_chunk, *task): bound for bound, task in zip(bounds, tasks)}
        for future in as_completed(futures):
            lo, hi = futures[future]
            out[lo:hi] = future.result()

    return out
