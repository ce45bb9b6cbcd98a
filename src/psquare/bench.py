"""Simple benchmarking harness for the P² estimator.

Measures throughput (observations/sec) and memory while folding synthetic
Gaussian samples through ``observe``. Keeps dependencies minimal; for deeper
profiling integrate with py-spy or scalene externally.
"""
from __future__ import annotations

import random
import time
import tracemalloc
from typing import Iterable, List

from .quantiles import P2State, estimates, initialize, observe


def synthetic_values(n: int, seed: int = 0) -> List[float]:
    rng = random.Random(seed)
    return [rng.gauss(100.0, 15.0) for _ in range(n)]


def run(values: Iterable[float], warm: int, quantile: float = 0.5) -> P2State:
    data = list(values)
    state = initialize(data[:5], quantile)
    # Warm phase (move markers off the seed values but ignore timing)
    for x in data[5 : 5 + warm]:
        state = observe(state, x)
    to_measure = data[5 + warm :]

    tracemalloc.start()
    start = time.perf_counter()
    for x in to_measure:
        state = observe(state, x)
    elapsed = time.perf_counter() - start
    current, peak = tracemalloc.get_traced_memory()
    tracemalloc.stop()

    counted = len(to_measure)
    ops = counted / elapsed if elapsed else float("inf")
    print(f"Processed {counted} observations in {elapsed:.3f}s -> {ops:,.0f} obs/sec")
    print(f"Current mem ~{current/1024:.1f} KB; Peak mem ~{peak/1024:.1f} KB")
    print("Estimates: " + "  ".join(f"p{q:g}={v:.4f}" for q, v in estimates(state)))
    return state


__all__ = ["run", "synthetic_values"]
