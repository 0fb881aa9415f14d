"""Performance utilities for the Monte Carlo and EVPPI stages.

Numba kernels for the variance reductions evaluated once per
(parameter, scenario) cell, plus a small timer used for run logging.
"""

import time
from dataclasses import dataclass
from typing import Optional

import numpy as np
from numba import njit


@dataclass
class PerformanceMetrics:
    """Performance metrics for operations."""
    duration: float
    iterations: Optional[int] = None

    @property
    def iterations_per_second(self) -> Optional[float]:
        """Calculate iterations per second."""
        if self.iterations and self.duration > 0:
            return self.iterations / self.duration
        return None

    def summary(self, unit: str = "iterations") -> str:
        """Duration with throughput, e.g. ``0.120s (83,333 draws/s)``."""
        rate = self.iterations_per_second
        if rate is None:
            return f"{self.duration:.3f}s"
        return f"{self.duration:.3f}s ({rate:,.0f} {unit}/s)"


class PerformanceTimer:
    """Context manager for performance timing."""

    def __init__(self, name: str = "Operation"):
        self.name = name
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.perf_counter()

    @property
    def duration(self) -> float:
        """Get operation duration in seconds."""
        if self.start_time is not None and self.end_time is not None:
            return self.end_time - self.start_time
        return 0.0

    def metrics(self, iterations: Optional[int] = None) -> PerformanceMetrics:
        return PerformanceMetrics(duration=self.duration, iterations=iterations)


@njit(cache=True)
def _sample_variance(values: np.ndarray) -> float:
    n = values.shape[0]
    if n < 2:
        return 0.0
    mean = 0.0
    for i in range(n):
        mean += values[i]
    mean /= n
    total = 0.0
    for i in range(n):
        d = values[i] - mean
        total += d * d
    return total / (n - 1)


@njit(cache=True)
def _mean_squared_residual(observed: np.ndarray, fitted: np.ndarray) -> float:
    n = observed.shape[0]
    total = 0.0
    for i in range(n):
        d = observed[i] - fitted[i]
        total += d * d
    return total / n


def fast_sample_variance(values: np.ndarray) -> float:
    """Unbiased (ddof=1) sample variance; 0.0 for fewer than two values."""
    return float(_sample_variance(np.ascontiguousarray(values, dtype=np.float64)))


def fast_mean_squared_residual(observed: np.ndarray, fitted: np.ndarray) -> float:
    """Mean of squared differences between observations and fitted values.

    Args:
        observed: Observed outcome values
        fitted: Regression predictions aligned with ``observed``

    Returns:
        Mean squared residual
    """
    observed = np.ascontiguousarray(observed, dtype=np.float64)
    fitted = np.ascontiguousarray(fitted, dtype=np.float64)
    if observed.shape != fitted.shape:
        raise ValueError(f"Shape mismatch: {observed.shape} vs {fitted.shape}")
    if observed.shape[0] == 0:
        raise ValueError("Cannot compute residual variance of an empty array")
    return float(_mean_squared_residual(observed, fitted))
