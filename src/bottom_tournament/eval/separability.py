"""Metric separability: does a profile metric actually spread candidates apart?

For each metric across the candidate cohort:
  range             max - min
  std               population standard deviation
  rank_correlation  Spearman rho against the mean-log-loss ordering
  separates         range > 0.1 and std > 0.05; None with fewer than 3 candidates
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from scipy.stats import spearmanr

from bottom_tournament.eval.profiles import QualityProfile

MIN_CANDIDATES_FOR_SEPARABILITY = 3
RANGE_MIN = 0.1
STD_MIN = 0.05

PROFILE_METRICS: tuple[str, ...] = (
    "mean_log_loss",
    "mean_brier",
    "expected_calibration_error",
    "tp_rate",
    "fp_rate",
)


@dataclass(frozen=True)
class MetricSeparability:
    metric: str
    range: float
    std: float
    rank_correlation: float
    separates: bool | None


def _finite(values: Sequence[float]) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    return arr[np.isfinite(arr)]


def value_range(values: Sequence[float]) -> float:
    arr = _finite(values)
    if len(arr) == 0:
        return math.nan
    return float(arr.max() - arr.min())


def population_std(values: Sequence[float]) -> float:
    arr = _finite(values)
    if len(arr) < 2:
        return math.nan
    return float(arr.std())


def rank_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Spearman rho over pairs where both values are finite. NaN if undefined."""
    if len(x) != len(y):
        msg = f"Array length mismatch: x ({len(x)}) vs y ({len(y)})"
        raise ValueError(msg)
    xa = np.asarray(x, dtype=float)
    ya = np.asarray(y, dtype=float)
    mask = np.isfinite(xa) & np.isfinite(ya)
    if mask.sum() < 2:
        return math.nan
    xa, ya = xa[mask], ya[mask]
    if np.all(xa == xa[0]) or np.all(ya == ya[0]):
        return math.nan
    rho = spearmanr(xa, ya).statistic
    return float(rho)


def analyze_separability(profiles: Sequence[QualityProfile]) -> list[MetricSeparability]:
    insufficient = len(profiles) < MIN_CANDIDATES_FOR_SEPARABILITY
    reference = [p.mean_log_loss for p in profiles]
    results = []
    for metric in PROFILE_METRICS:
        values = [getattr(p, metric) for p in profiles]
        rng = value_range(values)
        std = population_std(values)
        if insufficient:
            separates = None
        else:
            separates = bool(rng > RANGE_MIN and std > STD_MIN)
        results.append(MetricSeparability(
            metric=metric,
            range=rng,
            std=std,
            rank_correlation=rank_correlation(reference, values),
            separates=separates,
        ))
    return results
