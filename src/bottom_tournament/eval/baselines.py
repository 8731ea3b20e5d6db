"""Trivial-strategy log-loss baselines from the accumulated label history.

Baselines are a property of the ground-truth distribution, independent of
any candidate:
  random       = ln 2 (always predict 0.5)
  always_true  = mean log loss of a constant 1 - eps prediction
  always_false = mean log loss of a constant eps prediction
  trivial_best = min(random, always_true, always_false)
  prevalence   = log loss of predicting the observed base rate (entropy)

Recomputed at every phase transition; labels only grow.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import numpy as np

from bottom_tournament.horizons import Horizon

RANDOM_LOG_LOSS = math.log(2)
BASELINE_EPSILON = 1e-15


@dataclass(frozen=True)
class Baseline:
    random: float
    always_true: float
    always_false: float
    trivial_best: float
    prevalence: float
    n_labels: int


def _constant_log_loss(labels: np.ndarray, p: float) -> float:
    losses = np.where(labels, -np.log(p), -np.log1p(-p))
    return float(losses.mean())


def compute_baseline(labels: Sequence[bool]) -> Baseline:
    """Baseline log losses for one horizon. Empty input -> every value is ln 2."""
    if len(labels) == 0:
        return Baseline(
            random=RANDOM_LOG_LOSS,
            always_true=RANDOM_LOG_LOSS,
            always_false=RANDOM_LOG_LOSS,
            trivial_best=RANDOM_LOG_LOSS,
            prevalence=RANDOM_LOG_LOSS,
            n_labels=0,
        )

    arr = np.asarray(labels, dtype=bool)
    always_true = _constant_log_loss(arr, 1.0 - BASELINE_EPSILON)
    always_false = _constant_log_loss(arr, BASELINE_EPSILON)

    p_true = float(arr.mean())
    if p_true in (0.0, 1.0):
        prevalence = 0.0
    else:
        prevalence = -(p_true * math.log(p_true) + (1.0 - p_true) * math.log(1.0 - p_true))

    return Baseline(
        random=RANDOM_LOG_LOSS,
        always_true=always_true,
        always_false=always_false,
        trivial_best=min(RANDOM_LOG_LOSS, always_true, always_false),
        prevalence=prevalence,
        n_labels=len(arr),
    )


def compute_baselines(
    labels_by_horizon: Mapping[Horizon, Sequence[bool]],
    horizons: tuple[Horizon, ...],
) -> dict[Horizon, Baseline]:
    return {h: compute_baseline(labels_by_horizon.get(h, ())) for h in horizons}
