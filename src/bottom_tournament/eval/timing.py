"""Track B timing diagnostics. Informational only, never feeds elimination.

Among rounds where the label was true AND the prediction exceeded 0.5:
  earliest_correct_prediction_ms = min(time_to_pivot_ratio) * horizon duration
  mean_time_to_detection_ratio   = mean(ratios), 1.0 (maximally late) when none
  redundant_confirmations        = max(0, correct - 1)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from bottom_tournament.horizons import Horizon
from bottom_tournament.state import RoundScore

LATE_RATIO = 1.0


@dataclass(frozen=True)
class TimingMetrics:
    earliest_correct_prediction_ms: float | None
    mean_time_to_detection_ratio: float
    redundant_confirmations: int
    correct_predictions: int


def compute_timing(rounds: Sequence[RoundScore], horizon: Horizon) -> TimingMetrics:
    correct = [
        r for r in rounds
        if horizon in r.labels and r.labels[horizon] and r.predictions[horizon] > 0.5
    ]
    ratios = [r.time_to_pivot_ratio.get(horizon) for r in correct]
    ratios = [v for v in ratios if v is not None]

    if ratios:
        earliest = float(min(ratios)) * horizon.duration_ms
        mean_ratio = float(np.mean(ratios))
    else:
        earliest = None
        mean_ratio = LATE_RATIO

    return TimingMetrics(
        earliest_correct_prediction_ms=earliest,
        mean_time_to_detection_ratio=mean_ratio,
        redundant_confirmations=max(0, len(correct) - 1),
        correct_predictions=len(correct),
    )


def compute_track_b(
    rounds: Sequence[RoundScore],
    horizons: tuple[Horizon, ...],
) -> dict[Horizon, TimingMetrics]:
    return {h: compute_timing(rounds, h) for h in horizons}
