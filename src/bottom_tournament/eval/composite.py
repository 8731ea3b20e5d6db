"""Phase 3 composite ranking per horizon.

composite = 0.40 * norm(percentile)
          + 0.30 * norm(1 / (best_window + eps))
          + 0.20 * norm(1 / (variance + eps))
          + 0.10 * norm(1 / (mean_time_to_pivot_ratio + eps))

norm() is min-max scaling across the horizon's cohort; a constant component
contributes 0.5. The score is floored at COMPOSITE_FLOOR and reported to
6 places, never below MIN_COMPOSITE_FLOOR, so it stays in (0, 1]. The full
ranked list is returned; top-N is a reporting concern.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np

from bottom_tournament.context import MIN_COMPOSITE_FLOOR, TournamentConfig
from bottom_tournament.eval.ranking import compute_percentile_ranks
from bottom_tournament.eval.stability import cohort_stability
from bottom_tournament.eval.timing import compute_timing
from bottom_tournament.horizons import Horizon
from bottom_tournament.state import CandidateState


@dataclass(frozen=True)
class CompositeInputs:
    candidate_id: str
    percentile: float
    best_window: float
    variance: float
    mean_time_to_pivot_ratio: float


@dataclass(frozen=True)
class RankedCandidate:
    candidate_id: str
    horizon: Horizon
    rank: int
    composite: float
    percentile: float
    best_window: float
    variance: float
    mean_time_to_pivot_ratio: float


def normalize_array(arr: np.ndarray) -> np.ndarray:
    """Min-max normalize to [0, 1]. Returns 0.5 everywhere if constant."""
    if len(arr) == 0:
        return arr.astype(float)
    mn, mx = arr.min(), arr.max()
    if mx - mn < 1e-12:
        return np.full(len(arr), 0.5)
    return (arr - mn) / (mx - mn)


def composite_scores(
    rows: Sequence[CompositeInputs],
    weights: Sequence[float],
    epsilon: float,
    floor: float,
) -> np.ndarray:
    if not rows:
        return np.array([], dtype=float)
    percentile = np.array([r.percentile for r in rows], dtype=float)
    best = np.array([1.0 / (r.best_window + epsilon) for r in rows])
    stability = np.array([1.0 / (r.variance + epsilon) for r in rows])
    timing = np.array([1.0 / (r.mean_time_to_pivot_ratio + epsilon) for r in rows])

    w_pct, w_best, w_stab, w_time = weights
    scores = (
        w_pct * normalize_array(percentile)
        + w_best * normalize_array(best)
        + w_stab * normalize_array(stability)
        + w_time * normalize_array(timing)
    )
    return np.clip(scores, floor, 1.0)


def rank_horizon(
    horizon: Horizon,
    rows: Sequence[CompositeInputs],
    weights: Sequence[float],
    epsilon: float,
    floor: float,
) -> list[RankedCandidate]:
    """Full ranking, composite descending, ties broken by candidate id."""
    scores = composite_scores(rows, weights, epsilon, floor)
    order = sorted(range(len(rows)), key=lambda i: (-round(float(scores[i]), 12), rows[i].candidate_id))
    ranked = []
    for rank, i in enumerate(order, 1):
        r = rows[i]
        ranked.append(RankedCandidate(
            candidate_id=r.candidate_id,
            horizon=horizon,
            rank=rank,
            composite=max(round(float(scores[i]), 6), MIN_COMPOSITE_FLOOR),
            percentile=r.percentile,
            best_window=r.best_window,
            variance=r.variance,
            mean_time_to_pivot_ratio=r.mean_time_to_pivot_ratio,
        ))
    return ranked


def compute_rankings(
    states: Iterable[CandidateState],
    cfg: TournamentConfig,
) -> dict[Horizon, list[RankedCandidate]]:
    """Per-horizon leaderboards over still-qualified (candidate, horizon) pairs."""
    states = list(states)
    by_id = {s.candidate_id: s for s in states}
    pct = compute_percentile_ranks(states, cfg.horizons)

    out: dict[Horizon, list[RankedCandidate]] = {}
    for h in cfg.horizons:
        stab = cohort_stability(states, h, cfg.window_size)
        rows = []
        for cid in sorted(stab):
            timing = compute_timing(by_id[cid].round_scores, h)
            rows.append(CompositeInputs(
                candidate_id=cid,
                percentile=pct[h][cid],
                best_window=stab[cid].best_window,
                variance=stab[cid].variance,
                mean_time_to_pivot_ratio=timing.mean_time_to_detection_ratio,
            ))
        out[h] = rank_horizon(h, rows, cfg.composite_weights, cfg.composite_epsilon, cfg.composite_floor)
    return out
