"""Phase 2 stability and regret over rolling log-loss windows.

  best_window / worst_window   min / max of the sliding-window mean log loss
  variance                     sample variance (ddof=1) of per-round log loss
  regret                       worst_window / cohort median worst_window

A horizon is lost when regret > REGRET_MAX or variance exceeds
VARIANCE_FACTOR x the cohort median variance.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np

from bottom_tournament.context import TournamentConfig
from bottom_tournament.horizons import Horizon
from bottom_tournament.state import CandidateState, HighRegret, HighVariance, HorizonDisqualification


@dataclass(frozen=True)
class StabilityMetrics:
    best_window: float
    worst_window: float
    variance: float


def rolling_window_means(losses: Sequence[float], window: int) -> np.ndarray:
    """Sliding-window means. A sequence shorter than the window is one window."""
    arr = np.asarray(losses, dtype=float)
    if len(arr) == 0:
        return arr
    if len(arr) < window:
        return np.array([arr.mean()])
    kernel = np.ones(window) / window
    return np.convolve(arr, kernel, mode="valid")


def compute_stability(losses: Sequence[float], window: int) -> StabilityMetrics | None:
    """Stability metrics for one horizon's loss sequence. None with zero samples."""
    windows = rolling_window_means(losses, window)
    if len(windows) == 0:
        return None
    arr = np.asarray(losses, dtype=float)
    variance = float(np.var(arr, ddof=1)) if len(arr) >= 2 else 0.0
    return StabilityMetrics(
        best_window=float(windows.min()),
        worst_window=float(windows.max()),
        variance=variance,
    )


def compute_regret(worst_window: float, median_worst_window: float) -> float:
    """worst / median. A zero median is treated as baseline-equal (1.0)."""
    if median_worst_window <= 0:
        return 1.0
    return worst_window / median_worst_window


def cohort_stability(
    states: Iterable[CandidateState],
    horizon: Horizon,
    window: int,
) -> dict[str, StabilityMetrics]:
    out: dict[str, StabilityMetrics] = {}
    for state in states:
        if not state.is_qualified(horizon):
            continue
        metrics = compute_stability(state.log_losses[horizon], window)
        if metrics is not None:
            out[state.candidate_id] = metrics
    return out


def evaluate_stability(
    states: Iterable[CandidateState],
    cfg: TournamentConfig,
) -> list[HorizonDisqualification]:
    """Phase 2 deltas. Regret is checked before variance; one delta per horizon."""
    states = list(states)
    deltas: list[HorizonDisqualification] = []
    for h in cfg.horizons:
        cohort = cohort_stability(states, h, cfg.window_size)
        if not cohort:
            continue
        median_worst = float(np.median([m.worst_window for m in cohort.values()]))
        median_var = float(np.median([m.variance for m in cohort.values()]))

        for cid in sorted(cohort):
            m = cohort[cid]
            regret = compute_regret(m.worst_window, median_worst)
            if regret > cfg.regret_max:
                deltas.append(HorizonDisqualification(cid, h, HighRegret(regret, cfg.regret_max)))
            elif median_var > 0 and m.variance > cfg.variance_factor * median_var:
                deltas.append(
                    HorizonDisqualification(cid, h, HighVariance(m.variance, median_var, cfg.variance_factor))
                )
    return deltas
