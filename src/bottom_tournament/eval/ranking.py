"""Phase 1 relative performance: per-horizon percentile ranks of mean log loss.

Percentiles are a view over the current cohort, recomputed on every call and
never stored. The cohort for a horizon is every non-eliminated candidate
still qualified on it with at least one scored round.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import numpy as np
from scipy.stats import rankdata

from bottom_tournament.context import TournamentConfig
from bottom_tournament.horizons import Horizon
from bottom_tournament.state import CandidateState, HorizonDisqualification, LowPercentile


def percentile_ranks(values: Mapping[str, float], higher_is_better: bool = False) -> dict[str, float]:
    """Assign percentile rank [0, 100] to each candidate.

    Best -> 100, worst -> 0, via 100 * (n - r) / (n - 1) on the 1-based
    rank r. A single candidate gets 100. Ties share the average rank
    (scipy.stats.rankdata(method='average')).
    """
    if not values:
        return {}
    ids = list(values.keys())
    n = len(ids)
    if n == 1:
        return {ids[0]: 100.0}

    arr = np.array([values[cid] for cid in ids], dtype=float)
    if higher_is_better:
        arr = -arr
    ranks = rankdata(arr, method="average")
    pct = 100.0 * (n - ranks) / (n - 1)
    return {cid: round(float(p), 4) for cid, p in zip(ids, pct, strict=True)}


def cohort_mean_losses(
    states: Iterable[CandidateState],
    horizon: Horizon,
) -> dict[str, float]:
    """Mean log loss per cohort member for one horizon."""
    out: dict[str, float] = {}
    for state in states:
        if not state.is_qualified(horizon):
            continue
        mean = state.mean_log_loss(horizon)
        if mean is not None:
            out[state.candidate_id] = mean
    return out


def compute_percentile_ranks(
    states: Iterable[CandidateState],
    horizons: tuple[Horizon, ...],
) -> dict[Horizon, dict[str, float]]:
    states = list(states)
    return {h: percentile_ranks(cohort_mean_losses(states, h)) for h in horizons}


def below_threshold(pct_ranks: Mapping[str, float], threshold: float) -> set[str]:
    """Candidates whose percentile falls strictly below ``threshold``."""
    return {cid for cid, pct in pct_ranks.items() if pct < threshold}


def evaluate_relative(
    states: Iterable[CandidateState],
    cfg: TournamentConfig,
) -> list[HorizonDisqualification]:
    """Phase 1 deltas: drop horizons where the candidate ranks below ``percentile_min``."""
    all_ranks = compute_percentile_ranks(states, cfg.horizons)
    deltas: list[HorizonDisqualification] = []
    for h in cfg.horizons:
        ranks = all_ranks[h]
        for cid in sorted(below_threshold(ranks, cfg.percentile_min)):
            deltas.append(HorizonDisqualification(cid, h, LowPercentile(ranks[cid], cfg.percentile_min)))
    return deltas
