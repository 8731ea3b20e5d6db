"""Phase 0 sanity filter: per-horizon gates against trivial baselines.

A horizon is lost when ANY gate fails:
  log_loss        mean log loss > trivial_best * SANITY_LOGLOSS_FACTOR
  extreme_errors  confident-and-wrong rate > SANITY_EXTREME_RATE_MAX
  degenerate      >= DEGENERATE_FRACTION of rounds pinned above EXTREME_HIGH
                  (or below EXTREME_LOW) regardless of outcome

A candidate losing every horizon here is eliminated in phase 0; partial
disqualification keeps it alive on the rest.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from bottom_tournament.context import TournamentConfig
from bottom_tournament.eval.baselines import Baseline, compute_baseline
from bottom_tournament.horizons import Horizon
from bottom_tournament.state import CandidateState, HorizonDisqualification, SanityFailure


@dataclass(frozen=True)
class SanityAggregate:
    """Per-horizon Phase 0 aggregate for one candidate."""

    n_rounds: int
    mean_log_loss: float
    mean_brier: float
    extreme_error_rate: float
    high_fraction: float
    low_fraction: float


def aggregate_sanity(
    state: CandidateState,
    horizon: Horizon,
    extreme_high: float,
    extreme_low: float,
) -> SanityAggregate | None:
    """Aggregate one horizon over the candidate's rounds. None with zero samples."""
    rounds = [r for r in state.round_scores if horizon in r.log_loss]
    if not rounds:
        return None
    losses = np.array([r.log_loss[horizon] for r in rounds])
    briers = np.array([r.brier[horizon] for r in rounds])
    errors = np.array([r.extreme_error[horizon] for r in rounds], dtype=bool)
    preds = np.array([r.predictions[horizon] for r in rounds])
    return SanityAggregate(
        n_rounds=len(rounds),
        mean_log_loss=float(losses.mean()),
        mean_brier=float(briers.mean()),
        extreme_error_rate=float(errors.mean()),
        high_fraction=float((preds > extreme_high).mean()),
        low_fraction=float((preds < extreme_low).mean()),
    )


def sanity_failures(
    agg: SanityAggregate,
    baseline: Baseline,
    cfg: TournamentConfig,
) -> list[SanityFailure]:
    """All failing gates for one horizon, in gate order. Empty list = pass."""
    failures: list[SanityFailure] = []
    limit = baseline.trivial_best * cfg.sanity_logloss_factor
    if agg.mean_log_loss > limit:
        failures.append(SanityFailure("log_loss", agg.mean_log_loss, limit))
    if agg.extreme_error_rate > cfg.sanity_extreme_rate_max:
        failures.append(SanityFailure("extreme_errors", agg.extreme_error_rate, cfg.sanity_extreme_rate_max))
    pinned = max(agg.high_fraction, agg.low_fraction)
    if pinned >= cfg.degenerate_fraction:
        failures.append(SanityFailure("degenerate", pinned, cfg.degenerate_fraction))
    return failures


def individual_gate_pass(
    agg: SanityAggregate,
    baseline: Baseline,
    cfg: TournamentConfig,
) -> dict[str, bool]:
    """Check each gate independently."""
    failed = {f.check for f in sanity_failures(agg, baseline, cfg)}
    return {gate: gate not in failed for gate in ("log_loss", "extreme_errors", "degenerate")}


def evaluate_sanity(
    states: Iterable[CandidateState],
    cfg: TournamentConfig,
) -> list[HorizonDisqualification]:
    """Phase 0 deltas for every active candidate's qualified horizons.

    Baselines come from each candidate's own label history. Horizons with
    fewer than ``min_sanity_rounds`` samples are not judged.
    """
    deltas: list[HorizonDisqualification] = []
    for state in states:
        if not state.active:
            continue
        for h in cfg.horizons:
            if h not in state.qualified_horizons:
                continue
            agg = aggregate_sanity(state, h, cfg.extreme_high, cfg.extreme_low)
            if agg is None or agg.n_rounds < cfg.min_sanity_rounds:
                continue
            failures = sanity_failures(agg, compute_baseline(state.labels[h]), cfg)
            if failures:
                deltas.append(HorizonDisqualification(state.candidate_id, h, failures[0]))
    return deltas
