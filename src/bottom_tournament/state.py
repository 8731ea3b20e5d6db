"""Per-candidate tournament state, round scores, and disqualification reasons.

CandidateState is mutated only by the orchestrator (tournament.py). Phase
evaluators read it and return HorizonDisqualification deltas.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Literal, Union

import numpy as np

from bottom_tournament.horizons import ALL_HORIZONS, Horizon


class TournamentPhase(IntEnum):
    SANITY = 0
    RELATIVE = 1
    STABILITY = 2
    RANKING = 3


# ---- Round Scores ----


@dataclass(frozen=True)
class RoundScore:
    """One completed round for one candidate. Every mapping covers all scored horizons."""

    round_number: int
    log_loss: dict[Horizon, float]
    brier: dict[Horizon, float]
    extreme_error: dict[Horizon, bool]
    predictions: dict[Horizon, float]
    labels: dict[Horizon, bool]
    time_to_pivot_ratio: dict[Horizon, float | None]


# ---- Disqualification Reasons ----


@dataclass(frozen=True)
class SanityFailure:
    check: Literal["log_loss", "extreme_errors", "degenerate"]
    value: float
    threshold: float

    def describe(self) -> str:
        if self.check == "log_loss":
            return f"mean log loss {self.value:.4f} > {self.threshold:.4f} (trivial baseline limit)"
        if self.check == "extreme_errors":
            return f"extreme error rate {self.value:.0%} > {self.threshold:.0%}"
        return f"degenerate predictions ({self.value:.0%} of rounds at a static extreme)"


@dataclass(frozen=True)
class LowPercentile:
    percentile: float
    threshold: float

    def describe(self) -> str:
        return f"percentile {self.percentile:.1f} < {self.threshold:.1f}"


@dataclass(frozen=True)
class HighRegret:
    regret: float
    threshold: float

    def describe(self) -> str:
        return f"regret {self.regret:.2f}x > {self.threshold:.2f}x median worst window"


@dataclass(frozen=True)
class HighVariance:
    variance: float
    median_variance: float
    factor: float

    def describe(self) -> str:
        return (
            f"log loss variance {self.variance:.4f} > {self.factor:.1f}x "
            f"median {self.median_variance:.4f}"
        )


DisqualificationReason = Union[SanityFailure, LowPercentile, HighRegret, HighVariance]


@dataclass(frozen=True)
class Disqualification:
    phase: TournamentPhase
    reason: DisqualificationReason


@dataclass(frozen=True)
class HorizonDisqualification:
    """State delta emitted by a phase evaluator."""

    candidate_id: str
    horizon: Horizon
    reason: DisqualificationReason


# ---- Candidate State ----


def _per_horizon_lists() -> dict[Horizon, list]:
    return {h: [] for h in ALL_HORIZONS}


@dataclass
class CandidateState:
    """Mutable aggregate for one candidate.

    Invariant: ``eliminated`` iff ``qualified_horizons`` is empty. Losing a
    horizon never removes history, only membership in the qualified set.
    """

    candidate_id: str
    qualified_horizons: set[Horizon] = field(default_factory=lambda: set(ALL_HORIZONS))
    disqualified_horizons: dict[Horizon, Disqualification] = field(default_factory=dict)
    eliminated: bool = False
    eliminated_in_phase: TournamentPhase | None = None
    elimination_reason: str | None = None
    round_scores: list[RoundScore] = field(default_factory=list)
    log_losses: dict[Horizon, list[float]] = field(default_factory=_per_horizon_lists)
    labels: dict[Horizon, list[bool]] = field(default_factory=_per_horizon_lists)
    failed_rounds: list[int] = field(default_factory=list)

    @property
    def active(self) -> bool:
        return not self.eliminated

    def is_qualified(self, horizon: Horizon) -> bool:
        return self.active and horizon in self.qualified_horizons

    def n_samples(self, horizon: Horizon) -> int:
        return len(self.log_losses[horizon])

    def mean_log_loss(self, horizon: Horizon) -> float | None:
        """Mean over this candidate's own rounds. None with zero samples."""
        losses = self.log_losses[horizon]
        if not losses:
            return None
        return float(np.mean(losses))

    # ---- mutations (orchestrator only) ----

    def append_round(self, score: RoundScore) -> None:
        self.round_scores.append(score)
        for h, loss in score.log_loss.items():
            self.log_losses[h].append(loss)
            self.labels[h].append(score.labels[h])

    def disqualify(self, horizon: Horizon, phase: TournamentPhase, reason: DisqualificationReason) -> bool:
        """Drop a horizon. Returns False when it was already gone."""
        if horizon not in self.qualified_horizons:
            return False
        self.qualified_horizons.discard(horizon)
        self.disqualified_horizons[horizon] = Disqualification(phase, reason)
        return True

    def eliminate(self, phase: TournamentPhase, reason: str) -> None:
        if self.eliminated:
            return
        self.eliminated = True
        self.eliminated_in_phase = phase
        self.elimination_reason = reason

    def qualification_map(self) -> dict[str, str]:
        """Horizon label -> 'qualified' or 'P<phase>: <reason>' for reports."""
        out: dict[str, str] = {}
        for h in ALL_HORIZONS:
            if h in self.qualified_horizons:
                out[h.value] = "qualified"
            elif h in self.disqualified_horizons:
                d = self.disqualified_horizons[h]
                out[h.value] = f"P{int(d.phase)}: {d.reason.describe()}"
        return out
