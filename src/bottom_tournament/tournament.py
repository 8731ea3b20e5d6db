"""Tournament orchestrator: the phase state machine over candidate states.

SANITY (0) -> RELATIVE (1) -> STABILITY (2) -> RANKING (3)

Each of the first three phases accumulates ROUNDS_PER_PHASE[phase] rounds,
then advance() runs that phase's evaluator and applies the returned
per-horizon disqualifications. A candidate with no qualified horizon left is
eliminated. This class is the only place candidate state changes.

Usage::

    t = Tournament(["alpha", "beta"], context=RunContext())
    t.record_round("alpha", 0, {Horizon.H1: 0.7, ...}, {Horizon.H1: True, ...})
    if t.ready_to_advance():
        t.advance()
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

import polars as pl

from bottom_tournament.context import RunContext
from bottom_tournament.errors import ConfigurationError, InvalidPredictionError, TournamentStateError
from bottom_tournament.eval._schemas import RoundSnapshotV1
from bottom_tournament.eval._validation import SnapshotFrameSchema
from bottom_tournament.eval.baselines import compute_baselines
from bottom_tournament.eval.composite import RankedCandidate, compute_rankings
from bottom_tournament.eval.leaderboard import build_leaderboard
from bottom_tournament.eval.profiles import QualityProfile, build_profile
from bottom_tournament.eval.ranking import evaluate_relative
from bottom_tournament.eval.sanity import aggregate_sanity, evaluate_sanity, individual_gate_pass
from bottom_tournament.eval.scoring import score_round
from bottom_tournament.eval.separability import MetricSeparability, analyze_separability
from bottom_tournament.eval.stability import evaluate_stability
from bottom_tournament.eval.timing import TimingMetrics, compute_track_b
from bottom_tournament.horizons import Horizon, coerce_horizon
from bottom_tournament.inputs import BottomCall, GroundTruth, to_outcomes, to_probabilities
from bottom_tournament.state import CandidateState, HorizonDisqualification, TournamentPhase

logger = logging.getLogger(__name__)

_EVALUATORS = {
    TournamentPhase.SANITY: evaluate_sanity,
    TournamentPhase.RELATIVE: evaluate_relative,
    TournamentPhase.STABILITY: evaluate_stability,
}

SNAPSHOT_FRAME_SCHEMA = {
    "model_id": pl.Utf8,
    "round_number": pl.Int64,
    "horizon": pl.Utf8,
    "prediction": pl.Float64,
    "label": pl.Boolean,
    "log_loss": pl.Float64,
    "qualified": pl.Boolean,
}


def _check_round_number(round_number: int) -> None:
    if round_number < 0:
        msg = f"Round numbers start at 0, got {round_number}"
        raise TournamentStateError(msg)


class Tournament:
    def __init__(self, candidate_ids: Iterable[str], context: RunContext | None = None):
        self.context = context or RunContext()
        self.config = self.context.config
        self.config.validate()

        ids = list(candidate_ids)
        if not ids:
            msg = "Tournament needs at least one candidate"
            raise ConfigurationError(msg)
        dupes = sorted({cid for cid in ids if ids.count(cid) > 1})
        if dupes:
            msg = f"Duplicate candidate ids: {dupes}"
            raise ConfigurationError(msg)

        self.phase = TournamentPhase.SANITY
        self._states: dict[str, CandidateState] = {
            cid: CandidateState(cid, qualified_horizons=set(self.config.horizons)) for cid in ids
        }
        self._phase_rounds: dict[str, int] = dict.fromkeys(ids, 0)
        self._snapshots: list[RoundSnapshotV1] = []

    # ---- accessors ----

    @property
    def states(self) -> list[CandidateState]:
        return list(self._states.values())

    def state(self, candidate_id: str) -> CandidateState:
        try:
            return self._states[candidate_id]
        except KeyError:
            msg = f"Unknown candidate {candidate_id!r}"
            raise TournamentStateError(msg) from None

    def active_candidates(self) -> list[str]:
        return [cid for cid, s in self._states.items() if s.active]

    # ---- round intake ----

    def record_round(
        self,
        candidate_id: str,
        round_number: int,
        predictions: Mapping[Horizon | str, BottomCall | Mapping | float],
        outcomes: Mapping[Horizon | str, GroundTruth | Mapping | bool | None],
    ):
        """Score and append one round. Returns the RoundScore, or None when invalid.

        An invalid round (missing horizon, NaN, out-of-range probability,
        malformed ground truth) is logged and kept in ``failed_rounds``; it
        still counts toward the phase schedule. A negative round number raises
        TournamentStateError before any state changes.
        """
        state = self.state(candidate_id)
        _check_round_number(round_number)
        try:
            probs = to_probabilities(predictions)
            labels, ratios = to_outcomes(outcomes)
            score = score_round(
                probs,
                labels,
                self.config.horizons,
                round_number=round_number,
                time_to_pivot_ratio=ratios,
                clamp=self.config.prob_clamp,
                extreme_high=self.config.extreme_high,
                extreme_low=self.config.extreme_low,
            )
        except InvalidPredictionError as e:
            logger.warning("Round %d for %s failed: %s", round_number, candidate_id, e)
            self._mark_failed(state, round_number)
            return None

        snapshot = RoundSnapshotV1(
            model_id=candidate_id,
            round_number=round_number,
            predictions={h.value: p for h, p in score.predictions.items()},
            labels={h.value: v for h, v in score.labels.items()},
            log_loss_by_horizon={h.value: v for h, v in score.log_loss.items()},
            qualified_horizons=[h.value for h in self.config.horizons if h in state.qualified_horizons],
            time_to_pivot_ratio={h.value: v for h, v in score.time_to_pivot_ratio.items()},
        )
        state.append_round(score)
        self._phase_rounds[candidate_id] += 1
        self._snapshots.append(snapshot)
        return score

    def record_failure(self, candidate_id: str, round_number: int) -> None:
        """Record a round the candidate could not produce (timeout, parse error)."""
        state = self.state(candidate_id)
        _check_round_number(round_number)
        logger.warning("Round %d for %s failed upstream", round_number, candidate_id)
        self._mark_failed(state, round_number)

    def _mark_failed(self, state: CandidateState, round_number: int) -> None:
        snapshot = RoundSnapshotV1(
            model_id=state.candidate_id,
            round_number=round_number,
            predictions={},
            labels={},
            log_loss_by_horizon={},
            qualified_horizons=[h.value for h in self.config.horizons if h in state.qualified_horizons],
            failed=True,
        )
        state.failed_rounds.append(round_number)
        self._phase_rounds[state.candidate_id] += 1
        self._snapshots.append(snapshot)

    # ---- phase transitions ----

    def rounds_required(self) -> int | None:
        """Rounds each active candidate needs in the current phase. None in RANKING."""
        if self.phase == TournamentPhase.RANKING:
            return None
        return self.config.rounds_per_phase[int(self.phase)]

    def ready_to_advance(self) -> bool:
        required = self.rounds_required()
        if required is None:
            return False
        active = self.active_candidates()
        return all(self._phase_rounds[cid] >= required for cid in active)

    def advance(self) -> list[HorizonDisqualification]:
        """Run the current phase's evaluator, apply it, and move to the next phase.

        Returns the applied disqualifications. Raises TournamentStateError
        when already in RANKING.
        """
        if self.phase == TournamentPhase.RANKING:
            msg = "Tournament is already in the final ranking phase"
            raise TournamentStateError(msg)

        phase = self.phase
        deltas = _EVALUATORS[phase](self.states, self.config)
        applied = [d for d in deltas if self._states[d.candidate_id].disqualify(d.horizon, phase, d.reason)]

        for state in self._states.values():
            if state.active and not state.qualified_horizons:
                reasons = [
                    f"{h.value}: {state.disqualified_horizons[h].reason.describe()}"
                    for h in self.config.horizons
                    if h in state.disqualified_horizons
                ]
                state.eliminate(phase, "; ".join(reasons))

        self._log_summary(phase, applied)
        self.phase = TournamentPhase(int(phase) + 1)
        self._phase_rounds = dict.fromkeys(self._states, 0)
        return applied

    def _log_summary(self, phase: TournamentPhase, applied: list[HorizonDisqualification]) -> None:
        logger.info(
            "Phase %d (%s) complete: %d horizon disqualification(s), %d/%d candidates active",
            int(phase),
            phase.name,
            len(applied),
            len(self.active_candidates()),
            len(self._states),
        )
        for state in self._states.values():
            if state.eliminated and state.eliminated_in_phase == phase:
                logger.info("  %s eliminated: %s", state.candidate_id, state.elimination_reason)
            else:
                kept = ",".join(h.value for h in self.config.horizons if h in state.qualified_horizons)
                logger.info("  %s qualified on [%s]", state.candidate_id, kept)

    # ---- reporting ----

    def rankings(self) -> dict[Horizon, list[RankedCandidate]]:
        """Phase 3 per-horizon leaderboards. Only available in RANKING."""
        if self.phase != TournamentPhase.RANKING:
            msg = f"Rankings are produced in RANKING, tournament is in {self.phase.name}"
            raise TournamentStateError(msg)
        return compute_rankings(self.states, self.config)

    def timing(self) -> dict[str, dict[Horizon, TimingMetrics]]:
        """Track B diagnostics per candidate. Never affects qualification."""
        return {
            cid: compute_track_b(s.round_scores, self.config.horizons)
            for cid, s in self._states.items()
        }

    def qualification(self) -> dict[str, dict[str, str]]:
        return {cid: s.qualification_map() for cid, s in self._states.items()}

    def sanity_gates(self) -> dict[str, dict[Horizon, dict[str, bool]]]:
        """Per-gate Phase 0 pass map for every candidate and horizon with samples."""
        out: dict[str, dict[Horizon, dict[str, bool]]] = {}
        for cid, s in self._states.items():
            baselines = compute_baselines(s.labels, self.config.horizons)
            gates = {}
            for h in self.config.horizons:
                agg = aggregate_sanity(s, h, self.config.extreme_high, self.config.extreme_low)
                if agg is not None:
                    gates[h] = individual_gate_pass(agg, baselines[h], self.config)
            out[cid] = gates
        return out

    def snapshots(self) -> list[RoundSnapshotV1]:
        return list(self._snapshots)

    def snapshot_frame(self) -> pl.DataFrame:
        """One row per (candidate, round, horizon) over scored rounds, schema-validated."""
        rows = []
        for snap in self._snapshots:
            if snap.failed:
                continue
            for label, p in snap.predictions.items():
                rows.append({
                    "model_id": snap.model_id,
                    "round_number": snap.round_number,
                    "horizon": label,
                    "prediction": p,
                    "label": snap.labels[label],
                    "log_loss": snap.log_loss_by_horizon[label],
                    "qualified": label in snap.qualified_horizons,
                })
        df = pl.DataFrame(rows, schema=SNAPSHOT_FRAME_SCHEMA)
        return SnapshotFrameSchema.validate(df)

    def leaderboard(self) -> pl.DataFrame:
        ranked = self.rankings() if self.phase == TournamentPhase.RANKING else {}
        return build_leaderboard(self.states, ranked, self.config.horizons)

    def profiles(self) -> list[QualityProfile]:
        return [build_profile(s, self.config.horizons) for s in self._states.values() if s.round_scores]

    def separability(self) -> list[MetricSeparability]:
        return analyze_separability(self.profiles())

    def disqualification_for(self, candidate_id: str, horizon: Horizon | str):
        """Disqualification record for one pair, or None while still qualified."""
        return self.state(candidate_id).disqualified_horizons.get(coerce_horizon(horizon))
