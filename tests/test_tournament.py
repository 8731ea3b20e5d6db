"""Test the tournament state machine end to end."""

import logging
import math

import polars as pl
import pytest

from bottom_tournament.context import RunContext, TournamentConfig
from bottom_tournament.errors import ConfigurationError, TournamentStateError
from bottom_tournament.horizons import ALL_HORIZONS, Horizon
from bottom_tournament.inputs import BottomCall
from bottom_tournament.state import TournamentPhase
from bottom_tournament.tournament import Tournament

HORIZONS = (Horizon.H1, Horizon.H4)
CONFIG = TournamentConfig(horizons=HORIZONS, rounds_per_phase=(6, 6, 6), min_sanity_rounds=6)

# probability assigned to the true outcome every round
SKILL = {"sharp": 0.8, "steady": 0.75, "meh": 0.6, "contrarian": 0.3}


def _tournament(ids=tuple(SKILL), config=CONFIG):
    return Tournament(list(ids), context=RunContext(config=config, symbol_id="BTCUSDT"))


def _play_round(t, r):
    label = r % 2 == 0
    outcomes = {h: {"label": label, "time_to_pivot_ratio": 0.4 if label else None} for h in HORIZONS}
    for cid in t.active_candidates():
        p = SKILL[cid] if label else 1 - SKILL[cid]
        t.record_round(cid, r, {h: p for h in HORIZONS}, outcomes)


def _play_phase(t, start):
    n = t.rounds_required()
    for r in range(start, start + n):
        _play_round(t, r)
    return start + n


def test_construction_rejects_duplicates_and_empty():
    with pytest.raises(ConfigurationError, match="Duplicate"):
        _tournament(["a", "b", "a"])
    with pytest.raises(ConfigurationError):
        _tournament([])


def test_construction_validates_config():
    bad = TournamentConfig(horizons=HORIZONS, composite_weights=(0.5, 0.5, 0.5, 0.5))
    with pytest.raises(ConfigurationError):
        _tournament(config=bad)


def test_unknown_candidate():
    t = _tournament()
    with pytest.raises(TournamentStateError):
        t.record_round("ghost", 0, {h: 0.5 for h in HORIZONS}, {h: True for h in HORIZONS})
    with pytest.raises(TournamentStateError):
        t.record_failure("ghost", 0)


def test_initial_state():
    t = _tournament()
    assert t.phase == TournamentPhase.SANITY
    assert all(s.qualified_horizons == set(HORIZONS) for s in t.states)
    assert not t.ready_to_advance()


def test_full_run():
    t = _tournament()
    r = 0
    history = []

    r = _play_phase(t, r)
    assert t.ready_to_advance()
    applied = t.advance()
    history.append({s.candidate_id: set(s.qualified_horizons) for s in t.states})
    # contrarian is worse than a coin on every horizon
    assert {(d.candidate_id, d.reason.check) for d in applied} == {("contrarian", "log_loss")}
    contrarian = t.state("contrarian")
    assert contrarian.eliminated
    assert contrarian.eliminated_in_phase == TournamentPhase.SANITY
    assert "1h:" in contrarian.elimination_reason and "4h:" in contrarian.elimination_reason
    assert t.phase == TournamentPhase.RELATIVE
    assert not t.ready_to_advance()

    r = _play_phase(t, r)
    t.advance()
    history.append({s.candidate_id: set(s.qualified_horizons) for s in t.states})
    meh = t.state("meh")
    assert meh.eliminated_in_phase == TournamentPhase.RELATIVE
    assert t.active_candidates() == ["sharp", "steady"]

    r = _play_phase(t, r)
    t.advance()
    history.append({s.candidate_id: set(s.qualified_horizons) for s in t.states})
    assert t.phase == TournamentPhase.RANKING
    assert not t.ready_to_advance()

    rankings = t.rankings()
    for h in HORIZONS:
        assert [c.candidate_id for c in rankings[h]] == ["sharp", "steady"]
        assert all(0.0 < c.composite <= 1.0 for c in rankings[h])

    # qualification only shrinks
    for before, after in zip(history, history[1:], strict=False):
        for cid in before:
            assert after[cid] <= before[cid]
    # eliminated iff nothing left
    for s in t.states:
        assert s.eliminated == (not s.qualified_horizons)

    with pytest.raises(TournamentStateError):
        t.advance()


def test_rankings_before_final_phase():
    t = _tournament()
    with pytest.raises(TournamentStateError):
        t.rankings()


def test_failed_round(caplog):
    t = _tournament()
    with caplog.at_level(logging.WARNING, logger="bottom_tournament.tournament"):
        result = t.record_round("sharp", 0, {Horizon.H1: float("nan"), Horizon.H4: 0.5}, {h: True for h in HORIZONS})
    assert result is None
    s = t.state("sharp")
    assert s.failed_rounds == [0]
    assert s.round_scores == []
    assert "Round 0 for sharp failed" in caplog.text
    assert t.snapshots()[-1].failed is True


def test_missing_outcome_fails_round():
    t = _tournament()
    result = t.record_round("sharp", 0, {h: 0.6 for h in HORIZONS}, {Horizon.H1: True, Horizon.H4: None})
    assert result is None
    assert t.state("sharp").failed_rounds == [0]


def test_failures_count_toward_schedule():
    t = _tournament(["a", "b"])
    for r in range(6):
        t.record_round("a", r, {h: 0.5 for h in HORIZONS}, {h: r % 2 == 0 for h in HORIZONS})
        t.record_failure("b", r)
    assert t.ready_to_advance()
    t.advance()
    # b has no samples, so it is not judged and keeps its horizons
    assert t.state("b").active
    assert t.state("b").failed_rounds == list(range(6))


def test_bottom_call_predictions():
    t = _tournament()
    call = BottomCall(has_bottomed=True, confidence=0.7)
    score = t.record_round("sharp", 0, {h: call for h in HORIZONS}, {h: True for h in HORIZONS})
    assert score.predictions[Horizon.H1] == pytest.approx(0.7)


def test_snapshots_and_frame():
    t = _tournament()
    _play_round(t, 0)
    _play_round(t, 1)
    snaps = t.snapshots()
    assert len(snaps) == 2 * len(SKILL)
    first = snaps[0]
    assert first.model_id == "sharp"
    assert first.qualified_horizons == ["1h", "4h"]
    assert first.time_to_pivot_ratio == {"1h": 0.4, "4h": 0.4}

    frame = t.snapshot_frame()
    assert frame.height == 2 * len(SKILL) * len(HORIZONS)
    assert set(frame["horizon"].unique().to_list()) == {"1h", "4h"}
    assert frame.filter(pl.col("round_number") == 1)["label"].to_list() == [False] * len(SKILL) * len(HORIZONS)


def test_empty_snapshot_frame():
    frame = _tournament().snapshot_frame()
    assert frame.height == 0
    assert "prediction" in frame.columns


def test_reporting_views():
    t = _tournament()
    for r in range(6):
        _play_round(t, r)
    t.advance()

    qual = t.qualification()
    assert qual["sharp"] == {"1h": "qualified", "4h": "qualified"}
    assert qual["contrarian"]["1h"].startswith("P0: mean log loss")
    assert t.disqualification_for("contrarian", "4h").phase == TournamentPhase.SANITY
    assert t.disqualification_for("sharp", Horizon.H1) is None

    timing = t.timing()
    assert timing["sharp"][Horizon.H1].correct_predictions == 3
    assert timing["sharp"][Horizon.H1].mean_time_to_detection_ratio == pytest.approx(0.4)
    assert timing["contrarian"][Horizon.H1].correct_predictions == 0

    board = t.leaderboard()
    assert board.height == len(SKILL) * len(HORIZONS)
    assert board["rank"].null_count() == board.height

    profiles = {p.candidate_id: p for p in t.profiles()}
    assert profiles["sharp"].tp_rate == 1.0
    assert len(t.separability()) == 5


def test_phase_summary_logged(caplog):
    t = _tournament()
    for r in range(6):
        _play_round(t, r)
    with caplog.at_level(logging.INFO, logger="bottom_tournament.tournament"):
        t.advance()
    assert "Phase 0 (SANITY) complete" in caplog.text
    assert "contrarian eliminated" in caplog.text


def test_negative_round_number_rejected_before_any_change():
    t = _tournament()
    for r in range(5):
        _play_round(t, r)
    with pytest.raises(TournamentStateError, match="start at 0"):
        t.record_round("sharp", -1, {h: 0.6 for h in HORIZONS}, {h: True for h in HORIZONS})
    with pytest.raises(TournamentStateError):
        t.record_failure("steady", -1)

    assert len(t.state("sharp").round_scores) == 5
    assert t.state("sharp").failed_rounds == []
    assert t.state("steady").failed_rounds == []
    assert len(t.snapshots()) == 5 * len(SKILL)
    # neither call counted toward the schedule
    assert not t.ready_to_advance()


def test_invalid_prediction_does_not_touch_other_candidates():
    t = _tournament()
    outcomes = {h: True for h in HORIZONS}
    t.record_round("sharp", 0, {h: 0.8 for h in HORIZONS}, outcomes)
    assert t.record_round("meh", 0, {h: 1.5 for h in HORIZONS}, outcomes) is None
    t.record_round("steady", 0, {h: 0.75 for h in HORIZONS}, outcomes)

    assert t.state("meh").failed_rounds == [0]
    assert t.state("meh").round_scores == []
    for cid, p in (("sharp", 0.8), ("steady", 0.75)):
        s = t.state(cid)
        assert s.failed_rounds == []
        assert s.round_scores[0].log_loss[Horizon.H1] == pytest.approx(-math.log(p))


def test_all_four_horizons_lost_eliminates_in_sanity():
    config = TournamentConfig(horizons=ALL_HORIZONS, rounds_per_phase=(6, 6, 6), min_sanity_rounds=6)
    t = Tournament(["coin", "wrong"], context=RunContext(config=config))
    wrong_side = 0.5 ** 1.5
    for r in range(6):
        label = r % 2 == 0
        outcomes = {h: label for h in ALL_HORIZONS}
        t.record_round("coin", r, {h: 0.5 for h in ALL_HORIZONS}, outcomes)
        p = wrong_side if label else 1 - wrong_side
        t.record_round("wrong", r, {h: p for h in ALL_HORIZONS}, outcomes)

    applied = t.advance()
    assert {d.horizon for d in applied if d.candidate_id == "wrong"} == set(ALL_HORIZONS)
    s = t.state("wrong")
    assert s.eliminated is True
    assert s.eliminated_in_phase == TournamentPhase.SANITY
    assert s.qualified_horizons == set()
    assert t.active_candidates() == ["coin"]


def test_sanity_gates():
    t = _tournament()
    for r in range(6):
        _play_round(t, r)
    gates = t.sanity_gates()
    assert gates["sharp"][Horizon.H1] == {"log_loss": True, "extreme_errors": True, "degenerate": True}
    # -ln(0.3) = 1.20 against a limit of 1.2 x ln 2 = 0.83
    assert gates["contrarian"][Horizon.H4] == {"log_loss": False, "extreme_errors": True, "degenerate": True}
    assert _tournament().sanity_gates()["sharp"] == {}
