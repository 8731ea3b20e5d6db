"""Test snapshot replay and the markdown report."""

import json
from dataclasses import replace

import polars as pl

from bottom_tournament.context import RunContext, TournamentConfig
from bottom_tournament.eval._io import load_jsonl, write_jsonl
from bottom_tournament.horizons import Horizon
from bottom_tournament.replay import build_report, replay_snapshots, run_replay
from bottom_tournament.state import TournamentPhase
from bottom_tournament.tournament import Tournament

HORIZONS = (Horizon.H1, Horizon.H24)
CONTEXT = RunContext(config=TournamentConfig(horizons=HORIZONS, rounds_per_phase=(6, 6, 6)), symbol_id="BTCUSDT")
SKILL = {"sharp": 0.8, "steady": 0.75, "meh": 0.6, "contrarian": 0.3}


def _live_run(n_rounds=18):
    t = Tournament(list(SKILL), context=CONTEXT)
    for r in range(n_rounds):
        label = r % 2 == 0
        outcomes = {h: {"label": label, "time_to_pivot_ratio": 0.2 if label else None} for h in HORIZONS}
        for cid in t.active_candidates():
            p = SKILL[cid] if label else 1 - SKILL[cid]
            t.record_round(cid, r, {h: p for h in HORIZONS}, outcomes)
        while t.phase != TournamentPhase.RANKING and t.ready_to_advance():
            t.advance()
    return t


def _write_snapshots(t, path):
    write_jsonl(path, (s.model_dump() for s in t.snapshots()))


def test_replay_matches_live_run():
    live = _live_run()
    replayed = replay_snapshots(live.snapshots(), context=CONTEXT)
    assert replayed.phase == live.phase == TournamentPhase.RANKING
    assert replayed.qualification() == live.qualification()
    live_rank = {h: [r.candidate_id for r in v] for h, v in live.rankings().items()}
    replay_rank = {h: [r.candidate_id for r in v] for h, v in replayed.rankings().items()}
    assert replay_rank == live_rank


def test_replay_carries_failed_rounds():
    t = Tournament(["a", "b"], context=CONTEXT)
    t.record_round("a", 0, {h: 0.6 for h in HORIZONS}, {h: True for h in HORIZONS})
    t.record_failure("b", 0)
    replayed = replay_snapshots(t.snapshots(), context=CONTEXT)
    assert replayed.state("b").failed_rounds == [0]
    assert len(replayed.state("a").round_scores) == 1


def test_run_replay_writes_outputs(tmp_path):
    _write_snapshots(_live_run(), tmp_path / "round_snapshots.jsonl")
    outputs = run_replay(tmp_path / "round_snapshots.jsonl", tmp_path, context=CONTEXT)

    records = load_jsonl(outputs["rankings"])
    assert {r["horizon"] for r in records} == {"1h", "24h"}
    top = [r for r in records if r["horizon"] == "1h" and r["rank"] == 1]
    assert top[0]["candidate_id"] == "sharp"
    assert "git_commit" in top[0]["provenance"]

    frame = pl.read_parquet(outputs["snapshot"])
    assert set(frame.columns) == {"model_id", "round_number", "horizon", "prediction", "label", "log_loss", "qualified"}
    assert frame.height > 0

    report = outputs["report"].read_text()
    assert report.startswith("# Bottom-Call Tournament Report")
    assert "## 2. Rankings" in report
    assert "contrarian" in report


def test_run_replay_before_ranking(tmp_path):
    """Too few rounds to finish: no rankings, report says so."""
    _write_snapshots(_live_run(n_rounds=4), tmp_path / "round_snapshots.jsonl")
    outputs = run_replay(tmp_path / "round_snapshots.jsonl", tmp_path, context=CONTEXT)
    assert load_jsonl(outputs["rankings"]) == []
    assert "did not reach the ranking phase" in outputs["report"].read_text()


def test_snapshot_lines_are_json(tmp_path):
    path = tmp_path / "s.jsonl"
    _write_snapshots(_live_run(n_rounds=1), path)
    lines = path.read_text().splitlines()
    assert len(lines) == len(SKILL)
    assert json.loads(lines[0])["schema_version"] == 1


def test_build_report_sections():
    t = _live_run()
    report = build_report(t, t.rankings())
    for section in ("## 1. Qualification", "## 3. Timing", "## 4. Quality Profiles", "## 5. Metric Separability"):
        assert section in report
    assert "| 1 | sharp |" in report


def test_report_lists_sanity_gates():
    report = build_report(_live_run(), {})
    assert "## 6. Sanity Gates" in report
    assert "| contrarian | 1h | FAIL | pass | pass |" in report
    assert "| sharp | 24h | pass | pass | pass |" in report


def test_report_respects_rank_top_n():
    t = _live_run()
    t_top1 = replay_snapshots(t.snapshots(), context=replace(CONTEXT, config=replace(CONTEXT.config, rank_top_n=1)))
    report = build_report(t_top1, t_top1.rankings())
    assert "| 1 | sharp |" in report
    assert "| 2 | steady |" not in report
    assert "| 2 | steady |" in build_report(t, t.rankings())
