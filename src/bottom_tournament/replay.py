"""Replay recorded round snapshots through a fresh tournament and report.

Reads results/tournament/round_snapshots.jsonl (RoundSnapshotV1 per line),
feeds rounds in round-number order, advances phases on the configured
schedule, and writes:

    rankings.jsonl         Phase 3 per-horizon leaderboards (RankingRecordV1)
    snapshot.parquet       long per-horizon snapshot table (pandera-validated)
    tournament_report.md   qualification, rankings, Track B, profiles, gates

Usage::

    bottom-tournament-replay
    python -m bottom_tournament.replay
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from itertools import groupby
from pathlib import Path

from bottom_tournament import config
from bottom_tournament.context import RunContext, TournamentConfig
from bottom_tournament.eval._io import load_jsonl, provenance_dict, results_dir, write_jsonl
from bottom_tournament.eval._schemas import RankingRecordV1, RoundSnapshotV1
from bottom_tournament.eval.composite import RankedCandidate
from bottom_tournament.horizons import Horizon
from bottom_tournament.state import TournamentPhase
from bottom_tournament.tournament import Tournament


def replay_snapshots(
    snapshots: list[RoundSnapshotV1],
    context: RunContext | None = None,
) -> Tournament:
    """Rebuild a tournament from snapshots. Candidates enter in first-seen order."""
    candidate_ids = list(dict.fromkeys(s.model_id for s in snapshots))
    t = Tournament(candidate_ids, context=context)

    ordered = sorted(snapshots, key=lambda s: s.round_number)
    for _, group in groupby(ordered, key=lambda s: s.round_number):
        for snap in group:
            if snap.failed:
                t.record_failure(snap.model_id, snap.round_number)
                continue
            outcomes = {
                label: {"label": v, "time_to_pivot_ratio": snap.time_to_pivot_ratio.get(label)}
                for label, v in snap.labels.items()
            }
            t.record_round(snap.model_id, snap.round_number, snap.predictions, outcomes)
        while t.phase != TournamentPhase.RANKING and t.ready_to_advance():
            t.advance()
    return t


def ranking_records(rankings: Mapping[Horizon, list[RankedCandidate]]) -> list[dict]:
    prov = provenance_dict(include_env=True)
    records = []
    for h, ranked in rankings.items():
        for r in ranked:
            records.append(RankingRecordV1(
                horizon=h.value,
                candidate_id=r.candidate_id,
                rank=r.rank,
                composite=r.composite,
                percentile=r.percentile,
                best_window=r.best_window,
                variance=r.variance,
                mean_time_to_pivot_ratio=r.mean_time_to_pivot_ratio,
                provenance=prov,
            ).model_dump())
    return records


def _fmt(v: float | None, fmt: str = ".4f") -> str:
    if v is None or (isinstance(v, float) and math.isnan(v)):
        return "n/a"
    return format(v, fmt)


def build_report(t: Tournament, rankings: Mapping[Horizon, list[RankedCandidate]]) -> str:
    """Generate human-readable markdown tournament report."""
    horizons = t.config.horizons
    lines = [
        "# Bottom-Call Tournament Report",
        "",
        f"Symbol: {t.context.symbol_id} | Phase reached: {int(t.phase)} ({t.phase.name}) | "
        f"Candidates: {len(t.states)} ({len(t.active_candidates())} active)",
        "",
        "## 1. Qualification",
        "",
        "| Candidate | " + " | ".join(h.value for h in horizons) + " |",
        "|-----------|" + "|".join("-" * (len(h.value) + 2) for h in horizons) + "|",
    ]
    qualification = t.qualification()
    for cid, qmap in qualification.items():
        cells = " | ".join(qmap.get(h.value, "n/a") for h in horizons)
        lines.append(f"| {cid} | {cells} |")

    eliminated = [s for s in t.states if s.eliminated]
    if eliminated:
        lines.extend(["", "**Eliminated**:", ""])
        for s in eliminated:
            lines.append(f"- {s.candidate_id} (phase {int(s.eliminated_in_phase)}): {s.elimination_reason}")

    lines.extend(["", "## 2. Rankings", ""])
    if not rankings:
        lines.append("**Tournament did not reach the ranking phase.**")
    for h, ranked in rankings.items():
        lines.extend([
            f"### {h.value}",
            "",
            "| Rank | Candidate | Composite | Percentile | Best Window | Variance | Time Ratio |",
            "|------|-----------|-----------|------------|-------------|----------|------------|",
        ])
        if not ranked:
            lines.append("| - | no qualified candidates | | | | | |")
        for r in ranked[: t.config.rank_top_n]:
            lines.append(
                f"| {r.rank} | {r.candidate_id} | {r.composite:.4f} | {r.percentile:.1f} | "
                f"{r.best_window:.4f} | {r.variance:.4f} | {r.mean_time_to_pivot_ratio:.2f} |"
            )
        lines.append("")

    lines.extend([
        "## 3. Timing (Track B, diagnostic only)",
        "",
        "| Candidate | Horizon | Correct | Mean Time Ratio | Earliest (min) | Redundant |",
        "|-----------|---------|---------|-----------------|----------------|-----------|",
    ])
    for cid, per_h in t.timing().items():
        for h, m in per_h.items():
            earliest = None if m.earliest_correct_prediction_ms is None else m.earliest_correct_prediction_ms / 60_000
            lines.append(
                f"| {cid} | {h.value} | {m.correct_predictions} | {m.mean_time_to_detection_ratio:.2f} | "
                f"{_fmt(earliest, '.1f')} | {m.redundant_confirmations} |"
            )

    lines.extend([
        "",
        "## 4. Quality Profiles",
        "",
        "| Candidate | N | Log Loss | Brier | Cal. Slope | ECE | TPR | FPR |",
        "|-----------|---|----------|-------|------------|-----|-----|-----|",
    ])
    for p in t.profiles():
        lines.append(
            f"| {p.candidate_id} | {p.n_predictions} | {_fmt(p.mean_log_loss)} | {_fmt(p.mean_brier)} | "
            f"{_fmt(p.calibration_slope, '.2f')} | {_fmt(p.expected_calibration_error)} | "
            f"{_fmt(p.tp_rate, '.2f')} | {_fmt(p.fp_rate, '.2f')} |"
        )

    lines.extend([
        "",
        "## 5. Metric Separability",
        "",
        "| Metric | Range | Std | Spearman vs Log Loss | Separates |",
        "|--------|-------|-----|----------------------|-----------|",
    ])
    for s in t.separability():
        sep = "n/a" if s.separates is None else ("yes" if s.separates else "no")
        lines.append(
            f"| {s.metric} | {_fmt(s.range)} | {_fmt(s.std)} | {_fmt(s.rank_correlation, '.3f')} | {sep} |"
        )

    lines.extend([
        "",
        "## 6. Sanity Gates",
        "",
        "| Candidate | Horizon | Log Loss | Extreme Errors | Degenerate |",
        "|-----------|---------|----------|----------------|------------|",
    ])
    for cid, per_h in t.sanity_gates().items():
        for h, gates in per_h.items():
            cells = " | ".join("pass" if gates[g] else "FAIL" for g in ("log_loss", "extreme_errors", "degenerate"))
            lines.append(f"| {cid} | {h.value} | {cells} |")

    lines.append("")
    return "\n".join(lines)


def run_replay(snapshot_path: Path, out_dir: Path, context: RunContext | None = None) -> dict[str, Path]:
    snapshots = [RoundSnapshotV1.model_validate(r) for r in load_jsonl(snapshot_path)]
    print(f"Loaded {len(snapshots)} round snapshots from {snapshot_path}")

    t = replay_snapshots(snapshots, context=context)
    print(f"Phase reached: {int(t.phase)} ({t.phase.name}), {len(t.active_candidates())}/{len(t.states)} active")

    rankings = t.rankings() if t.phase == TournamentPhase.RANKING else {}
    outputs = {
        "rankings": out_dir / "rankings.jsonl",
        "snapshot": out_dir / "snapshot.parquet",
        "report": out_dir / "tournament_report.md",
    }
    n = write_jsonl(outputs["rankings"], ranking_records(rankings))
    t.snapshot_frame().write_parquet(outputs["snapshot"])
    with open(outputs["report"], "w") as f:
        f.write(build_report(t, rankings))

    print(f"Wrote {n} ranking records")
    return outputs


def main():
    print("=== Bottom-Call Tournament Replay ===\n")
    rd = results_dir()
    input_file = rd / "round_snapshots.jsonl"
    if not input_file.exists():
        print(f"ERROR: {input_file} not found")
        return

    context = RunContext(config=TournamentConfig.from_env(), symbol_id=config.SYMBOL)
    outputs = run_replay(input_file, rd, context=context)

    print("\n=== Replay Complete ===")
    print(f"  Rankings: {outputs['rankings']}")
    print(f"  Snapshot: {outputs['snapshot']}")
    print(f"  Report:   {outputs['report']}")


if __name__ == "__main__":
    main()
