"""Per-horizon leaderboard frames for reporting.

Every candidate with data appears, eliminated or not: elimination is a
tournament mechanism and does not hide historical performance. Ranked
columns (rank, composite) are null for pairs outside the Phase 3 cohort.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import numpy as np
import polars as pl

from bottom_tournament.eval.composite import RankedCandidate
from bottom_tournament.horizons import Horizon
from bottom_tournament.state import CandidateState

LEADERBOARD_SCHEMA = {
    "horizon": pl.Utf8,
    "candidate_id": pl.Utf8,
    "rounds": pl.Int64,
    "mean_log_loss": pl.Float64,
    "mean_brier": pl.Float64,
    "qualified": pl.Boolean,
    "eliminated": pl.Boolean,
    "rank": pl.Int64,
    "composite": pl.Float64,
    "percentile": pl.Float64,
}


def build_leaderboard(
    states: Iterable[CandidateState],
    rankings: Mapping[Horizon, list[RankedCandidate]],
    horizons: tuple[Horizon, ...],
) -> pl.DataFrame:
    """Long-format leaderboard, sorted by horizon then rank (unranked last) then mean log loss."""
    rows = []
    for state in states:
        for h in horizons:
            losses = state.log_losses[h]
            if not losses:
                continue
            briers = [r.brier[h] for r in state.round_scores if h in r.brier]
            ranked = next((r for r in rankings.get(h, []) if r.candidate_id == state.candidate_id), None)
            rows.append({
                "horizon": h.value,
                "candidate_id": state.candidate_id,
                "rounds": len(losses),
                "mean_log_loss": float(np.mean(losses)),
                "mean_brier": float(np.mean(briers)) if briers else None,
                "qualified": state.is_qualified(h),
                "eliminated": state.eliminated,
                "rank": ranked.rank if ranked else None,
                "composite": ranked.composite if ranked else None,
                "percentile": ranked.percentile if ranked else None,
            })

    df = pl.DataFrame(rows, schema=LEADERBOARD_SCHEMA)
    order = {h.value: i for i, h in enumerate(horizons)}
    return (
        df.with_columns(pl.col("horizon").replace_strict(order, return_dtype=pl.Int64).alias("_h"))
        .sort(["_h", "rank", "mean_log_loss", "candidate_id"], nulls_last=True)
        .drop("_h")
    )


def count_qualified(board: pl.DataFrame, horizon: Horizon) -> int:
    return board.filter((pl.col("horizon") == horizon.value) & pl.col("qualified")).height


def top_n(board: pl.DataFrame, horizon: Horizon, n: int) -> pl.DataFrame:
    """First n ranked rows for one horizon."""
    return (
        board.filter((pl.col("horizon") == horizon.value) & pl.col("rank").is_not_null())
        .sort("rank")
        .head(n)
    )
