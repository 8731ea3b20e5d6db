"""Pydantic models for round snapshot schema versioning.

Schema version 1: one record per (candidate, completed round), enough to
resume or report without re-running the tournament.
Breaking changes (required fields added/removed/renamed/retyped) bump version.
Adding optional fields = same version (backward compatible).
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class RoundSnapshotV1(BaseModel):
    """Per-round snapshot for one candidate. Horizon keys are labels ("15m", ...)."""

    schema_version: Literal[1] = 1
    model_id: str
    round_number: int = Field(ge=0)
    predictions: dict[str, float]
    labels: dict[str, bool]
    log_loss_by_horizon: dict[str, float]
    qualified_horizons: list[str]
    # Optional (backward compatible)
    time_to_pivot_ratio: dict[str, float | None] = Field(default={})  # noqa: fake-data
    failed: bool = False


class RankingRecordV1(BaseModel):
    """One row of the Phase 3 per-horizon leaderboard."""

    schema_version: Literal[1] = 1
    horizon: str
    candidate_id: str
    rank: int = Field(ge=1)
    composite: float = Field(gt=0, le=1)
    percentile: float = Field(ge=0, le=100)
    best_window: float = Field(ge=0)
    variance: float = Field(ge=0)
    mean_time_to_pivot_ratio: float = Field(ge=0)
    provenance: dict = Field(default={})  # noqa: fake-data
