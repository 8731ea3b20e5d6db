"""Pandera schema for the long-format snapshot table.

Validates one row per (candidate, round, horizon) before writing to Parquet.
Uses Pandera's Polars-native integration for zero-copy validation.
"""

from __future__ import annotations

import pandera.polars as pa

from bottom_tournament.horizons import Horizon


class SnapshotFrameSchema(pa.DataFrameModel):
    """Schema for snapshot.parquet."""

    model_id: str
    round_number: int = pa.Field(ge=0)
    horizon: str = pa.Field(isin=[h.value for h in Horizon])
    prediction: float = pa.Field(ge=0.0, le=1.0)
    label: bool
    log_loss: float = pa.Field(ge=0.0)
    qualified: bool
