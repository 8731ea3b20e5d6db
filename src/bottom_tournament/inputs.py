"""Collaborator inputs: bottom calls from predictors, ground truth per horizon.

A predictor answers "has the market bottomed?" per horizon with a
BottomCall; the tournament scores the implied probability of a bottom.
Ground truth is fetched per horizon, optionally in parallel.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime

from pydantic import BaseModel, Field, ValidationError

from bottom_tournament.config import FETCH_MAX_WORKERS
from bottom_tournament.errors import ConfigurationError, InvalidPredictionError
from bottom_tournament.eval.scoring import validate_probability
from bottom_tournament.horizons import Horizon, coerce_horizon

logger = logging.getLogger(__name__)


class BottomCall(BaseModel):
    """One predictor answer for one horizon."""

    has_bottomed: bool
    confidence: float = Field(ge=0.5, le=1.0)
    candles_back: int | None = Field(default=None, ge=0)

    def to_probability(self) -> float:
        """P(bottom) implied by the call."""
        return self.confidence if self.has_bottomed else 1.0 - self.confidence


class GroundTruth(BaseModel):
    """Observed outcome for one (prediction time, horizon).

    time_to_pivot_ratio is how far into the horizon the pivot low landed
    (0 = at prediction time, 1 = at horizon end); None when no pivot.
    """

    label: bool
    time_to_pivot_ratio: float | None = Field(default=None, ge=0.0, le=1.0)
    first_pivot_at: datetime | None = None


GroundTruthFetch = Callable[[str, datetime, Horizon], GroundTruth | Mapping]


def _horizon_key(key: Horizon | str) -> Horizon:
    try:
        return coerce_horizon(key)
    except ValueError:
        msg = f"Unknown horizon {key!r}"
        raise InvalidPredictionError(msg) from None


def to_probability(value: BottomCall | Mapping | float, *, horizon: Horizon | None = None) -> float:
    """Normalize a BottomCall, its dict form, or a bare probability."""
    if isinstance(value, BottomCall):
        return value.to_probability()
    if isinstance(value, Mapping):
        try:
            return BottomCall.model_validate(value).to_probability()
        except ValidationError as e:
            where = f" for {horizon.value}" if horizon is not None else ""
            msg = f"Invalid bottom call{where}: {e.error_count()} validation error(s)"
            raise InvalidPredictionError(msg) from e
    return validate_probability(value, horizon=horizon)


def to_probabilities(calls: Mapping[Horizon | str, BottomCall | Mapping | float]) -> dict[Horizon, float]:
    out: dict[Horizon, float] = {}
    for key, value in calls.items():
        h = _horizon_key(key)
        out[h] = to_probability(value, horizon=h)
    return out


def to_outcomes(
    truths: Mapping[Horizon | str, GroundTruth | Mapping | bool | None],
) -> tuple[dict[Horizon, bool], dict[Horizon, float | None]]:
    """Split ground truth into labels and time-to-pivot ratios.

    Missing (None) entries are left out, so scoring reports the horizon as
    missing rather than guessing a label.
    """
    labels: dict[Horizon, bool] = {}
    ratios: dict[Horizon, float | None] = {}
    for key, value in truths.items():
        h = _horizon_key(key)
        if value is None:
            continue
        if isinstance(value, bool):
            labels[h] = value
            ratios[h] = None
            continue
        try:
            truth = value if isinstance(value, GroundTruth) else GroundTruth.model_validate(value)
        except ValidationError as e:
            msg = f"Invalid ground truth for {h.value}: {e.error_count()} validation error(s)"
            raise InvalidPredictionError(msg) from e
        labels[h] = truth.label
        ratios[h] = truth.time_to_pivot_ratio
    return labels, ratios


def gather_ground_truth(
    fetch: GroundTruthFetch,
    symbol_id: str,
    predicted_at: datetime,
    horizons: Iterable[Horizon],
    max_workers: int = FETCH_MAX_WORKERS,
) -> dict[Horizon, GroundTruth | None]:
    """Fetch ground truth for every horizon concurrently.

    A horizon whose fetch raises or returns malformed data maps to None;
    the round continues with the horizons that resolved.
    """
    if max_workers < 1:
        msg = f"max_workers must be >= 1, got {max_workers}"
        raise ConfigurationError(msg)
    horizons = tuple(horizons)
    results: dict[Horizon, GroundTruth | None] = {h: None for h in horizons}
    if not horizons:
        return results

    with ThreadPoolExecutor(max_workers=min(max_workers, len(horizons))) as executor:
        future_to_horizon = {executor.submit(fetch, symbol_id, predicted_at, h): h for h in horizons}
        for future in as_completed(future_to_horizon):
            h = future_to_horizon[future]
            try:
                raw = future.result()
                results[h] = raw if isinstance(raw, GroundTruth) else GroundTruth.model_validate(raw)
            except ValidationError as e:
                logger.warning("Malformed ground truth for %s %s: %s", symbol_id, h.value, e)
            except Exception as e:  # noqa: BLE001
                logger.warning("Ground truth fetch failed for %s %s: %s", symbol_id, h.value, e)

    missing = [h.value for h, v in results.items() if v is None]
    if missing:
        logger.info("Ground truth missing for %s at %s: %s", symbol_id, predicted_at.isoformat(), missing)
    return results
