"""Round scorer: proper scoring rules for one round of per-horizon predictions.

log_loss = -ln(p) if label else -ln(1-p), with p clamped away from 0/1.
brier    = (p - label)^2.
An extreme error is a confident call (p > 0.9 or p < 0.1) on the wrong side.
"""

from __future__ import annotations

import math
from collections.abc import Mapping

from bottom_tournament.config import EXTREME_HIGH, EXTREME_LOW, PROB_CLAMP
from bottom_tournament.errors import InvalidPredictionError
from bottom_tournament.horizons import Horizon
from bottom_tournament.state import RoundScore


def validate_probability(p, *, horizon: Horizon | None = None) -> float:
    """Return p as float or raise InvalidPredictionError (NaN, non-numeric, outside [0, 1])."""
    where = f" for {horizon.value}" if horizon is not None else ""
    if isinstance(p, bool):
        msg = f"Probability{where} must be numeric, got bool"
        raise InvalidPredictionError(msg)
    try:
        f = float(p)
    except (TypeError, ValueError):
        msg = f"Probability{where} must be numeric, got {p!r}"
        raise InvalidPredictionError(msg) from None
    if math.isnan(f) or not 0.0 <= f <= 1.0:
        msg = f"Probability{where} must be in [0, 1], got {p!r}"
        raise InvalidPredictionError(msg)
    return f


def log_loss(p: float, label: bool, clamp: float = PROB_CLAMP) -> float:
    """Binary log loss with p clamped to [clamp, 1 - clamp]."""
    pc = min(max(p, clamp), 1.0 - clamp)
    return -math.log(pc) if label else -math.log(1.0 - pc)


def brier_score(p: float, label: bool) -> float:
    return (p - (1.0 if label else 0.0)) ** 2


def is_extreme_error(
    p: float,
    label: bool,
    high: float = EXTREME_HIGH,
    low: float = EXTREME_LOW,
) -> bool:
    return (p > high and not label) or (p < low and label)


def score_round(
    predictions: Mapping[Horizon, float],
    labels: Mapping[Horizon, bool],
    horizons: tuple[Horizon, ...],
    *,
    round_number: int = 0,
    time_to_pivot_ratio: Mapping[Horizon, float | None] | None = None,
    clamp: float = PROB_CLAMP,
    extreme_high: float = EXTREME_HIGH,
    extreme_low: float = EXTREME_LOW,
) -> RoundScore:
    """Score one round across ``horizons``.

    Every horizon must have a valid prediction and a boolean label; anything
    else raises InvalidPredictionError before any score is produced.
    """
    ratios = time_to_pivot_ratio or {}
    preds: dict[Horizon, float] = {}
    labs: dict[Horizon, bool] = {}
    for h in horizons:
        if h not in predictions:
            msg = f"Missing prediction for horizon {h.value}"
            raise InvalidPredictionError(msg)
        if h not in labels or not isinstance(labels[h], bool):
            msg = f"Missing or non-boolean label for horizon {h.value}"
            raise InvalidPredictionError(msg)
        preds[h] = validate_probability(predictions[h], horizon=h)
        labs[h] = labels[h]

    return RoundScore(
        round_number=round_number,
        log_loss={h: log_loss(preds[h], labs[h], clamp) for h in horizons},
        brier={h: brier_score(preds[h], labs[h]) for h in horizons},
        extreme_error={h: is_extreme_error(preds[h], labs[h], extreme_high, extreme_low) for h in horizons},
        predictions=preds,
        labels=labs,
        time_to_pivot_ratio={h: ratios.get(h) for h in horizons},
    )
