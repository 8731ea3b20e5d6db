"""Candidate quality profiles: calibration and confusion rates over all horizons.

Computed from a candidate's scored rounds, flattened across horizons:
  calibration_slope   least-squares slope of outcome on prediction (1.0 = perfect)
  ece                 10-bin expected calibration error
  tp/fp/fn rates      at the 0.5 decision threshold
  prediction_variance sample variance of predictions, per horizon

Undefined values (too few samples, no positives, constant predictions) are NaN;
profiles are a reporting view, not an input to elimination.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from bottom_tournament.horizons import Horizon
from bottom_tournament.state import CandidateState

ECE_BIN_COUNT = 10


@dataclass(frozen=True)
class QualityProfile:
    candidate_id: str
    n_predictions: int
    mean_log_loss: float
    mean_brier: float
    calibration_slope: float
    expected_calibration_error: float
    tp_rate: float
    fp_rate: float
    fn_rate: float
    prediction_variance: dict[Horizon, float]


def calibration_slope(predictions: Sequence[float], labels: Sequence[bool]) -> float:
    if len(predictions) != len(labels):
        msg = f"Array length mismatch: predictions ({len(predictions)}) vs labels ({len(labels)})"
        raise ValueError(msg)
    if len(predictions) < 2:
        return math.nan
    x = np.asarray(predictions, dtype=float)
    y = np.asarray(labels, dtype=float)
    dx = x - x.mean()
    denom = float((dx ** 2).sum())
    if denom == 0:
        return math.nan
    return float((dx * (y - y.mean())).sum() / denom)


def expected_calibration_error(
    predictions: Sequence[float],
    labels: Sequence[bool],
    n_bins: int = ECE_BIN_COUNT,
) -> float:
    """Weighted mean |avg predicted - observed frequency| over equal-width bins."""
    if len(predictions) != len(labels):
        msg = f"Array length mismatch: predictions ({len(predictions)}) vs labels ({len(labels)})"
        raise ValueError(msg)
    if len(predictions) == 0:
        return math.nan
    p = np.asarray(predictions, dtype=float)
    y = np.asarray(labels, dtype=float)
    # p == 1.0 falls in the last bin
    bins = np.minimum((p * n_bins).astype(int), n_bins - 1)
    ece = 0.0
    for b in range(n_bins):
        mask = bins == b
        count = int(mask.sum())
        if count == 0:
            continue
        ece += (count / len(p)) * abs(float(p[mask].mean()) - float(y[mask].mean()))
    return ece


def confusion_rates(predictions: Sequence[float], labels: Sequence[bool]) -> tuple[float, float, float]:
    """(TPR, FPR, FNR) at threshold 0.5. NaN when the denominator is empty."""
    p = np.asarray(predictions, dtype=float) > 0.5
    y = np.asarray(labels, dtype=bool)
    tp = int((p & y).sum())
    fp = int((p & ~y).sum())
    tn = int((~p & ~y).sum())
    fn = int((~p & y).sum())
    positives = tp + fn
    negatives = fp + tn
    tpr = tp / positives if positives else math.nan
    fpr = fp / negatives if negatives else math.nan
    fnr = fn / positives if positives else math.nan
    return tpr, fpr, fnr


def build_profile(state: CandidateState, horizons: tuple[Horizon, ...]) -> QualityProfile:
    preds: list[float] = []
    labels: list[bool] = []
    losses: list[float] = []
    briers: list[float] = []
    per_horizon: dict[Horizon, list[float]] = {h: [] for h in horizons}
    for r in state.round_scores:
        for h in horizons:
            if h not in r.predictions:
                continue
            preds.append(r.predictions[h])
            labels.append(r.labels[h])
            losses.append(r.log_loss[h])
            briers.append(r.brier[h])
            per_horizon[h].append(r.predictions[h])

    tpr, fpr, fnr = confusion_rates(preds, labels)
    return QualityProfile(
        candidate_id=state.candidate_id,
        n_predictions=len(preds),
        mean_log_loss=float(np.mean(losses)) if losses else math.nan,
        mean_brier=float(np.mean(briers)) if briers else math.nan,
        calibration_slope=calibration_slope(preds, labels),
        expected_calibration_error=expected_calibration_error(preds, labels),
        tp_rate=tpr,
        fp_rate=fpr,
        fn_rate=fnr,
        prediction_variance={
            h: float(np.var(v, ddof=1)) if len(v) >= 2 else math.nan
            for h, v in per_horizon.items()
        },
    )
