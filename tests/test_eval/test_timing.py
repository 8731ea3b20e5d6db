"""Test Track B timing diagnostics."""

import pytest

from bottom_tournament.eval.scoring import score_round
from bottom_tournament.eval.timing import LATE_RATIO, compute_timing, compute_track_b
from bottom_tournament.horizons import Horizon

H = (Horizon.H1,)


def _round(r, p, label, ratio=None):
    return score_round({Horizon.H1: p}, {Horizon.H1: label}, H, round_number=r, time_to_pivot_ratio={Horizon.H1: ratio})


def test_correct_calls_with_ratios():
    rounds = [
        _round(0, 0.8, True, 0.25),
        _round(1, 0.7, True, 0.75),
        _round(2, 0.8, False, 0.1),  # wrong call, ignored
        _round(3, 0.3, True, 0.05),  # missed bottom, ignored
    ]
    m = compute_timing(rounds, Horizon.H1)
    assert m.correct_predictions == 2
    assert m.redundant_confirmations == 1
    assert m.mean_time_to_detection_ratio == pytest.approx(0.5)
    assert m.earliest_correct_prediction_ms == pytest.approx(0.25 * 3_600_000)


def test_no_correct_calls_is_late():
    m = compute_timing([_round(0, 0.2, True)], Horizon.H1)
    assert m.correct_predictions == 0
    assert m.redundant_confirmations == 0
    assert m.earliest_correct_prediction_ms is None
    assert m.mean_time_to_detection_ratio == LATE_RATIO


def test_correct_without_ratio():
    m = compute_timing([_round(0, 0.9, True)], Horizon.H1)
    assert m.correct_predictions == 1
    assert m.mean_time_to_detection_ratio == LATE_RATIO


def test_track_b_per_horizon():
    out = compute_track_b([_round(0, 0.9, True, 0.5)], (Horizon.H1, Horizon.H4))
    assert out[Horizon.H1].correct_predictions == 1
    # horizon never scored
    assert out[Horizon.H4].correct_predictions == 0
