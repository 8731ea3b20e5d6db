"""Tournament evaluation: scoring rules, baselines, phase evaluators, ranking.

Usage::

    from bottom_tournament.eval import score_round, compute_baseline
    from bottom_tournament.eval import evaluate_sanity, evaluate_relative, evaluate_stability
    from bottom_tournament.eval.composite import compute_rankings
    from bottom_tournament.eval.profiles import build_profile
"""

from bottom_tournament.eval.baselines import compute_baseline, compute_baselines
from bottom_tournament.eval.composite import compute_rankings
from bottom_tournament.eval.ranking import evaluate_relative, percentile_ranks
from bottom_tournament.eval.sanity import evaluate_sanity
from bottom_tournament.eval.scoring import brier_score, log_loss, score_round
from bottom_tournament.eval.stability import compute_stability, evaluate_stability
from bottom_tournament.eval.timing import compute_timing

__all__ = [
    "brier_score",
    "compute_baseline",
    "compute_baselines",
    "compute_rankings",
    "compute_stability",
    "compute_timing",
    "evaluate_relative",
    "evaluate_sanity",
    "evaluate_stability",
    "log_loss",
    "percentile_ranks",
    "score_round",
]
