"""Run configuration and context threaded explicitly through the engine.

TournamentConfig snapshots the env-backed constants in config.py so a run
is not affected by later reloads. RunContext bundles it with the run's
identity; nothing in the engine reads module-level mutable state.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime

from bottom_tournament import config as cfg
from bottom_tournament.errors import ConfigurationError
from bottom_tournament.horizons import Horizon, parse_horizons

# composites are reported to 6 decimal places
MIN_COMPOSITE_FLOOR = 1e-6


@dataclass(frozen=True)
class TournamentConfig:
    horizons: tuple[Horizon, ...] = field(default_factory=lambda: parse_horizons(cfg.HORIZONS))
    prob_clamp: float = cfg.PROB_CLAMP
    extreme_high: float = cfg.EXTREME_HIGH
    extreme_low: float = cfg.EXTREME_LOW
    sanity_logloss_factor: float = cfg.SANITY_LOGLOSS_FACTOR
    sanity_extreme_rate_max: float = cfg.SANITY_EXTREME_RATE_MAX
    degenerate_fraction: float = cfg.DEGENERATE_FRACTION
    min_sanity_rounds: int = cfg.MIN_SANITY_ROUNDS
    percentile_min: float = cfg.PERCENTILE_MIN
    window_size: int = cfg.WINDOW_SIZE
    regret_max: float = cfg.REGRET_MAX
    variance_factor: float = cfg.VARIANCE_FACTOR
    composite_weights: tuple[float, ...] = cfg.COMPOSITE_WEIGHTS
    composite_epsilon: float = cfg.COMPOSITE_EPSILON
    composite_floor: float = cfg.COMPOSITE_FLOOR
    rank_top_n: int = cfg.RANK_TOP_N
    rounds_per_phase: tuple[int, ...] = cfg.ROUNDS_PER_PHASE

    @classmethod
    def from_env(cls) -> TournamentConfig:
        """Build from the current values of config.py (after any reload)."""
        return cls(
            horizons=parse_horizons(cfg.HORIZONS),
            prob_clamp=cfg.PROB_CLAMP,
            extreme_high=cfg.EXTREME_HIGH,
            extreme_low=cfg.EXTREME_LOW,
            sanity_logloss_factor=cfg.SANITY_LOGLOSS_FACTOR,
            sanity_extreme_rate_max=cfg.SANITY_EXTREME_RATE_MAX,
            degenerate_fraction=cfg.DEGENERATE_FRACTION,
            min_sanity_rounds=cfg.MIN_SANITY_ROUNDS,
            percentile_min=cfg.PERCENTILE_MIN,
            window_size=cfg.WINDOW_SIZE,
            regret_max=cfg.REGRET_MAX,
            variance_factor=cfg.VARIANCE_FACTOR,
            composite_weights=cfg.COMPOSITE_WEIGHTS,
            composite_epsilon=cfg.COMPOSITE_EPSILON,
            composite_floor=cfg.COMPOSITE_FLOOR,
            rank_top_n=cfg.RANK_TOP_N,
            rounds_per_phase=cfg.ROUNDS_PER_PHASE,
        )

    def validate(self) -> None:
        """Startup check. Raises ConfigurationError on any inconsistency."""
        if not self.horizons:
            msg = "No horizons configured"
            raise ConfigurationError(msg)
        if len(set(self.horizons)) != len(self.horizons):
            msg = f"Duplicate horizons: {[h.value for h in self.horizons]}"
            raise ConfigurationError(msg)
        if not 0.0 < self.prob_clamp < 0.5:
            msg = f"prob_clamp must be in (0, 0.5), got {self.prob_clamp}"
            raise ConfigurationError(msg)
        if not 0.0 <= self.extreme_low < 0.5 < self.extreme_high <= 1.0:
            msg = f"Extreme thresholds must satisfy low < 0.5 < high, got {self.extreme_low}/{self.extreme_high}"
            raise ConfigurationError(msg)
        if self.window_size < 1:
            msg = f"window_size must be >= 1, got {self.window_size}"
            raise ConfigurationError(msg)
        if not 0.0 <= self.percentile_min <= 100.0:
            msg = f"percentile_min must be in [0, 100], got {self.percentile_min}"
            raise ConfigurationError(msg)
        if len(self.composite_weights) != 4:
            msg = f"Expected 4 composite weights, got {len(self.composite_weights)}"
            raise ConfigurationError(msg)
        if any(w < 0 for w in self.composite_weights) or not math.isclose(
            sum(self.composite_weights), 1.0, abs_tol=1e-9
        ):
            msg = f"Composite weights must be non-negative and sum to 1, got {self.composite_weights}"
            raise ConfigurationError(msg)
        if not MIN_COMPOSITE_FLOOR <= self.composite_floor < 1.0:
            msg = f"composite_floor must be in [{MIN_COMPOSITE_FLOOR}, 1), got {self.composite_floor}"
            raise ConfigurationError(msg)
        if self.rank_top_n < 1:
            msg = f"rank_top_n must be >= 1, got {self.rank_top_n}"
            raise ConfigurationError(msg)
        if len(self.rounds_per_phase) != 3 or any(n < 1 for n in self.rounds_per_phase):
            msg = f"rounds_per_phase needs 3 positive counts, got {self.rounds_per_phase}"
            raise ConfigurationError(msg)


@dataclass(frozen=True)
class RunContext:
    """Explicit per-run context: configuration plus run identity."""

    config: TournamentConfig = field(default_factory=TournamentConfig)
    symbol_id: str = cfg.SYMBOL
    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
