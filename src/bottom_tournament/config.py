"""Tournament parameters from environment with typed defaults.

All values read from BTN_* environment variables. Override in the shell:
BTN_PERCENTILE_MIN=25 bottom-tournament-replay ...

Mathematical constants (ln 2, baseline epsilon) are NOT externalized -- they
belong in their respective modules.
"""

from __future__ import annotations

import os

# ---- Horizons ----
HORIZONS: tuple[str, ...] = tuple(
    h.strip() for h in os.environ.get("BTN_HORIZONS", "15m,1h,4h,24h").split(",") if h.strip()
)

# ---- Round Scorer ----
PROB_CLAMP: float = float(os.environ.get("BTN_PROB_CLAMP", "1e-6"))
EXTREME_HIGH: float = float(os.environ.get("BTN_EXTREME_HIGH", "0.9"))
EXTREME_LOW: float = float(os.environ.get("BTN_EXTREME_LOW", "0.1"))

# ---- Phase 0: Sanity ----
SANITY_LOGLOSS_FACTOR: float = float(os.environ.get("BTN_SANITY_LOGLOSS_FACTOR", "1.2"))
SANITY_EXTREME_RATE_MAX: float = float(os.environ.get("BTN_SANITY_EXTREME_RATE_MAX", "0.2"))
DEGENERATE_FRACTION: float = float(os.environ.get("BTN_DEGENERATE_FRACTION", "0.9"))
MIN_SANITY_ROUNDS: int = int(os.environ.get("BTN_MIN_SANITY_ROUNDS", "6"))

# ---- Phase 1: Relative Performance ----
# Percentile below which a candidate loses the horizon. 0 = nobody is cut.
PERCENTILE_MIN: float = float(os.environ.get("BTN_PERCENTILE_MIN", "30"))

# ---- Phase 2: Stability & Regret ----
WINDOW_SIZE: int = int(os.environ.get("BTN_WINDOW_SIZE", "5"))
REGRET_MAX: float = float(os.environ.get("BTN_REGRET_MAX", "1.5"))
VARIANCE_FACTOR: float = float(os.environ.get("BTN_VARIANCE_FACTOR", "2.0"))

# ---- Phase 3: Composite Ranking ----
# Order: percentile, best window, stability, timing. Must sum to 1.
COMPOSITE_WEIGHTS: tuple[float, ...] = (
    float(os.environ.get("BTN_WEIGHT_PERCENTILE", "0.40")),
    float(os.environ.get("BTN_WEIGHT_BEST_WINDOW", "0.30")),
    float(os.environ.get("BTN_WEIGHT_STABILITY", "0.20")),
    float(os.environ.get("BTN_WEIGHT_TIMING", "0.10")),
)
COMPOSITE_EPSILON: float = float(os.environ.get("BTN_COMPOSITE_EPSILON", "1e-6"))
COMPOSITE_FLOOR: float = float(os.environ.get("BTN_COMPOSITE_FLOOR", "1e-6"))
RANK_TOP_N: int = int(os.environ.get("BTN_RANK_TOP_N", "8"))

# ---- Phase Schedule ----
# Rounds each active candidate must score before the phase closes.
ROUNDS_PER_PHASE: tuple[int, ...] = (
    int(os.environ.get("BTN_ROUNDS_PHASE0", "6")),
    int(os.environ.get("BTN_ROUNDS_PHASE1", "6")),
    int(os.environ.get("BTN_ROUNDS_PHASE2", "6")),
)

# ---- Ground-Truth Fan-Out ----
FETCH_MAX_WORKERS: int = int(os.environ.get("BTN_FETCH_MAX_WORKERS", "4"))

# ---- Reporting ----
SYMBOL: str = os.environ.get("BTN_SYMBOL", "BTCUSDT")
