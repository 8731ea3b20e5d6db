"""Shared I/O utilities: JSONL, provenance, results directory."""

from __future__ import annotations

import json
import subprocess
import sys
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path


def git_commit_short() -> str:
    """Return short git commit hash, or 'unknown' on failure."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


def provenance_dict(*, include_env: bool = False) -> dict:
    """Build standard provenance metadata for output records."""
    p: dict = {
        "git_commit": git_commit_short(),
        "timestamp": datetime.now(tz=UTC).isoformat(),
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}",
    }
    if include_env:
        from bottom_tournament import config as cfg

        p["environment"] = {
            "symbol": cfg.SYMBOL,
            "horizons": list(cfg.HORIZONS),
            "sanity_logloss_factor": cfg.SANITY_LOGLOSS_FACTOR,
            "sanity_extreme_rate_max": cfg.SANITY_EXTREME_RATE_MAX,
            "degenerate_fraction": cfg.DEGENERATE_FRACTION,
            "percentile_min": cfg.PERCENTILE_MIN,
            "window_size": cfg.WINDOW_SIZE,
            "regret_max": cfg.REGRET_MAX,
            "variance_factor": cfg.VARIANCE_FACTOR,
            "composite_weights": list(cfg.COMPOSITE_WEIGHTS),
            "rounds_per_phase": list(cfg.ROUNDS_PER_PHASE),
        }
    return p


def results_dir() -> Path:
    """Resolve results/tournament/ directory relative to repo root.

    Walks up from this file to find pyproject.toml, then returns
    <repo_root>/results/tournament/. Creates the directory if it doesn't exist.
    """
    current = Path(__file__).resolve().parent
    while current != current.parent:
        if (current / "pyproject.toml").exists():
            d = current / "results" / "tournament"
            d.mkdir(parents=True, exist_ok=True)
            return d
        current = current.parent
    msg = "Cannot find repo root (no pyproject.toml found)"
    raise RuntimeError(msg)


def load_jsonl(path: Path) -> list[dict]:
    """Load NDJSON file into list of dicts. Blank lines are skipped."""
    records = []
    with open(path) as f:
        for line in f:
            if line.strip():
                records.append(json.loads(line))
    return records


def write_jsonl(path: Path, records: Iterable[dict]) -> int:
    """Write dicts as NDJSON. Returns the number of records written."""
    n = 0
    with open(path, "w") as f:
        for r in records:
            f.write(json.dumps(r) + "\n")
            n += 1
    return n
