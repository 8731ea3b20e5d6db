"""Exception hierarchy for the tournament engine."""

from __future__ import annotations


class TournamentError(Exception):
    """Base class for all tournament engine errors."""


class InvalidPredictionError(TournamentError, ValueError):
    """Malformed prediction or outcome (NaN, out of range, missing horizon).

    Local to one candidate's round: the orchestrator records the round as
    failed and keeps scoring everyone else.
    """


class ConfigurationError(TournamentError):
    """Systemic misconfiguration. Raised once at startup, halts the run."""


class TournamentStateError(TournamentError):
    """State-machine misuse (advancing past the final phase, unknown candidate)."""
