"""Forecast horizons: the closed set of windows every per-horizon structure is keyed by."""

from __future__ import annotations

from enum import Enum

from bottom_tournament.errors import ConfigurationError

_MINUTE_MS = 60_000


class Horizon(str, Enum):
    """Forecast window. Value is the short label used in reports and snapshots."""

    M15 = "15m"
    H1 = "1h"
    H4 = "4h"
    H24 = "24h"

    @property
    def duration_ms(self) -> int:
        return HORIZON_DURATION_MS[self]

    def __str__(self) -> str:
        return self.value


HORIZON_DURATION_MS: dict[Horizon, int] = {
    Horizon.M15: 15 * _MINUTE_MS,
    Horizon.H1: 60 * _MINUTE_MS,
    Horizon.H4: 4 * 60 * _MINUTE_MS,
    Horizon.H24: 24 * 60 * _MINUTE_MS,
}

ALL_HORIZONS: tuple[Horizon, ...] = tuple(Horizon)


def parse_horizons(labels: tuple[str, ...] | list[str]) -> tuple[Horizon, ...]:
    """Resolve horizon labels into enum members, preserving enum order.

    Raises ConfigurationError for unknown labels, duplicates, or an empty set.
    """
    if not labels:
        msg = "At least one horizon must be configured"
        raise ConfigurationError(msg)
    seen: set[Horizon] = set()
    for label in labels:
        try:
            h = Horizon(label)
        except ValueError:
            known = ", ".join(h.value for h in Horizon)
            msg = f"Unknown horizon {label!r} (known: {known})"
            raise ConfigurationError(msg) from None
        if h in seen:
            msg = f"Duplicate horizon {label!r}"
            raise ConfigurationError(msg)
        seen.add(h)
    return tuple(h for h in Horizon if h in seen)


def coerce_horizon(key: Horizon | str) -> Horizon:
    """Accept either an enum member or its label."""
    if isinstance(key, Horizon):
        return key
    return Horizon(key)
