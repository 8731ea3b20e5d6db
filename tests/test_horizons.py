"""Test the closed horizon set."""

import pytest

from bottom_tournament.errors import ConfigurationError
from bottom_tournament.horizons import ALL_HORIZONS, Horizon, coerce_horizon, parse_horizons


def test_horizon_order_and_labels():
    assert [h.value for h in ALL_HORIZONS] == ["15m", "1h", "4h", "24h"]
    assert str(Horizon.H4) == "4h"


def test_durations():
    assert Horizon.M15.duration_ms == 900_000
    assert Horizon.H1.duration_ms == 3_600_000
    assert Horizon.H24.duration_ms == 86_400_000
    durations = [h.duration_ms for h in ALL_HORIZONS]
    assert durations == sorted(durations)


def test_parse_preserves_enum_order():
    assert parse_horizons(["24h", "15m"]) == (Horizon.M15, Horizon.H24)


@pytest.mark.parametrize("labels", [[], ["1h", "1h"], ["2h"], ["1H"]])
def test_parse_rejects(labels):
    with pytest.raises(ConfigurationError):
        parse_horizons(labels)


def test_coerce():
    assert coerce_horizon("1h") is Horizon.H1
    assert coerce_horizon(Horizon.H4) is Horizon.H4
    with pytest.raises(ValueError):
        coerce_horizon("7d")
