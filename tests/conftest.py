from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from helpers import Clock, Harness, make_leaf, make_state


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def harness(clock: Clock) -> Iterator[Harness]:
    h = Harness(clock)
    yield h
    if h.batcher is not None:
        h.batcher.stop()


@pytest.fixture
def wind_speed_state() -> dict[str, Any]:
    return make_state({"environment": {"wind": {"speedApparent": make_leaf(0)}}})


@pytest.fixture
def wind_speed_angle_state() -> dict[str, Any]:
    return make_state(
        {
            "environment": {
                "wind": {
                    "speedApparent": make_leaf(0),
                    "angleApparent": make_leaf(-1.96),
                }
            }
        }
    )


@pytest.fixture
def position_state() -> dict[str, Any]:
    return make_state({"navigation": {"position": make_leaf({"latitude": 47.67, "longitude": -122.4})}})
