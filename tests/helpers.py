"""Builders shared by the test modules."""

from __future__ import annotations

import copy
from collections.abc import Callable
from typing import Any

from skbatcher._time import format_timestamp_ms
from skbatcher.batcher import Batcher

SELF_ID = "urn:mrn:signalk:uuid:635ed58a-540c-467a-a42b-b093056a5930"
START_MS = 1606688510443  # 2020-11-29T22:21:50.443Z

def make_leaf(
    value: Any,
    ts_ms: int = START_MS,
    source: str = "test-source",
    values: dict[str, tuple[Any, int]] | None = None,
) -> dict[str, Any]:
    leaf: dict[str, Any] = {"value": value, "$source": source, "timestamp": format_timestamp_ms(ts_ms)}
    if values is not None:
        leaf["values"] = {
            src: {"value": src_value, "timestamp": format_timestamp_ms(src_ts)}
            for src, (src_value, src_ts) in values.items()
        }
    return leaf

def make_state(vessel: dict[str, Any], sources: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "self": f"vessels.{SELF_ID}",
        "vessels": {SELF_ID: copy.deepcopy(vessel)},
        "sources": {"test-source": {}} if sources is None else sources,
        "version": "1.0.0",
    }

class FakeServer:
    """Stands in for the application holding the state tree."""

    def __init__(self, state: dict[str, Any]) -> None:
        self.state = state
        self.self_id = state["self"]

    def retrieve_state(self) -> dict[str, Any]:
        return self.state

    def update(self, path: str, ts_ms: int, value: Any) -> None:
        node = self.state["vessels"][SELF_ID]
        for key in path.split("."):
            node = node.setdefault(key, {})
        node.setdefault("$source", "test-source")
        node["timestamp"] = format_timestamp_ms(ts_ms)
        node["value"] = value

class Clock:
    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

class Trigger:
    """Registration function that lets a test fire the tick by hand."""

    def __init__(self) -> None:
        self._callback: Callable[[], None] | None = None

    def register(self, callback: Callable[[], None]) -> None:
        self._callback = callback

    def fire(self) -> None:
        assert self._callback is not None, "trigger was never registered"
        self._callback()

class Harness:
    def __init__(self, clock: Clock) -> None:
        self.clock = clock
        self.get = Trigger()
        self.publish = Trigger()
        self.published: list[dict[str, Any]] = []
        self.server: FakeServer | None = None
        self.batcher: Batcher | None = None

    @property
    def last(self) -> dict[str, Any]:
        return self.published[-1]

    def start(self, state: dict[str, Any], **options: Any) -> Batcher:
        self.server = FakeServer(state)
        self.batcher = Batcher(
            self.server,
            self.published.append,
            {
                "get_interval": self.get.register,
                "publish_interval": self.publish.register,
                "now": self.clock,
                **options,
            },
        )
        self.batcher.start()
        return self.batcher

