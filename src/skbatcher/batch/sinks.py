"""Batch output shapes.

The accumulator resolves every observation to a ``(path, source, offset,
value)`` tuple; a sink decides how that tuple is stored in the batch dict.

``nested``
    Mirrors the vessel tree. Each leaf path maps source -> run-length series
    (see :mod:`skbatcher.series`), plus ``version``/``self``/``timestamp``/
    ``sources`` metadata.
``flat``
    ``{"header": [tick_ms, ...], "<path>": [value, ...]}`` with one column
    entry per poll tick. Assumes one source per path.
``flat_composite``
    Like ``flat`` but keyed ``"<path>|<source>"``.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Protocol

from skbatcher._time import format_timestamp_ms
from skbatcher.series import merge_point

_logger = logging.getLogger(__name__)

BATCH_VERSION = "2.0.0"
HEADER_KEY = "header"
COMPOSITE_KEY_SEPARATOR = "|"


class BatchFormat(StrEnum):
    NESTED = "nested"
    FLAT = "flat"
    FLAT_COMPOSITE = "flat_composite"


class BatchSink(Protocol):
    def begin(self, batch: dict[str, Any], tick_ms: int, sources: Mapping[str, Any] | None) -> None:
        """Prepare ``batch`` for one accumulation pass taken at ``tick_ms``."""
        ...

    def write(self, batch: dict[str, Any], path: str, source: str, offset: int, value: Any) -> None:
        """Store one scalar observation."""
        ...

    def stamp(self, batch: dict[str, Any], base_ms: int) -> None:
        """Fill top-level metadata that is missing, before the final pass of a flush."""
        ...

    def complete(self, batch: dict[str, Any]) -> None:
        """Finish ``batch`` right before it is published."""
        ...


def merge_defaults_deep(target: dict[str, Any], defaults: Mapping[str, Any]) -> None:
    """Copy keys from ``defaults`` into ``target`` without overwriting any existing key."""
    for key, value in defaults.items():
        existing = target.get(key)
        if key not in target:
            target[key] = copy.deepcopy(value)
        elif isinstance(existing, dict) and isinstance(value, Mapping):
            merge_defaults_deep(existing, value)


class NestedSink:
    """Writes run-length series into a tree mirroring the vessel state."""

    def __init__(self, self_id: str) -> None:
        self._self_id = self_id

    def _vessel(self, batch: dict[str, Any]) -> dict[str, Any]:
        vessels = batch.setdefault("vessels", {})
        return vessels.setdefault(self._self_id, {})

    def begin(self, batch: dict[str, Any], tick_ms: int, sources: Mapping[str, Any] | None) -> None:
        self._vessel(batch)
        if sources is not None:
            merge_defaults_deep(batch, {"sources": sources})

    def write(self, batch: dict[str, Any], path: str, source: str, offset: int, value: Any) -> None:
        node = self._vessel(batch)
        for key in path.split("."):
            child = node.setdefault(key, {})
            if not isinstance(child, dict):
                # A series already sits where this path needs a subtree.
                _logger.debug("Path %s collides with an existing series, skipping", path)
                return
            node = child
        merge_point(node, source, offset, value)

    def stamp(self, batch: dict[str, Any], base_ms: int) -> None:
        batch.setdefault("timestamp", format_timestamp_ms(base_ms))
        batch.setdefault("self", self._self_id)
        batch.setdefault("version", BATCH_VERSION)

    def complete(self, batch: dict[str, Any]) -> None:
        self._vessel(batch)


class FlatSink:
    """Writes one column entry per tick, aligned with the ``header`` list.

    With ``composite_keys`` each source gets its own ``path|source`` column;
    without it the first source written for a path in a tick wins, which is the
    primary source since secondaries are always written after it.
    """

    def __init__(self, *, composite_keys: bool = False) -> None:
        self._composite_keys = composite_keys

    def _key(self, path: str, source: str) -> str:
        if self._composite_keys:
            return f"{path}{COMPOSITE_KEY_SEPARATOR}{source}"
        return path

    def begin(self, batch: dict[str, Any], tick_ms: int, sources: Mapping[str, Any] | None) -> None:
        header = batch.setdefault(HEADER_KEY, [])
        # A flush landing on the same tick as a poll shares its row.
        if not header or header[-1] != tick_ms:
            header.append(tick_ms)

    def write(self, batch: dict[str, Any], path: str, source: str, offset: int, value: Any) -> None:
        header = batch.setdefault(HEADER_KEY, [])
        index = len(header) - 1
        if index < 0:
            return
        column = batch.setdefault(self._key(path, source), [])
        if len(column) > index:
            return
        column.extend([None] * (index - len(column)))
        column.append(value)

    def stamp(self, batch: dict[str, Any], base_ms: int) -> None:
        batch.setdefault(HEADER_KEY, [])

    def complete(self, batch: dict[str, Any]) -> None:
        width = len(batch.setdefault(HEADER_KEY, []))
        for key, column in batch.items():
            if key != HEADER_KEY and len(column) < width:
                column.extend([None] * (width - len(column)))


def make_sink(batch_format: BatchFormat | str, self_id: str) -> BatchSink:
    fmt = BatchFormat(batch_format)
    if fmt == BatchFormat.NESTED:
        return NestedSink(self_id)
    return FlatSink(composite_keys=fmt == BatchFormat.FLAT_COMPOSITE)
