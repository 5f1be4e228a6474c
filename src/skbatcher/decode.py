"""Batch decoding.

Pure functions turning a published batch back into points or deltas. They
depend only on the batch shape, not on any batcher state.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from skbatcher._time import ms_to_datetime, parse_timestamp_ms
from skbatcher.batch.accumulator import normalize_self_id
from skbatcher.batch.sinks import COMPOSITE_KEY_SEPARATOR, HEADER_KEY
from skbatcher.exceptions import BatchDecodeError
from skbatcher.models.delta import Delta, DeltaUpdate, DeltaValue
from skbatcher.models.point import Point
from skbatcher.series import forward_fill, last_explicit_value
from skbatcher.tree import visit_leaves

_logger = logging.getLogger(__name__)

# Values that travel as one object in a delta but are batched as one scalar
# series per field. Each entry is (field pattern, number of fields).
COMPOSITE_VALUES: tuple[tuple[re.Pattern[str], int], ...] = (
    (re.compile(r"\.position\.(latitude|longitude)$"), 2),
    (re.compile(r"\.attitude\.(yaw|roll|pitch)$"), 3),
)


def _unpack(batch: Mapping[str, Any]) -> tuple[str, int, Mapping[str, Any]]:
    self_value = batch.get("self")
    if not isinstance(self_value, str) or not self_value:
        raise BatchDecodeError("batch has no 'self' vessel identifier")
    base_ms = parse_timestamp_ms(batch.get("timestamp"))
    if base_ms is None:
        raise BatchDecodeError(f"batch has no usable 'timestamp': {batch.get('timestamp')!r}")

    self_id = normalize_self_id(self_value)
    vessels = batch.get("vessels")
    vessel = vessels.get(self_id) if isinstance(vessels, Mapping) else None
    return self_id, base_ms, vessel if isinstance(vessel, Mapping) else {}


def expand_to_points(batch: Mapping[str, Any]) -> list[Point]:
    """Expand a nested batch into one point per recorded observation.

    Values omitted by the run-length encoding are filled from the previous
    explicit value, so every point carries a value.
    """
    _, base_ms, vessel = _unpack(batch)
    points: list[Point] = []

    def on_series(path: str, source: str, series: Any) -> None:
        if not isinstance(series, list):
            return
        for offset, value in forward_fill(series):
            points.append(Point(path=path, source=source, value=value, time=base_ms + offset))

    visit_leaves(vessel, on_series)
    return points


def _delta(context: str, source: str, time_ms: int, path: str, value: Any) -> Delta:
    return Delta(
        context=context,
        updates=[
            DeltaUpdate(
                source=source,
                timestamp=ms_to_datetime(time_ms),
                values=[DeltaValue(path=path, value=value)],
            )
        ],
    )


def expand_to_deltas(batch: Mapping[str, Any]) -> list[Delta]:
    """Reduce a nested batch to the last known value per path and source.

    Fields of composite values (``navigation.position.latitude`` and
    ``.longitude``, ``*.attitude.yaw``/``roll``/``pitch``) are held back
    until every field of the object has been seen for that source, then
    emitted as a single delta for the parent path.
    """
    self_id, base_ms, vessel = _unpack(batch)
    context = f"vessels.{self_id}"
    pending: dict[tuple[str, str], dict[str, Any]] = {}
    deltas: list[Delta] = []

    def on_series(path: str, source: str, series: Any) -> None:
        if not isinstance(series, list) or not series:
            return
        last_offset = series[-1][0]
        value = last_explicit_value(series)
        time_ms = base_ms + last_offset

        composite = next((count for pattern, count in COMPOSITE_VALUES if pattern.search(path)), None)
        if composite is None:
            deltas.append(_delta(context, source, time_ms, path, value))
            return

        prefix, _, field = path.rpartition(".")
        fields = pending.setdefault((prefix, source), {})
        fields[field] = value
        if len(fields) == composite:
            _logger.debug("Rebuilt composite value %s source=%s", prefix, source)
            deltas.append(_delta(context, source, time_ms, prefix, dict(fields)))

    visit_leaves(vessel, on_series)
    return deltas


def expand_flat_to_points(batch: Mapping[str, Any]) -> list[Point]:
    """Expand a ``flat`` or ``flat_composite`` batch into points.

    Column entries of ``None`` (ticks where the path did not report) produce
    no point. ``path|source`` keys are split on the last ``|``; plain keys give
    points with no source.
    """
    header = batch.get(HEADER_KEY)
    if not isinstance(header, list):
        raise BatchDecodeError("flat batch has no 'header' list")

    points: list[Point] = []
    for key, column in batch.items():
        if key == HEADER_KEY or not isinstance(column, list):
            continue
        path, separator, source = key.rpartition(COMPOSITE_KEY_SEPARATOR)
        if not separator:
            path, source = key, None
        for time_ms, value in zip(header, column, strict=False):
            if value is None:
                continue
            points.append(Point(path=path, source=source, value=value, time=time_ms))
    return points
