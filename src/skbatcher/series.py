"""Run-length compacted time series.

A series is an ordered list of ``[offset]`` or ``[offset, value]`` pairs where
``offset`` is milliseconds since the batch base time. A pair without a value
repeats the most recent explicit value before it, so a metric that never
changes costs one explicit value per batch plus one offset per observation.
Two adjacent explicit values are never equal.
"""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping, Sequence
from typing import Any

Pair = list[Any]
Series = list[Pair]


def last_explicit_value(series: Sequence[Sequence[Any]]) -> Any:
    """Return the value of the most recent pair that carries one.

    Offset-only pairs never hold a usable value, so this scans backwards
    rather than looking at the previous pair. Returns ``None`` for a series
    with no explicit value.
    """
    for pair in reversed(series):
        if len(pair) == 2:
            return pair[1]
    return None


def _changed(value: Any, previous: Any) -> bool:
    # True and 1 are distinct values here.
    return value != previous or isinstance(value, bool) != isinstance(previous, bool)


def merge_point(
    series_by_source: MutableMapping[str, Series],
    source: str,
    offset: int,
    value: Any,
) -> None:
    """Fold one observation into the series kept for ``source``.

    1. no series yet -> start one with ``[offset, value]``
    2. same offset as the last pair -> already recorded, skip
    3. value differs from the last explicit value -> append ``[offset, value]``
    4. value unchanged -> append ``[offset]``
    """

    series = series_by_source.get(source)
    if not series:
        series_by_source[source] = [[offset, value]]
        return

    last_offset = series[-1][0]
    if last_offset == offset:
        return
    if _changed(value, last_explicit_value(series)):
        series.append([offset, value])
    else:
        series.append([offset])


def forward_fill(series: Sequence[Sequence[Any]]) -> Iterator[tuple[int, Any]]:
    """Yield ``(offset, value)`` for every pair, filling omitted values."""
    cached: Any = None
    for pair in series:
        if len(pair) == 2:
            cached = pair[1]
        yield pair[0], cached
