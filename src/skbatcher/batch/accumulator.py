"""Folds state-tree snapshots into a batch.

Only this component reads the state tree. Each pass:

- locates the self vessel (a missing vessel means nothing to report)
- walks every node carrying a ``$source`` marker
- drops paths rejected by the path filter
- drops observations older than the last flush
- splits object values (e.g. ``{"latitude": .., "longitude": ..}``) into one
  scalar sub-path per field
- hands ``(path, source, offset, value)`` to the sink, once for the primary
  source and once per secondary source listed under ``values``
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from skbatcher.batch.sinks import BatchSink
from skbatcher.models.observation import Observation, SourceObservation
from skbatcher.tree import visit_marked

_logger = logging.getLogger(__name__)

SOURCE_MARKER = "$source"


def normalize_self_id(self_id: str) -> str:
    """Strip the ``vessels.`` context prefix the state tree uses for ``self``."""
    prefix = "vessels."
    return self_id[len(prefix) :] if self_id.startswith(prefix) else self_id


class BatchAccumulator:
    """Applies filtering, decomposition and merging for one vessel.

    Parameters
    ----------
    self_id : str
        Identifier of the vessel to batch, with or without ``vessels.``.
    path_filter : callable
        Predicate over dotted paths.
    sink : BatchSink
        Decides the batch shape.
    last_flush_ms : int
        Base time of the batch being built; observations older than this are
        ignored and offsets are measured from it.
    """

    def __init__(
        self,
        *,
        self_id: str,
        path_filter: Callable[[str], bool],
        sink: BatchSink,
        last_flush_ms: int = 0,
    ) -> None:
        self.self_id = normalize_self_id(self_id)
        self.last_flush_ms = last_flush_ms
        self._path_filter = path_filter
        self._sink = sink

    @property
    def sink(self) -> BatchSink:
        return self._sink

    def _vessel(self, snapshot: Mapping[str, Any]) -> Mapping[str, Any]:
        vessels = snapshot.get("vessels")
        vessel = vessels.get(self.self_id) if isinstance(vessels, Mapping) else None
        if not isinstance(vessel, Mapping):
            _logger.debug("Vessel %s not present in state", self.self_id)
            return {}
        return vessel

    def accumulate(self, batch: dict[str, Any], snapshot: Mapping[str, Any], *, tick_ms: int) -> None:
        """Fold one state snapshot into ``batch``."""
        if not isinstance(snapshot, Mapping):
            snapshot = {}
        sources = snapshot.get("sources")
        self._sink.begin(batch, tick_ms, sources if isinstance(sources, Mapping) else None)

        def on_leaf(path: str, node: Mapping[str, Any]) -> None:
            self._add_leaf(batch, path, node)

        visit_marked(self._vessel(snapshot), SOURCE_MARKER, on_leaf)

    def _add_leaf(self, batch: dict[str, Any], path: str, node: Mapping[str, Any]) -> None:
        if not self._path_filter(path):
            _logger.debug("Filtered out %s", path)
            return

        try:
            observation = Observation.model_validate(node)
        except ValidationError:
            _logger.debug("Skipping malformed leaf at %s", path, exc_info=True)
            return

        self._add_observation(batch, path, observation.source, observation)

        for source, entry in observation.secondary_sources().items():
            try:
                secondary = SourceObservation.model_validate(entry)
            except ValidationError:
                _logger.debug("Skipping malformed %s value at %s", source, path, exc_info=True)
                continue
            self._add_observation(batch, path, source, secondary)

    def _add_observation(
        self,
        batch: dict[str, Any],
        path: str,
        source: str,
        observation: SourceObservation,
    ) -> None:
        if observation.timestamp < self.last_flush_ms:
            _logger.debug(
                "Filtered too old %s source=%s timestamp=%d last_flush=%d",
                path,
                source,
                observation.timestamp,
                self.last_flush_ms,
            )
            return
        self._add_value(batch, path, source, observation.timestamp, observation.value)

    def _add_value(self, batch: dict[str, Any], path: str, source: str, timestamp: int, value: Any) -> None:
        if value is None:
            _logger.debug("Skipping null value at %s source=%s", path, source)
            return
        if isinstance(value, Mapping):
            for key, field_value in value.items():
                self._add_value(batch, f"{path}.{key}", source, timestamp, field_value)
            return
        self._sink.write(batch, path, source, timestamp - self.last_flush_ms, value)
