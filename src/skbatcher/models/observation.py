"""State-tree leaf records.

A leaf in the state tree looks like::

    {
        "value": 3.2,
        "$source": "n2k.115",
        "timestamp": "2020-11-29T22:21:50.443Z",
        "values": {
            "n2k.115": {"value": 3.2, "timestamp": "..."},
            "nmea0183.GP": {"value": 3.1, "timestamp": "..."},
        },
    }

``values`` is only present when more than one source reports the path.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from skbatcher._time import parse_timestamp_ms

TimestampMs = Annotated[int, BeforeValidator(parse_timestamp_ms)]
"""Epoch milliseconds coerced from ISO strings, datetimes or numbers."""


class SourceObservation(BaseModel):
    """A value reported by one source at one instant."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    value: Any = None
    timestamp: TimestampMs


class Observation(SourceObservation):
    """A full leaf record carrying the primary source.

    ``values`` is kept raw; each secondary entry is validated on its own so a
    single malformed source does not hide the others.
    """

    source: str = Field(alias="$source")
    values: dict[str, Any] = Field(default_factory=dict)

    def secondary_sources(self) -> dict[str, Any]:
        """Secondary source entries, excluding the primary source."""
        return {source: entry for source, entry in self.values.items() if source != self.source}
