"""Delta update events rebuilt from a batch."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DeltaValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    value: Any = None


class DeltaUpdate(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source: str = Field(alias="$source")
    timestamp: datetime
    values: list[DeltaValue] = Field(default_factory=list)


class Delta(BaseModel):
    """Last known value for one path from one source.

    Serializes (``model_dump(by_alias=True)``) to the usual delta shape::

        {"context": "vessels.<id>",
         "updates": [{"$source": ..., "timestamp": ..., "values": [{"path": ..., "value": ...}]}]}
    """

    model_config = ConfigDict(frozen=True)

    context: str
    updates: list[DeltaUpdate] = Field(default_factory=list)
