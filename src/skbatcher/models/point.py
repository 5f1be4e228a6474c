"""Expanded time-series point."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Point(BaseModel):
    """One observation expanded out of a batch.

    Parameters
    ----------
    path : str
        Dotted metric path (e.g. ``environment.wind.speedApparent``).
    value : Any
        Observed value, forward-filled when the batch omitted it.
    time : int
        Absolute observation time in epoch milliseconds.
    source : str or None
        Reporting source. ``None`` for single-source flat batches.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: str
    value: Any = None
    time: int
    source: str | None = Field(default=None, alias="$source")
