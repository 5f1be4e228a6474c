"""Pydantic models for leaf records and decoded batch output."""

from skbatcher.models.delta import Delta, DeltaUpdate, DeltaValue
from skbatcher.models.observation import Observation, SourceObservation, TimestampMs
from skbatcher.models.point import Point

__all__ = [
    "Delta",
    "DeltaUpdate",
    "DeltaValue",
    "Observation",
    "Point",
    "SourceObservation",
    "TimestampMs",
]
