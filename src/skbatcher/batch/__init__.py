"""Batch accumulation.

A single pipeline (:class:`BatchAccumulator`) feeds one of three sinks, one per
batch shape.
"""

from skbatcher.batch.accumulator import SOURCE_MARKER, BatchAccumulator, normalize_self_id
from skbatcher.batch.sinks import (
    BATCH_VERSION,
    BatchFormat,
    BatchSink,
    FlatSink,
    NestedSink,
    make_sink,
    merge_defaults_deep,
)

__all__ = [
    "BATCH_VERSION",
    "SOURCE_MARKER",
    "BatchAccumulator",
    "BatchFormat",
    "BatchSink",
    "FlatSink",
    "NestedSink",
    "make_sink",
    "merge_defaults_deep",
    "normalize_self_id",
]
