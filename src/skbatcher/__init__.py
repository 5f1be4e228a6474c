"""skbatcher - batch and compact vessel telemetry into time-series batches."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("skbatcher")
except PackageNotFoundError:
    __version__ = "0+local"
from skbatcher.batch import BATCH_VERSION, BatchAccumulator, BatchFormat
from skbatcher.batcher import Batcher, BatcherState, StateSource
from skbatcher.config import BatcherConfig, ExternalTrigger, Interval, Period
from skbatcher.decode import expand_flat_to_points, expand_to_deltas, expand_to_points
from skbatcher.exceptions import BatchDecodeError, BatcherConfigError, BatcherStateError, SkBatcherError
from skbatcher.filtering import FilterListType, PathFilter, compile_path_filter
from skbatcher.models import Delta, DeltaUpdate, DeltaValue, Observation, Point, SourceObservation
from skbatcher.series import forward_fill, last_explicit_value, merge_point
from skbatcher.tree import visit_leaves, visit_marked

__all__ = [
    "__version__",
    "BATCH_VERSION",
    "BatchAccumulator",
    "BatchDecodeError",
    "BatchFormat",
    "Batcher",
    "BatcherConfig",
    "BatcherConfigError",
    "BatcherState",
    "BatcherStateError",
    "Delta",
    "DeltaUpdate",
    "DeltaValue",
    "ExternalTrigger",
    "FilterListType",
    "Interval",
    "Observation",
    "PathFilter",
    "Period",
    "Point",
    "SkBatcherError",
    "SourceObservation",
    "StateSource",
    "compile_path_filter",
    "expand_flat_to_points",
    "expand_to_deltas",
    "expand_to_points",
    "forward_fill",
    "last_explicit_value",
    "merge_point",
    "visit_leaves",
    "visit_marked",
]
