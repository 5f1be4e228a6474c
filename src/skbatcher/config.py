"""Batcher configuration for skbatcher."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from skbatcher._time import now_ms
from skbatcher.batch.sinks import BatchFormat
from skbatcher.exceptions import BatcherConfigError
from skbatcher.filtering import FilterListType


@dataclasses.dataclass(frozen=True)
class Period:
    """Run a tick every ``seconds`` on the batcher's event loop."""

    seconds: float


@dataclasses.dataclass(frozen=True)
class ExternalTrigger:
    """Hand the tick callback to ``register``; the caller decides when it runs.

    ``register`` is called exactly once, at start, with a zero-argument
    callback. Nothing is deregistered on stop; ticks delivered after stop are
    ignored.
    """

    register: Callable[[Callable[[], None]], Any]


Interval = Period | ExternalTrigger

# Option names accepted by ``from_options``, alternate spellings included.
_INTERVAL_ALIASES: dict[str, tuple[str, ...]] = {
    "get_interval": ("get_interval", "update_interval"),
    "publish_interval": ("publish_interval", "write_interval"),
}


def to_interval(value: Any, option: str) -> Interval:
    """Resolve an interval option: seconds, a registration callable, or an Interval."""
    if isinstance(value, (Period, ExternalTrigger)):
        interval = value
    elif value is None:
        raise BatcherConfigError(f"{option} is required", option=option)
    elif isinstance(value, bool):
        raise BatcherConfigError(f"{option} must be seconds or a function, got {value!r}", option=option)
    elif isinstance(value, (int, float)):
        interval = Period(float(value))
    elif callable(value):
        interval = ExternalTrigger(value)
    else:
        raise BatcherConfigError(f"{option} must be seconds or a function, got {value!r}", option=option)

    if isinstance(interval, Period) and not interval.seconds > 0:
        raise BatcherConfigError(f"{option} must be a positive number of seconds", option=option)
    return interval


@dataclasses.dataclass(frozen=True)
class BatcherConfig:
    """Batcher configuration.

    Values are validated and normalized on construction, so an invalid
    configuration fails before any tick is scheduled.

    Parameters
    ----------
    get_interval : Interval, float or callable
        How often the state tree is polled into the batch.
    publish_interval : Interval, float or callable
        How often the batch is flushed to the publish callback.
    filter_list_type : FilterListType or str
        ``include`` or ``exclude``. Defaults to ``exclude``.
    filter_list : iterable of str
        Path globs, e.g. ``environment.*``.
    batch_format : BatchFormat or str
        ``nested``, ``flat`` or ``flat_composite``.
    now : callable
        Clock returning epoch milliseconds. Defaults to wall-clock time.
    """

    get_interval: Interval
    publish_interval: Interval
    filter_list_type: FilterListType = FilterListType.EXCLUDE
    filter_list: tuple[str, ...] = ()
    batch_format: BatchFormat = BatchFormat.NESTED
    now: Callable[[], int] = now_ms

    def __post_init__(self) -> None:
        object.__setattr__(self, "get_interval", to_interval(self.get_interval, "get_interval"))
        object.__setattr__(self, "publish_interval", to_interval(self.publish_interval, "publish_interval"))

        try:
            object.__setattr__(self, "filter_list_type", FilterListType(self.filter_list_type))
        except ValueError as exc:
            raise BatcherConfigError(
                f"filter_list_type must be 'include' or 'exclude', got {self.filter_list_type!r}",
                option="filter_list_type",
            ) from exc

        filter_list = self.filter_list
        if isinstance(filter_list, str) or not isinstance(filter_list, Iterable):
            raise BatcherConfigError("filter_list must be a list of path globs", option="filter_list")
        object.__setattr__(self, "filter_list", tuple(filter_list))

        try:
            object.__setattr__(self, "batch_format", BatchFormat(self.batch_format))
        except ValueError as exc:
            raise BatcherConfigError(
                f"batch_format must be one of {[fmt.value for fmt in BatchFormat]}, got {self.batch_format!r}",
                option="batch_format",
            ) from exc

        if not callable(self.now):
            raise BatcherConfigError("now must be a callable returning epoch milliseconds", option="now")

    @classmethod
    def from_options(cls, options: Mapping[str, Any], **overrides: Any) -> BatcherConfig:
        """Create configuration from a plain options mapping.

        Accepts ``update_interval`` and ``write_interval`` as alternate names
        for ``get_interval`` and ``publish_interval``. ``None`` values fall back
        to the defaults.
        """
        merged: dict[str, Any] = {key: value for key, value in options.items() if value is not None}
        merged.update(overrides)

        config_kwargs: dict[str, Any] = {}
        for field_name, aliases in _INTERVAL_ALIASES.items():
            config_kwargs[field_name] = next((merged[alias] for alias in aliases if alias in merged), None)

        for field_name in ("filter_list_type", "filter_list", "batch_format", "now"):
            if field_name in merged:
                config_kwargs[field_name] = merged[field_name]

        return cls(**config_kwargs)

    @classmethod
    def from_env(cls, **overrides: Any) -> BatcherConfig:
        """Create configuration from environment variables.

        Reads ``SKBATCH_GET_INTERVAL``, ``SKBATCH_PUBLISH_INTERVAL`` (seconds),
        ``SKBATCH_FILTER_LIST_TYPE``, ``SKBATCH_FILTER_LIST`` (comma separated
        globs) and ``SKBATCH_BATCH_FORMAT``. Explicit keyword arguments
        override environment values.
        """
        env = os.environ
        options: dict[str, Any] = {}

        for env_key, field_name in (
            ("SKBATCH_GET_INTERVAL", "get_interval"),
            ("SKBATCH_PUBLISH_INTERVAL", "publish_interval"),
        ):
            val = env.get(env_key)
            if val is None:
                continue
            try:
                options[field_name] = float(val)
            except ValueError as exc:
                raise BatcherConfigError(f"{env_key} must be a number, got {val!r}", option=field_name) from exc

        filter_list_type = env.get("SKBATCH_FILTER_LIST_TYPE")
        if filter_list_type is not None:
            options["filter_list_type"] = filter_list_type.strip().lower()

        filter_list = env.get("SKBATCH_FILTER_LIST")
        if filter_list is not None:
            options["filter_list"] = [glob.strip() for glob in filter_list.split(",") if glob.strip()]

        batch_format = env.get("SKBATCH_BATCH_FORMAT")
        if batch_format is not None:
            options["batch_format"] = batch_format.strip().lower()

        return cls.from_options(options, **overrides)
