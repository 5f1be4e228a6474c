"""Periodic batching of a telemetry state tree.

:class:`Batcher` owns one in-progress batch and two periodic actions:

- poll: fold the current state into the batch
- flush: stamp the batch, fold in the freshest state one last time, hand the
  batch to the publish callback, and start a new batch based at ``now()``

Each action is driven either by a wall-clock :class:`~skbatcher.config.Period`
(scheduled on an asyncio event loop) or by an
:class:`~skbatcher.config.ExternalTrigger` that receives the tick callback and
invokes it on its own schedule, which is how tests drive the batcher
deterministically.

Usage::

    batcher = Batcher(server, publish, {"get_interval": 1, "publish_interval": 60})
    batcher.start()
    ...
    batcher.stop()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any, Protocol

from skbatcher.batch.accumulator import BatchAccumulator, normalize_self_id
from skbatcher.batch.sinks import make_sink
from skbatcher.config import BatcherConfig, ExternalTrigger, Interval, Period
from skbatcher.exceptions import BatcherConfigError, BatcherStateError
from skbatcher.filtering import PathFilter

_logger = logging.getLogger(__name__)


class StateSource(Protocol):
    """The application holding the full telemetry state tree."""

    @property
    def self_id(self) -> str: ...

    def retrieve_state(self) -> Mapping[str, Any]: ...


class BatcherState(StrEnum):
    STOPPED = "stopped"
    RUNNING = "running"


class _PeriodicTimer:
    """Repeating ``loop.call_later`` callback.

    The next run is scheduled before the callback runs, so a slow tick delays
    nothing but itself. No drift correction.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        seconds: float,
        callback: Callable[[], None],
        name: str,
    ) -> None:
        self._loop = loop
        self._seconds = seconds
        self._callback = callback
        self._name = name
        self._handle: asyncio.TimerHandle | None = None

    def start(self) -> None:
        self._handle = self._loop.call_later(self._seconds, self._fire)
        _logger.debug("%s timer started period=%ss", self._name, self._seconds)

    def _fire(self) -> None:
        if self._handle is None:
            return
        self._handle = self._loop.call_later(self._seconds, self._fire)
        try:
            self._callback()
        except Exception:
            _logger.warning("%s tick failed", self._name, exc_info=True)

    def cancel(self) -> None:
        handle = self._handle
        self._handle = None
        if handle is not None:
            handle.cancel()
            _logger.debug("%s timer stopped", self._name)


class Batcher:
    """Accumulates state snapshots into batches and publishes them periodically.

    Parameters
    ----------
    state_source : StateSource
        Provides ``self_id`` and ``retrieve_state()``.
    publish : callable
        Called with each completed batch. The batch is not reused afterwards.
    config : BatcherConfig or mapping
        Either a built config or a plain options mapping (validated on
        :meth:`start`).
    loop : asyncio.AbstractEventLoop, optional
        Loop used for :class:`Period` intervals. Defaults to the running loop
        at :meth:`start` time.
    """

    def __init__(
        self,
        state_source: StateSource,
        publish: Callable[[dict[str, Any]], Any],
        config: BatcherConfig | Mapping[str, Any],
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._state_source = state_source
        self._publish = publish
        self._raw_config = config
        self._loop = loop
        self._config: BatcherConfig | None = None
        self._accumulator: BatchAccumulator | None = None
        self._batch: dict[str, Any] = {}
        self._timers: list[_PeriodicTimer] = []
        self._state = BatcherState.STOPPED
        self._generation = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> Batcher:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    @property
    def state(self) -> BatcherState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == BatcherState.RUNNING

    @property
    def config(self) -> BatcherConfig | None:
        return self._config

    @property
    def last_flush_ms(self) -> int | None:
        return self._accumulator.last_flush_ms if self._accumulator is not None else None

    @property
    def batch(self) -> dict[str, Any]:
        """The batch currently being accumulated."""
        return self._batch

    def start(self) -> None:
        """Validate configuration and register both periodic actions."""
        if self.is_running:
            raise BatcherStateError("Batcher is already running")

        raw = self._raw_config
        config = raw if isinstance(raw, BatcherConfig) else BatcherConfig.from_options(raw)
        loop = self._resolve_loop(config)

        self_id = normalize_self_id(self._state_source.self_id)
        self._config = config
        self._accumulator = BatchAccumulator(
            self_id=self_id,
            path_filter=PathFilter(config.filter_list_type, config.filter_list),
            sink=make_sink(config.batch_format, self_id),
            last_flush_ms=config.now(),
        )
        self._batch = {}
        self._generation += 1
        self._state = BatcherState.RUNNING
        _logger.debug(
            "Batcher started self=%s format=%s filter=%s %s",
            self._accumulator.self_id,
            config.batch_format,
            config.filter_list_type,
            list(config.filter_list),
        )

        self._register("publish", config.publish_interval, self._on_flush_tick, loop)
        self._register("get", config.get_interval, self._on_poll_tick, loop)

    def stop(self) -> None:
        """Cancel wall-clock timers. Safe to call repeatedly or before start."""
        timers = self._timers
        self._timers = []
        for timer in timers:
            timer.cancel()
        if self._state == BatcherState.RUNNING:
            _logger.debug("Batcher stopped")
        self._state = BatcherState.STOPPED

    def _resolve_loop(self, config: BatcherConfig) -> asyncio.AbstractEventLoop | None:
        periodic = [
            name
            for name, interval in (("get_interval", config.get_interval), ("publish_interval", config.publish_interval))
            if isinstance(interval, Period)
        ]
        if not periodic or self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError as exc:
            raise BatcherConfigError(
                f"{periodic[0]} in seconds needs a running asyncio event loop or an explicit loop",
                option=periodic[0],
            ) from exc

    def _register(
        self,
        name: str,
        interval: Interval,
        callback: Callable[[], None],
        loop: asyncio.AbstractEventLoop | None,
    ) -> None:
        if isinstance(interval, ExternalTrigger):
            interval.register(self._bind_tick(name, callback))
            return
        if loop is None:
            raise BatcherConfigError(f"{name} interval needs an event loop", option=f"{name}_interval")
        timer = _PeriodicTimer(loop=loop, seconds=interval.seconds, callback=callback, name=name)
        timer.start()
        self._timers.append(timer)

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def _bind_tick(self, name: str, callback: Callable[[], None]) -> Callable[[], None]:
        """Wrap ``callback`` so it only fires for the start that registered it.

        Registration functions may keep every callback they were ever given;
        after a restart the earlier ones must stay inert.
        """
        generation = self._generation

        def tick() -> None:
            if generation != self._generation:
                _logger.debug("Ignoring %s tick from an earlier start", name)
                return
            callback()

        return tick

    def _on_poll_tick(self) -> None:
        if not self.is_running:
            _logger.debug("Ignoring get tick while stopped")
            return
        self.poll()

    def _on_flush_tick(self) -> None:
        if not self.is_running:
            _logger.debug("Ignoring publish tick while stopped")
            return
        self.flush()

    def _require_running(self) -> tuple[BatcherConfig, BatchAccumulator]:
        if not self.is_running or self._config is None or self._accumulator is None:
            raise BatcherStateError("Batcher is not running")
        return self._config, self._accumulator

    def poll(self) -> None:
        """Fold the current state into the batch."""
        config, accumulator = self._require_running()
        accumulator.accumulate(self._batch, self._state_source.retrieve_state(), tick_ms=config.now())

    def flush(self) -> None:
        """Publish the batch and start a new one.

        The freshest state is folded in first: an observation made in the same
        period as the flush would otherwise be older than the next batch's base
        time and never be published.
        """
        config, accumulator = self._require_running()
        batch = self._batch
        sink = accumulator.sink

        sink.stamp(batch, accumulator.last_flush_ms)
        accumulator.accumulate(batch, self._state_source.retrieve_state(), tick_ms=config.now())
        sink.complete(batch)

        _logger.debug("Publishing batch base=%d keys=%d", accumulator.last_flush_ms, len(batch))
        try:
            self._publish(batch)
        finally:
            self._batch = {}
            accumulator.last_flush_ms = config.now()
