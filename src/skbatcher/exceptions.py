"""Custom exception hierarchy for skbatcher."""

from __future__ import annotations


class SkBatcherError(Exception):
    """Base exception for all skbatcher errors."""


class BatcherConfigError(SkBatcherError):
    """Invalid or missing configuration.

    Raised when the batcher starts, never deferred to the first tick.
    """

    def __init__(self, message: str, *, option: str = "") -> None:
        self.option = option
        super().__init__(message)


class BatcherStateError(SkBatcherError):
    """Batcher lifecycle misuse (e.g. starting a running batcher)."""


class BatchDecodeError(SkBatcherError):
    """A batch is missing the metadata needed to decode it."""
