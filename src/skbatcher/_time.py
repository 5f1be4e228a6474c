"""Timestamp helpers shared by the accumulator and decoder.

Inside skbatcher every absolute time is an integer count of epoch
milliseconds, and every time inside a batch is an offset in milliseconds
from the batch ``timestamp``.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime, timedelta
from typing import Any


def now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


def datetime_to_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return round(value.timestamp() * 1000)


def parse_timestamp_ms(value: Any) -> int | None:
    """Normalize a state-tree timestamp to epoch milliseconds.

    - ISO-8601 strings (``2020-11-29T22:21:50.443Z``) and datetimes are converted
    - ints/floats are taken as epoch milliseconds
    - anything else (missing, empty, unparseable) -> None
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return datetime_to_ms(value)
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return datetime_to_ms(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def ms_to_datetime(value: int) -> datetime:
    return datetime.fromtimestamp(value // 1000, tz=UTC) + timedelta(milliseconds=value % 1000)


def format_timestamp_ms(value: int) -> str:
    """Render epoch milliseconds as an ISO-8601 UTC string with a ``Z`` suffix."""
    dt = ms_to_datetime(value)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
