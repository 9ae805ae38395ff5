"""
Shared datetime helpers.

Analysis dates arrive in whatever shape the record source produced:
datetime-like objects, timestamp objects exposing conversion accessors,
serialized ``{"seconds": ..., "nanoseconds": ...}`` mappings, epoch
milliseconds, or date strings. ``extract_time`` is the one place that
turns any of these into a comparable, timezone-aware UTC datetime.
"""

from __future__ import annotations

import math
import numbers
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Mapping, Optional

import pandas as pd

from .exceptions import MalformedTimestamp


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_NUMERIC_RE = re.compile(r"-?\d+(\.\d+)?")

# Accessors checked in order on structured timestamp objects.
_DATETIME_ACCESSORS = ("to_datetime", "ToDatetime", "to_pydatetime")
_MILLIS_ACCESSORS = ("to_millis", "toMillis", "ToMilliseconds")


def ensure_utc(dt: datetime) -> datetime:
    """Return a timezone-aware UTC datetime."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp and normalize it to UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return ensure_utc(parsed)


def from_epoch_millis(millis: Any) -> datetime:
    """Convert epoch milliseconds to a UTC datetime."""
    if isinstance(millis, numbers.Integral):
        millis = int(millis)
    else:
        try:
            millis = float(millis)
        except (TypeError, ValueError) as e:
            raise MalformedTimestamp(millis, "not a number") from e
        if not math.isfinite(millis):
            raise MalformedTimestamp(millis, "not a finite number")
    try:
        return EPOCH + timedelta(milliseconds=millis)
    except OverflowError as e:
        raise MalformedTimestamp(millis, "out of range") from e


def _from_seconds_mapping(value: Mapping[str, Any]) -> datetime:
    seconds = value.get("seconds", value.get("_seconds"))
    nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
    try:
        return EPOCH + timedelta(seconds=int(seconds), microseconds=int(nanos) // 1000)
    except (TypeError, ValueError, OverflowError) as e:
        raise MalformedTimestamp(value, "invalid seconds/nanoseconds") from e


def _from_string(value: str) -> datetime:
    text = value.strip()
    if not text:
        raise MalformedTimestamp(value, "empty string")
    if _NUMERIC_RE.fullmatch(text):
        return from_epoch_millis(float(text) if "." in text else int(text))

    parsed = parse_timestamp(text)
    if parsed is not None:
        return parsed

    try:
        fallback = pd.to_datetime(text, utc=True)
    except (ValueError, TypeError, OverflowError) as e:
        raise MalformedTimestamp(value, "unparseable date string") from e
    if fallback is pd.NaT:
        raise MalformedTimestamp(value, "unparseable date string")
    return ensure_utc(fallback.to_pydatetime())


def extract_time(value: Any) -> datetime:
    """Normalize any supported timestamp representation to a UTC datetime.

    Two representations of the same instant always produce equal results.

    Raises:
        MalformedTimestamp: If the value cannot be interpreted as a point in time.
    """
    if value is None or value is pd.NaT:
        raise MalformedTimestamp(value, "missing")
    if isinstance(value, bool):
        raise MalformedTimestamp(value, "boolean is not a timestamp")

    if isinstance(value, pd.Timestamp):
        return ensure_utc(value.to_pydatetime())
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if isinstance(value, numbers.Real):
        return from_epoch_millis(value)
    if isinstance(value, str):
        return _from_string(value)
    if isinstance(value, Mapping):
        if "seconds" in value or "_seconds" in value:
            return _from_seconds_mapping(value)
        raise MalformedTimestamp(value, "mapping without seconds")

    for accessor in _DATETIME_ACCESSORS:
        method = getattr(value, accessor, None)
        if callable(method):
            try:
                converted = method()
            except (TypeError, ValueError, AttributeError, OverflowError) as e:
                raise MalformedTimestamp(value, f"{accessor}() failed: {e}") from e
            if not isinstance(converted, datetime):
                raise MalformedTimestamp(value, f"{accessor}() did not return a datetime")
            return ensure_utc(converted)
    for accessor in _MILLIS_ACCESSORS:
        method = getattr(value, accessor, None)
        if callable(method):
            try:
                millis = method()
            except (TypeError, ValueError, AttributeError, OverflowError) as e:
                raise MalformedTimestamp(value, f"{accessor}() failed: {e}") from e
            return from_epoch_millis(millis)

    raise MalformedTimestamp(value, f"unsupported type {type(value).__name__}")
