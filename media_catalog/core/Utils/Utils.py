# Utils.py
# Description: Small time, id and coercion helpers shared by the catalog and the cache shell.
#
# Imports
import math
import re
import threading
from datetime import datetime, timezone
from typing import Any, Callable
#
# Local Imports
#
#######################################################################################################################
#
# Functions:

Clock = Callable[[], datetime]

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso_timestamp(dt: datetime) -> str:
    """Formats an aware datetime as ISO-8601 UTC with milliseconds and a 'Z' suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_iso_date(dt: datetime) -> str:
    """Calendar date (UTC) of *dt* as YYYY-MM-DD."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).date().isoformat()


def epoch_millis(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def coerce_rating(value: Any) -> int:
    """
    Integer rating from loosely typed input.

    Strings yield their leading integer ("4 stars" -> 4, "3.7" -> 3), floats are
    truncated, and anything non-numeric (None, "", "abc", NaN) yields 0.
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return 0
        return int(value)
    match = _LEADING_INT_RE.match(str(value))
    return int(match.group(1)) if match else 0


class MonotonicIdSource:
    """
    Clock-based id generator: epoch milliseconds, bumped by one whenever the
    clock has not advanced past the last id issued.
    """

    def __init__(self, clock: Clock = utc_now):
        self._clock = clock
        self._last_id = 0
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            candidate = epoch_millis(self._clock())
            if candidate <= self._last_id:
                candidate = self._last_id + 1
            self._last_id = candidate
            return candidate

#
# End of Utils.py
#######################################################################################################################
