"""Cadence parsing and due-checks for alert units."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

DEFAULT_INTERVAL_MS = MINUTE_MS
DEFAULT_CHAOS_CHECK_MS = 15 * MINUTE_MS
DEFAULT_DAILY_HOUR = 9
DEFAULT_TIMEZONE = "America/New_York"

_NAMED_INTERVALS: dict[str, int] = {
    "hourly": HOUR_MS,
    "weekly": 7 * DAY_MS,
    "minute": MINUTE_MS,
}
_UNIT_MS: dict[str, int] = {
    "s": SECOND_MS,
    "m": MINUTE_MS,
    "h": HOUR_MS,
    "d": DAY_MS,
}
_INTERVAL_RE = re.compile(r"^(\d+)([smhd])$")
_CHAOS_RE = re.compile(r"^chaos:(.+)$")


@dataclass(frozen=True)
class Interval:
    duration_ms: int


@dataclass(frozen=True)
class DailyAtHour:
    hour: int
    timezone: str


@dataclass(frozen=True)
class Chaos:
    check_interval_ms: int


Cadence = Interval | DailyAtHour | Chaos


def now_ms() -> int:
    return int(time.time() * 1000)


def valid_timezone(timezone: str | None) -> str:
    """Return ``timezone`` if the zone database knows it, else the default."""
    try:
        ZoneInfo(timezone or "")
    except (ZoneInfoNotFoundError, ValueError, OSError):
        logger.warning(
            "Unknown timezone %r; using default %s", timezone, DEFAULT_TIMEZONE
        )
        return DEFAULT_TIMEZONE
    return timezone


def _parse_interval_ms(text: str) -> int | None:
    if text in _NAMED_INTERVALS:
        return _NAMED_INTERVALS[text]
    match = _INTERVAL_RE.match(text)
    if not match:
        return None
    return int(match.group(1)) * _UNIT_MS[match.group(2)]


def parse_cadence(
    schedule: str | None,
    *,
    daily_hour: int = DEFAULT_DAILY_HOUR,
    timezone: str = DEFAULT_TIMEZONE,
) -> Cadence:
    """Parse a schedule string such as ``"5m"``, ``"daily"`` or ``"chaos:15m"``.

    Never raises. Unrecognised input degrades to a one minute interval so a
    typo in one alert's schedule cannot take the alert (or the loop) down.
    """
    text = (schedule or "").strip()
    if not text:
        logger.warning("Empty schedule: %r. Using default 1 minute.", schedule)
        return Interval(DEFAULT_INTERVAL_MS)

    if text == "daily":
        return DailyAtHour(hour=daily_hour, timezone=valid_timezone(timezone))

    interval_ms = _parse_interval_ms(text)
    if interval_ms is not None:
        return Interval(interval_ms)

    if text == "chaos":
        return Chaos(DEFAULT_CHAOS_CHECK_MS)

    match = _CHAOS_RE.match(text)
    if match:
        check_ms = _parse_interval_ms(match.group(1).strip())
        if check_ms is None:
            logger.warning(
                "Invalid chaos check interval in schedule %r; using default 15m", schedule
            )
            check_ms = DEFAULT_CHAOS_CHECK_MS
        return Chaos(check_ms)

    logger.warning("Invalid schedule format: %r. Using default 1 minute.", schedule)
    return Interval(DEFAULT_INTERVAL_MS)


def local_now(timezone: str, now: int) -> datetime:
    return datetime.fromtimestamp(now / 1000, tz=ZoneInfo(timezone))


def date_string(timezone: str, now: int) -> str:
    return local_now(timezone, now).strftime("%Y-%m-%d")


def _as_timestamp(marker: object) -> int:
    # bool is an int subclass; a stored true/false is not a timestamp
    if isinstance(marker, bool):
        return 0
    if isinstance(marker, (int, float)):
        return int(marker)
    return 0


def is_due(cadence: Cadence, last_run: object, now: int) -> bool:
    """Return True when a unit with ``cadence`` should be evaluated at ``now``.

    ``last_run`` is the stored RunState marker: epoch milliseconds for
    interval and chaos cadences, a ``YYYY-MM-DD`` string for daily ones.
    A missing marker means the unit never ran.
    """
    if isinstance(cadence, DailyAtHour):
        local = local_now(cadence.timezone, now)
        if local.hour != cadence.hour:
            return False
        return last_run != local.strftime("%Y-%m-%d")

    if isinstance(cadence, Chaos):
        period = cadence.check_interval_ms
    else:
        period = cadence.duration_ms
    return now - _as_timestamp(last_run) >= period


def run_marker(cadence: Cadence, now: int) -> int | str:
    if isinstance(cadence, DailyAtHour):
        return date_string(cadence.timezone, now)
    return now


def describe(cadence: Cadence) -> str:
    if isinstance(cadence, DailyAtHour):
        return f"daily at {cadence.hour:02d}:00 {cadence.timezone}"
    if isinstance(cadence, Chaos):
        return f"chaos (checks every {format_ms(cadence.check_interval_ms)})"
    return f"every {format_ms(cadence.duration_ms)}"


def next_run_description(cadence: Cadence, last_run: object) -> str:
    if isinstance(cadence, DailyAtHour):
        return f"{cadence.hour:02d}:00 {cadence.timezone}"
    period = (
        cadence.check_interval_ms if isinstance(cadence, Chaos) else cadence.duration_ms
    )
    next_ts = (_as_timestamp(last_run) + period) / 1000
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(next_ts))


def format_ms(duration_ms: int) -> str:
    for unit, size in (("d", DAY_MS), ("h", HOUR_MS), ("m", MINUTE_MS)):
        if duration_ms >= size and duration_ms % size == 0:
            return f"{duration_ms // size}{unit}"
    if duration_ms % SECOND_MS == 0:
        return f"{duration_ms // SECOND_MS}s"
    return f"{duration_ms}ms"
