"""
Capture interval definitions and window arithmetic.

All instants are naive UTC. Aware datetimes are converted on the way in.
"""

from datetime import datetime, timedelta, timezone

from app.services.vmdb_metrics.errors import UnknownIntervalError

INTERVAL_DURATIONS = {
    "hourly": timedelta(hours=1),
    "daily": timedelta(days=1),
    "weekly": timedelta(weeks=1),
}

# Rollup interval -> the finer interval it is built from
SOURCE_INTERVALS = {
    "daily": "hourly",
    "weekly": "daily",
}


def to_utc_naive(instant: datetime) -> datetime:
    if instant.tzinfo is not None:
        instant = instant.astimezone(timezone.utc).replace(tzinfo=None)
    return instant


def interval_duration(interval_name: str) -> timedelta:
    try:
        return INTERVAL_DURATIONS[interval_name]
    except KeyError:
        raise UnknownIntervalError(interval_name, INTERVAL_DURATIONS) from None


def source_interval(interval_name: str) -> str:
    """Name of the interval whose records are aggregated into interval_name."""
    try:
        return SOURCE_INTERVALS[interval_name]
    except KeyError:
        raise UnknownIntervalError(interval_name, SOURCE_INTERVALS) from None


def rollup_depth(interval_name: str) -> int:
    """Number of rollup steps between captured records and interval_name (hourly = 0)."""
    depth = 0
    while interval_name in SOURCE_INTERVALS:
        interval_name = SOURCE_INTERVALS[interval_name]
        depth += 1
    return depth


def beginning_of_hour(instant: datetime) -> datetime:
    return to_utc_naive(instant).replace(minute=0, second=0, microsecond=0)


def beginning_of_day(instant: datetime) -> datetime:
    return to_utc_naive(instant).replace(hour=0, minute=0, second=0, microsecond=0)


def beginning_of_week(instant: datetime) -> datetime:
    """Monday 00:00 of the week containing instant."""
    day = beginning_of_day(instant)
    return day - timedelta(days=day.weekday())


def window_start_for(interval_name: str, instant: datetime) -> datetime:
    """
    Start of the interval_name bucket containing instant.

    Args:
        interval_name: "hourly", "daily" or "weekly"
        instant: Any point in time inside the bucket

    Returns:
        Bucket start (naive UTC)

    Raises:
        UnknownIntervalError: If interval_name is not configured
    """
    if interval_name == "hourly":
        return beginning_of_hour(instant)
    elif interval_name == "daily":
        return beginning_of_day(instant)
    elif interval_name == "weekly":
        return beginning_of_week(instant)
    raise UnknownIntervalError(interval_name, INTERVAL_DURATIONS)


def iter_windows(interval_name: str, start: datetime, end: datetime):
    """Start of every interval_name window overlapping [start, end)."""
    current = window_start_for(interval_name, start)
    step = interval_duration(interval_name)
    end = to_utc_naive(end)
    while current < end:
        yield current
        current += step
