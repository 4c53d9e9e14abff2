# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for the ranking engine.

This module provides the calendar arithmetic used by metric aggregation and
weekly snapshots, so every component agrees on what "today" and "this week"
mean.

Design Decisions:
-----------------
1. All stored timestamps are UTC (timezone-aware)
2. Naive datetimes are assumed to be UTC
3. Calendar boundaries (midnight, week start) are computed in a single
   configured timezone and converted back to aware datetimes

Usage:
------
    from src.utils.datetime import start_of_week, utc_now

    week_start = start_of_week(utc_now(), ZoneInfo("Asia/Kolkata"), 6)
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

SUNDAY = 6


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.

    Example:
        >>> now = utc_now()
        >>> now.tzinfo
        datetime.timezone.utc
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def parse_iso(iso_string: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime string.

    Args:
        iso_string: ISO 8601 formatted string.

    Returns:
        Timezone-aware UTC datetime or None.

    Raises:
        ValueError: If the string is not a valid ISO 8601 datetime.
    """
    if iso_string is None:
        return None

    dt = datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
    return ensure_utc(dt)


def resolve_timezone(name: str) -> tzinfo:
    """Resolve an IANA timezone name.

    Args:
        name: Timezone name such as "UTC" or "Asia/Kolkata".

    Returns:
        The tzinfo for the name.

    Raises:
        ValueError: If the name is unknown.
    """
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def local_date(dt: datetime, tz: tzinfo) -> date:
    """Get the calendar date of an instant in the given timezone."""
    return ensure_utc(dt).astimezone(tz).date()


def local_midnight(day: date, tz: tzinfo) -> datetime:
    """Get the instant of local midnight starting the given date, in UTC."""
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)


def start_of_day(now: datetime, tz: tzinfo) -> datetime:
    """Get the start of the local day containing now.

    Args:
        now: Reference instant.
        tz: Timezone defining calendar days.

    Returns:
        Timezone-aware UTC datetime of local midnight.
    """
    return local_midnight(local_date(now, tz), tz)


def week_start_date(day: date, week_start_day: int = SUNDAY) -> date:
    """Get the first date of the week containing day.

    Args:
        day: Any date.
        week_start_day: Weekday the week starts on (Monday=0 .. Sunday=6).

    Returns:
        The most recent date on or before day falling on week_start_day.
    """
    offset = (day.weekday() - week_start_day) % 7
    return day - timedelta(days=offset)


def start_of_week(now: datetime, tz: tzinfo, week_start_day: int = SUNDAY) -> datetime:
    """Get the start of the local week containing now.

    Args:
        now: Reference instant.
        tz: Timezone defining calendar days.
        week_start_day: Weekday the week starts on (Monday=0 .. Sunday=6).

    Returns:
        Timezone-aware UTC datetime of local midnight on the week's first day.
    """
    first_day = week_start_date(local_date(now, tz), week_start_day)
    return local_midnight(first_day, tz)


def week_bounds(
    now: datetime,
    tz: tzinfo,
    week_start_day: int = SUNDAY,
) -> tuple[date, date]:
    """Get the first and last dates of the local week containing now.

    Returns:
        Tuple of (week_start, week_end), both inclusive.
    """
    first_day = week_start_date(local_date(now, tz), week_start_day)
    return first_day, first_day + timedelta(days=6)

