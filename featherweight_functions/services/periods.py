# featherweight_functions/services/periods.py
# -*- coding: utf-8 -*-
"""
Calendar periods used by the quota ledger.

Timestamps are stored as naive UTC. Period membership is decided on the
calendar of the deployment timezone: a day ends at local midnight, a week
starts on Sunday midnight, a month on the 1st. Nothing here reads the clock;
callers always pass ``now``.
"""
from __future__ import annotations
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo

PERIODS = ("daily", "weekly", "monthly")


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(dt: datetime | None) -> datetime:
    """``dt`` (or the current time) as the naive UTC value the ledger stores."""
    if dt is None:
        return utcnow()
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


@lru_cache(maxsize=32)
def resolve_tz(name: str | None) -> tzinfo:
    if not name or name.upper() in ("UTC", "ETC/UTC", "Z"):
        return timezone.utc
    return ZoneInfo(name)


def _local(dt: datetime, tz: str | None) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(resolve_tz(tz))


def week_start(d: date) -> date:
    # weekday(): Monday=0 ... Sunday=6 -> days since the last Sunday
    return d - timedelta(days=(d.weekday() + 1) % 7)


def period_key(dt: datetime, period: str, tz: str | None = None) -> tuple:
    """Orderable key of the calendar period ``dt`` falls in."""
    local = _local(dt, tz)
    if period == "daily":
        return (local.year, local.month, local.day)
    if period == "weekly":
        start = week_start(local.date())
        return (start.year, start.month, start.day)
    if period == "monthly":
        return (local.year, local.month)
    raise ValueError(f"unknown period: {period}")


def period_boundary_crossed(last_reset: datetime | None, period: str, now: datetime, tz: str | None = None) -> bool:
    """True when ``last_reset`` lies in a calendar period strictly before the one of ``now``.

    A missing marker counts as crossed. A marker in a later period than
    ``now`` (clock skew between writers) does not.
    """
    if last_reset is None:
        return True
    return period_key(last_reset, period, tz) < period_key(now, period, tz)


def next_reset_at(period: str, now: datetime, tz: str | None = None) -> datetime:
    """Start of the period following the one of ``now``, as naive UTC."""
    zone = resolve_tz(tz)
    local = _local(now, tz)
    today = local.date()
    if period == "daily":
        nxt = today + timedelta(days=1)
    elif period == "weekly":
        nxt = week_start(today) + timedelta(days=7)
    elif period == "monthly":
        nxt = date(today.year + 1, 1, 1) if today.month == 12 else date(today.year, today.month + 1, 1)
    else:
        raise ValueError(f"unknown period: {period}")
    start = datetime.combine(nxt, time(0), tzinfo=zone)
    return start.astimezone(timezone.utc).replace(tzinfo=None)
