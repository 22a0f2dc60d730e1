"""
Calendar windows for aggregation queries.

Store queries are half-open UTC intervals, but which calendar month or day a
moment belongs to depends on the timezone it is read in. Two conventions are
in use and are kept apart on purpose:

* ``REPORTING_TIMEZONE`` (UTC+5:30) drives dashboard bucketing and the
  dashboard's current month.
* ``server_timezone()`` drives month-over-month insights.

Nothing here reads the clock: callers pass ``now`` and the timezone.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Tuple

from dateutil.tz import tzlocal

IST_OFFSET_MINUTES = 330


def reporting_timezone(offset_minutes: int = IST_OFFSET_MINUTES) -> timezone:
    return timezone(timedelta(minutes=offset_minutes))


REPORTING_TIMEZONE = reporting_timezone()


def server_timezone() -> tzinfo:
    """The host's local zone, with its daylight saving rules."""
    return tzlocal()


@dataclass(frozen=True)
class Period:
    """Half-open interval [start, end) of UTC instants."""

    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= as_utc(moment) < self.end


def as_utc(moment: datetime) -> datetime:
    # Naive datetimes come from the store and are UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _shift_month(year: int, month: int, offset: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def month_window(now: datetime, tz: tzinfo, offset: int = 0) -> Period:
    """
    The calendar month containing ``now`` as seen from ``tz``, shifted by
    ``offset`` months, as UTC instants.
    """
    local = as_utc(now).astimezone(tz)
    year, month = _shift_month(local.year, local.month, offset)
    next_year, next_month = _shift_month(year, month, 1)
    return Period(
        start=datetime(year, month, 1, tzinfo=tz).astimezone(timezone.utc),
        end=datetime(next_year, next_month, 1, tzinfo=tz).astimezone(timezone.utc),
    )


def days_in_month(now: datetime, tz: tzinfo) -> int:
    local = as_utc(now).astimezone(tz)
    return calendar.monthrange(local.year, local.month)[1]


def month_name(now: datetime, tz: tzinfo, offset: int = 0) -> str:
    local = as_utc(now).astimezone(tz)
    _, month = _shift_month(local.year, local.month, offset)
    return calendar.month_name[month]


def month_label(now: datetime, tz: tzinfo, offset: int = 0) -> str:
    """e.g. 'June 2025'"""
    local = as_utc(now).astimezone(tz)
    year, month = _shift_month(local.year, local.month, offset)
    return f"{calendar.month_name[month]} {year}"


def weekly_window(now: datetime) -> Period:
    """The seven days ending at ``now``."""
    end = as_utc(now)
    return Period(start=end - timedelta(days=7), end=end)
