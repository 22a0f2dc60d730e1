from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from app.models.transaction import Transaction
from app.utils.periods import (
    REPORTING_TIMEZONE,
    Period,
    as_utc,
    days_in_month,
    month_window,
    weekly_window,
)

logger = logging.getLogger(__name__)

_ONE_DAY = timedelta(days=1)


class Granularity(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Granularity":
        """Anything other than 'weekly' means monthly."""
        if value == cls.WEEKLY.value:
            return cls.WEEKLY
        return cls.MONTHLY


@dataclass
class Bucket:
    label: str
    income: float = 0.0
    expense: float = 0.0


@dataclass
class TimeSeries:
    granularity: Granularity
    buckets: List[Bucket]
    total_income: float = 0.0
    total_expense: float = 0.0
    dropped: int = field(default=0, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "labels": [bucket.label for bucket in self.buckets],
            "income": [bucket.income for bucket in self.buckets],
            "expenses": [bucket.expense for bucket in self.buckets],
            "summary": {
                "totalIncome": self.total_income,
                "totalExpense": self.total_expense,
                "period": self.granularity.value.capitalize(),
            },
        }


class TimeBucketer:
    """
    Spreads transactions over day buckets for the dashboard charts.

    Weekly buckets count whole days back from ``now`` (wall clock). Monthly
    buckets are calendar days of the current month in the reporting timezone.
    Transactions whose index falls outside the buckets are dropped, not errors.
    """

    def __init__(self, tz: tzinfo = REPORTING_TIMEZONE) -> None:
        self._tz = tz

    def window(self, granularity: Granularity, now: datetime) -> Period:
        """The store query window backing a series."""
        if granularity == Granularity.WEEKLY:
            return weekly_window(now)
        return month_window(now, self._tz)

    def bucket(
        self,
        transactions: Iterable[Transaction],
        granularity: Granularity,
        now: datetime,
    ) -> TimeSeries:
        if granularity == Granularity.WEEKLY:
            series = TimeSeries(granularity, self._weekly_buckets(now))
        else:
            series = TimeSeries(granularity, self._monthly_buckets(now))

        for txn in transactions:
            index = self.index(granularity, txn.date, now)
            if not 0 <= index < len(series.buckets):
                series.dropped += 1
                continue
            bucket = series.buckets[index]
            if txn.is_income:
                bucket.income += txn.amount
                series.total_income += txn.amount
            else:
                bucket.expense += txn.amount
                series.total_expense += txn.amount

        if series.dropped:
            logger.debug(f"Dropped {series.dropped} transactions outside the {granularity.value} buckets")
        return series

    def index(self, granularity: Granularity, moment: datetime, now: datetime) -> int:
        if granularity == Granularity.WEEKLY:
            return self.weekly_index(moment, now)
        return self.monthly_index(moment)

    @staticmethod
    def weekly_index(moment: datetime, now: datetime) -> int:
        # Floor division on timedeltas rounds towards fewer elapsed days
        return 6 - (as_utc(now) - as_utc(moment)) // _ONE_DAY

    def monthly_index(self, moment: datetime) -> int:
        return as_utc(moment).astimezone(self._tz).day - 1

    @staticmethod
    def _weekly_buckets(now: datetime) -> List[Bucket]:
        return [Bucket(label=(now - offset * _ONE_DAY).strftime("%a")) for offset in range(6, -1, -1)]

    def _monthly_buckets(self, now: datetime) -> List[Bucket]:
        return [Bucket(label=str(day)) for day in range(1, days_in_month(now, self._tz) + 1)]
