from datetime import datetime, timedelta, timezone

import pytest

from app.utils.buckets import Granularity, TimeBucketer
from app.utils.periods import REPORTING_TIMEZONE
from tests.factories import make_txn

NOW = datetime(2025, 6, 18, 15, 0, tzinfo=timezone.utc)  # a Wednesday


def test_weekly_always_has_seven_buckets():
    series = TimeBucketer().bucket([], Granularity.WEEKLY, NOW)
    assert len(series.buckets) == 7
    assert all(bucket.income == 0 and bucket.expense == 0 for bucket in series.buckets)


def test_weekly_labels_end_today():
    data = TimeBucketer().bucket([], Granularity.WEEKLY, NOW).to_dict()
    assert data["labels"] == ["Thu", "Fri", "Sat", "Sun", "Mon", "Tue", "Wed"]
    assert data["summary"]["period"] == "Weekly"


def test_weekly_index_counts_whole_days_back():
    bucketer = TimeBucketer()
    assert bucketer.weekly_index(NOW, NOW) == 6
    assert bucketer.weekly_index(NOW - timedelta(hours=23, minutes=59), NOW) == 6
    assert bucketer.weekly_index(NOW - timedelta(days=1), NOW) == 5
    assert bucketer.weekly_index(NOW - timedelta(days=6, hours=12), NOW) == 0


def test_weekly_drops_out_of_range_transactions():
    transactions = [
        make_txn(10.0, date=NOW - timedelta(hours=2)),
        make_txn(20.0, date=NOW + timedelta(minutes=5)),  # clock skew
        make_txn(30.0, date=NOW - timedelta(days=8)),
    ]
    series = TimeBucketer().bucket(transactions, Granularity.WEEKLY, NOW)
    assert series.buckets[6].expense == 10.0
    assert series.total_expense == 10.0
    assert series.dropped == 2


def test_weekly_income_sum_matches_total():
    transactions = [
        make_txn(100.0, "other", "income", NOW - timedelta(days=day, hours=1))
        for day in range(6)
    ] + [make_txn(42.0, "food", "expense", NOW - timedelta(days=3))]
    series = TimeBucketer().bucket(transactions, Granularity.WEEKLY, NOW)
    assert sum(bucket.income for bucket in series.buckets) == series.total_income == 600.0
    assert series.buckets[3].expense == 42.0


@pytest.mark.parametrize(
    "now, expected",
    [
        (datetime(2023, 2, 10, 12, 0, tzinfo=timezone.utc), 28),
        (datetime(2024, 2, 10, 12, 0, tzinfo=timezone.utc), 29),
        (datetime(2024, 4, 10, 12, 0, tzinfo=timezone.utc), 30),
        (datetime(2024, 7, 10, 12, 0, tzinfo=timezone.utc), 31),
    ],
)
def test_monthly_bucket_count_is_days_in_month(now, expected):
    data = TimeBucketer().bucket([], Granularity.MONTHLY, now).to_dict()
    assert len(data["labels"]) == expected
    assert data["labels"][0] == "1"
    assert data["labels"][-1] == str(expected)
    assert data["summary"]["period"] == "Monthly"


def test_monthly_month_is_read_in_reporting_timezone():
    # 2024-04-30 19:00 UTC is already 1 May in IST
    now = datetime(2024, 4, 30, 19, 0, tzinfo=timezone.utc)
    series = TimeBucketer(REPORTING_TIMEZONE).bucket([], Granularity.MONTHLY, now)
    assert len(series.buckets) == 31


def test_monthly_day_index_uses_reporting_timezone():
    now = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)
    transactions = [
        make_txn(50.0, date=datetime(2024, 4, 30, 19, 0, tzinfo=timezone.utc)),  # 1 May 00:30 IST
        make_txn(70.0, "other", "income", datetime(2024, 5, 10, 20, 0, tzinfo=timezone.utc)),  # 11 May IST
    ]
    series = TimeBucketer(REPORTING_TIMEZONE).bucket(transactions, Granularity.MONTHLY, now)
    assert series.buckets[0].expense == 50.0
    assert series.buckets[10].income == 70.0
    assert series.total_income == 70.0
    assert series.total_expense == 50.0


def test_monthly_window_is_reporting_month_in_utc():
    window = TimeBucketer(REPORTING_TIMEZONE).window(Granularity.MONTHLY, datetime(2024, 5, 15, tzinfo=timezone.utc))
    assert window.start == datetime(2024, 4, 30, 18, 30, tzinfo=timezone.utc)
    assert window.end == datetime(2024, 5, 31, 18, 30, tzinfo=timezone.utc)


def test_weekly_window_ends_now():
    window = TimeBucketer().window(Granularity.WEEKLY, NOW)
    assert window.end == NOW
    assert window.start == NOW - timedelta(days=7)


@pytest.mark.parametrize(
    "value, expected",
    [("weekly", Granularity.WEEKLY), ("monthly", Granularity.MONTHLY), ("yearly", Granularity.MONTHLY), (None, Granularity.MONTHLY)],
)
def test_unknown_period_defaults_to_monthly(value, expected):
    assert Granularity.parse(value) == expected
