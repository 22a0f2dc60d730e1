import logging
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query

from app.core.config import settings
from app.core.security import get_current_user_id
from app.db import dynamo
from app.utils.buckets import Granularity, TimeBucketer
from app.utils.periods import month_window, reporting_timezone, server_timezone
from app.utils.summary import SummaryAggregator

router = APIRouter()
logger = logging.getLogger(__name__)

reporting_tz = reporting_timezone(settings.REPORTING_UTC_OFFSET_MINUTES)
summary_aggregator = SummaryAggregator()
time_bucketer = TimeBucketer(reporting_tz)


def current_time() -> datetime:
    return datetime.now(server_timezone())


@router.get("/summary")
def get_summary(user_id: str = Depends(get_current_user_id)) -> Dict:
    """
    Income, expense and balance over all of the user's transactions, the five
    most recent ones, this month's stats and expense totals per category.
    """
    transactions = dynamo.find_transactions(user_id)
    logger.info(f"Building dashboard summary for user {user_id} from {len(transactions)} transactions")
    return summary_aggregator.summarize(transactions, month=month_window(current_time(), reporting_tz))


@router.get("/time-data")
def get_time_data(
    period: Optional[str] = Query(None, description="weekly or monthly (default)"),
    user_id: str = Depends(get_current_user_id),
) -> Dict:
    """Chart series of daily income and expenses for the last 7 days or the current month."""
    granularity = Granularity.parse(period)
    now = current_time()
    transactions = dynamo.find_transactions(user_id, period=time_bucketer.window(granularity, now))
    return time_bucketer.bucket(transactions, granularity, now).to_dict()
