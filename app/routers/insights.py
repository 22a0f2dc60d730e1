import logging
from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.core.security import get_current_user_id
from app.db import dynamo
from app.utils.insights import InsightEngine, build_response
from app.utils.periods import server_timezone

router = APIRouter()
logger = logging.getLogger(__name__)

insight_engine = InsightEngine(
    dynamo.find_transactions,
    category_threshold=settings.INSIGHT_CATEGORY_THRESHOLD,
    overall_threshold=settings.INSIGHT_OVERALL_THRESHOLD,
)


@router.get("/")
def get_insights(user_id: str = Depends(get_current_user_id)) -> Dict:
    """Month-over-month spending insights for the current user."""
    now = datetime.now(timezone.utc)
    insights = insight_engine.generate(user_id, now, server_timezone())
    return build_response(insights, generated_at=now)


@router.get("/categories/{category}")
def get_category_insights(category: str, user_id: str = Depends(get_current_user_id)) -> Dict:
    """Only the category_change insights for one category."""
    now = datetime.now(timezone.utc)
    insights = insight_engine.category_insights(user_id, category, now, server_timezone())
    return {
        "insights": [insight.to_dict() for insight in insights],
        "category": category,
        "count": len(insights),
    }
