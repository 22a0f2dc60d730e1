"""
Health Check Router
Liveness and dependency status endpoints
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from app.core.config import settings
from app.db import dynamo
from app.utils.scheduler import get_scheduler_status

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "OK",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _table_status(table, name: str) -> dict:
    try:
        table.scan(Limit=1)
        return {"name": name, "status": "accessible", "region": settings.DYNAMO_REGION}
    except Exception as e:
        logger.error(f"DynamoDB check failed for {name}: {str(e)}")
        return {"name": name, "status": "error", "error": str(e)}


@router.get("/status")
def services_status():
    """
    Check connectivity of the DynamoDB tables and the report scheduler.
    """
    tables = {
        "users": _table_status(dynamo.users_table, settings.DYNAMO_USERS_TABLE),
        "transactions": _table_status(dynamo.transactions_table, settings.DYNAMO_TRANSACTIONS_TABLE),
    }
    dynamodb_connected = all(table["status"] == "accessible" for table in tables.values())
    scheduler_status = get_scheduler_status()

    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "dynamodb": {"connected": dynamodb_connected, "tables": tables},
            "scheduler": scheduler_status,
        },
        "overall_status": "healthy" if dynamodb_connected and scheduler_status["running"] else "degraded",
    }
