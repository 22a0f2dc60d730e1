"""
Scheduler Service
Runs the monthly PDF report emailer on a cron schedule using APScheduler
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.config import settings
from app.db import dynamo
from app.utils import email_service, pdf_report
from app.utils.periods import REPORTING_TIMEZONE, as_utc, month_label, month_window
from app.utils.summary import SummaryAggregator

logger = logging.getLogger(__name__)

MONTHLY_REPORTS_JOB_ID = "monthly_financial_reports"

# Scheduler instance (exported for the health router)
scheduler: Optional[BackgroundScheduler] = None

_aggregator = SummaryAggregator()


def send_user_report(user: Dict, now: datetime) -> bool:
    """
    Build and mail last month's report for one user. Returns False when the
    user had no activity or the email could not be sent.
    """
    user_id = user["user_id"]
    email = user.get("email")
    # Data window is the previous UTC calendar month, the label follows the reporting zone
    period = month_window(now, timezone.utc, offset=-1)
    label = month_label(now, REPORTING_TIMEZONE, offset=-1)

    transactions = sorted(
        dynamo.find_transactions(user_id, period=period),
        key=lambda txn: as_utc(txn.date),
    )
    total_income, total_expense = _aggregator.totals(transactions)
    logger.info(
        f"Report for {email} ({label}): income={total_income:.2f}, "
        f"expense={total_expense:.2f}, net={total_income - total_expense:.2f}"
    )

    if not transactions:
        logger.info(f"No financial activity for {email} in {label}. Skipping report.")
        return False

    pdf_bytes = pdf_report.render_monthly_report(
        user_name=user.get("name", ""),
        user_email=email,
        transactions=transactions,
        total_income=total_income,
        total_expense=total_expense,
        period_label=label,
        generated_on=now,
    )
    return email_service.send_monthly_report_email(email, label, pdf_bytes)


def monthly_reports_job(now: Optional[datetime] = None) -> Dict:
    """Job function: send the monthly report to every user who has notifications on"""
    now = now or datetime.now(timezone.utc)
    logger.info("Running monthly reports job...")

    try:
        users = dynamo.list_users()
    except dynamo.StoreUnavailable as e:
        logger.error(f"Monthly reports job aborted, could not list users: {str(e)}")
        return {"success": False, "error": str(e)}

    sent = 0
    failed = 0
    for user in users:
        if not user.get("notifications", True) or not user.get("email"):
            continue
        try:
            if send_user_report(user, now):
                sent += 1
        except Exception as e:
            failed += 1
            logger.error(f"Error generating report for user {user.get('user_id', 'unknown')}: {str(e)}")

    logger.info(f"Monthly reports job finished: {sent} sent, {failed} failed, {len(users)} users")
    return {"success": True, "users": len(users), "reports_sent": sent, "failed": failed}


def start_scheduler():
    """Start the background scheduler with the monthly reports job"""
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler is already running")
        return

    scheduler = BackgroundScheduler(timezone=timezone.utc)
    if settings.MONTHLY_REPORTS_ENABLED:
        scheduler.add_job(
            monthly_reports_job,
            trigger=CronTrigger(
                day=settings.MONTHLY_REPORTS_DAY,
                hour=settings.MONTHLY_REPORTS_HOUR,
                minute=settings.MONTHLY_REPORTS_MINUTE,
                timezone=timezone.utc,
            ),
            id=MONTHLY_REPORTS_JOB_ID,
            name="Monthly Financial Reports",
            replace_existing=True,
        )
        logger.info(
            f"Monthly reports scheduled: day={settings.MONTHLY_REPORTS_DAY}, "
            f"hour={settings.MONTHLY_REPORTS_HOUR}, minute={settings.MONTHLY_REPORTS_MINUTE} (UTC)"
        )

    scheduler.start()
    logger.info("Scheduler started.")


def stop_scheduler():
    """Stop the background scheduler"""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown()
        scheduler = None
        logger.info("Scheduler stopped")


def get_scheduler_status():
    """Get current scheduler status"""
    if scheduler is None:
        return {"running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
        })

    return {
        "running": scheduler.running,
        "jobs": jobs,
    }
