"""APScheduler job definitions and scheduler management.

A BackgroundScheduler runs the comparison refresh every
``COMPARISON_INTERVAL_HOURS``; start/shutdown/status helpers serve the
FastAPI lifespan and the health check.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from review_compare.core.config import settings
from review_compare.services.pipeline import run_scheduled_comparisons

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()

REFRESH_JOB_ID = "comparison_refresh"


def _refresh_job() -> None:
    run_scheduled_comparisons(trigger="scheduler")


def start_scheduler() -> bool:
    """Add the refresh job and start the scheduler.

    Returns False without starting anything when ``SCHEDULER_ENABLED`` is off.
    """
    if not settings.SCHEDULER_ENABLED:
        logger.info("scheduler_disabled")
        return False

    scheduler.add_job(
        _refresh_job,
        IntervalTrigger(hours=settings.COMPARISON_INTERVAL_HOURS),
        id=REFRESH_JOB_ID,
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        "scheduler_started",
        extra={"interval_hours": settings.COMPARISON_INTERVAL_HOURS},
    )
    return True


def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")


def is_scheduler_running() -> bool:
    return scheduler.running
