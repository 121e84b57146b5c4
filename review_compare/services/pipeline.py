"""Scheduled comparison refresh.

Compares both providers for every location that still has unprocessed
reviews.  Locations run one after another; a failing location is logged
and the run carries on with the next one (status ``partial``).
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any
from uuid import uuid4

from review_compare.core.config import settings
from review_compare.core.dependencies import get_comparison_service, get_store
from review_compare.scheduler.lock import acquire_refresh_lock, release_refresh_lock

logger = logging.getLogger(__name__)


async def _compare_locations(run_id: str) -> dict[str, Any]:
    store = get_store()
    service = get_comparison_service()

    locations = await store.get_unprocessed_locations()
    compared: list[str] = []
    failed: list[str] = []

    for location in locations:
        location_start = time.time()
        try:
            reviews = await store.get_reviews_with_filter(
                location,
                max_months=settings.REVIEW_MAX_MONTHS,
                max_reviews=settings.REVIEW_MAX_COUNT,
            )
            if not reviews:
                logger.info(
                    "location_skipped_no_recent_reviews",
                    extra={"run_id": run_id, "location": location},
                )
                continue

            result = await service.compare(location, reviews)
            compared.append(location)
            logger.info(
                "location_compared",
                extra={
                    "run_id": run_id,
                    "location": location,
                    "review_count": len(reviews),
                    "sentiment_agreement": round(
                        result.comparison_metrics.sentiment_agreement, 2
                    ),
                    "duration_ms": int((time.time() - location_start) * 1000),
                },
            )
        except Exception as exc:
            failed.append(location)
            logger.error(
                "location_comparison_failed",
                extra={
                    "run_id": run_id,
                    "location": location,
                    "error_message": str(exc),
                },
            )

    return {"locations": locations, "compared": compared, "failed": failed}


def run_scheduled_comparisons(trigger: str = "scheduler") -> dict[str, Any]:
    """Refresh comparisons for locations with unprocessed reviews.

    Parameters
    ----------
    trigger:
        Either "scheduler" or "manual"; logged for observability.

    Returns
    -------
    Dict with the run summary, or a skip message when a run is in progress.
    """
    run_id = str(uuid4())

    if not acquire_refresh_lock(run_id):
        logger.warning(
            "Comparison refresh already running, skipping trigger",
            extra={"run_id": run_id, "trigger": trigger},
        )
        return {"status": "skipped", "reason": "refresh_already_running"}

    start_time = time.time()
    logger.info("refresh_start", extra={"run_id": run_id, "trigger": trigger})

    try:
        outcome = asyncio.run(_compare_locations(run_id))
        duration = time.time() - start_time
        status = "partial" if outcome["failed"] else "success"

        logger.info(
            "refresh_complete",
            extra={
                "run_id": run_id,
                "status": status,
                "location_count": len(outcome["locations"]),
                "compared_count": len(outcome["compared"]),
                "failed_count": len(outcome["failed"]),
                "duration_seconds": round(duration, 2),
            },
        )
        return {
            "run_id": run_id,
            "status": status,
            "compared": outcome["compared"],
            "failed": outcome["failed"],
            "duration_seconds": round(duration, 2),
        }

    except Exception as exc:
        duration = time.time() - start_time
        logger.error(
            "refresh_error",
            extra={"run_id": run_id, "error_message": str(exc)},
        )
        return {
            "run_id": run_id,
            "status": "failed",
            "error": str(exc),
            "duration_seconds": round(duration, 2),
        }

    finally:
        release_refresh_lock()
