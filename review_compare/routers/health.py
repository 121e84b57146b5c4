"""Health check endpoint.

Reports database connectivity, scheduler state and whether a comparison
refresh is currently running.
"""

import logging
from typing import Any

from fastapi import APIRouter
from starlette.responses import JSONResponse

from review_compare.db.store import REVIEWS_TABLE
from review_compare.db.supabase import get_supabase
from review_compare.scheduler.jobs import is_scheduler_running
from review_compare.scheduler.lock import is_refresh_running

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check() -> Any:
    """Return 200 when the database answers, 503 otherwise."""
    db_status = "disconnected"

    try:
        client = get_supabase()
        result = client.table(REVIEWS_TABLE).select("id").limit(1).execute()
        if result is not None:
            db_status = "connected"
    except Exception:
        logger.warning("Health check: Supabase connection failed", exc_info=True)

    payload: dict[str, Any] = {
        "status": "ok" if db_status == "connected" else "degraded",
        "database": db_status,
        "scheduler": "running" if is_scheduler_running() else "stopped",
        "refresh_running": is_refresh_running(),
    }

    if db_status != "connected":
        return JSONResponse(status_code=503, content=payload)

    return payload
