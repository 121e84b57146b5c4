"""Review import and listing endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from review_compare.core.dependencies import get_store
from review_compare.db.store import ReviewStore
from review_compare.services.ingest import parse_reviews_csv

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload", status_code=200)
async def upload_reviews(
    file: UploadFile = File(..., description="Review export named Apple-{Location}.csv"),
    store: ReviewStore = Depends(get_store),
) -> dict[str, Any]:
    """Parse an uploaded CSV export and store its reviews.

    400 when the file holds no reviews, 500 when storing any of them fails.
    """
    filename = file.filename or ""
    content = await file.read()

    try:
        reviews = parse_reviews_csv(content, filename)
    except Exception as exc:
        logger.error(
            "upload_parse_failed",
            extra={"file_name": filename, "error_message": str(exc)},
        )
        raise HTTPException(status_code=400, detail=f"Could not parse CSV: {exc}") from exc

    if not reviews:
        raise HTTPException(status_code=400, detail="No reviews found in uploaded file")

    if not await store.store_reviews(reviews):
        raise HTTPException(status_code=500, detail="Failed to store some reviews")

    return {
        "location": reviews[0].location,
        "stored_count": len(reviews),
        "message": "Reviews imported",
    }


@router.get("/locations", status_code=200)
async def list_locations(store: ReviewStore = Depends(get_store)) -> dict[str, Any]:
    locations = await store.get_locations()
    return {"locations": locations, "count": len(locations)}
