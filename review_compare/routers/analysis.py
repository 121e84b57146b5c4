"""Analysis endpoints: per-provider summaries, comparison, hybrid, refresh.

Every analysis works on the location's recent reviews (last
``REVIEW_MAX_MONTHS`` months, at most ``REVIEW_MAX_COUNT``).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from review_compare.core.config import settings
from review_compare.core.dependencies import (
    get_chat_analyzer,
    get_comparison_service,
    get_store,
    get_text_analytics_analyzer,
)
from review_compare.db.store import ReviewStore
from review_compare.models.comparison import ComparisonResult, HybridResult
from review_compare.models.review import Review
from review_compare.models.summary import ChatSummary, TextAnalyticsSummary
from review_compare.services.chat_analyzer import ChatAnalyzer
from review_compare.services.comparison import ComparisonService
from review_compare.services.hybrid import run_hybrid_analysis
from review_compare.services.pipeline import run_scheduled_comparisons
from review_compare.services.text_analytics_analyzer import TextAnalyticsAnalyzer

logger = logging.getLogger(__name__)

router = APIRouter()


async def _recent_reviews(store: ReviewStore, location: str) -> list[Review]:
    reviews = await store.get_reviews_with_filter(
        location,
        max_months=settings.REVIEW_MAX_MONTHS,
        max_reviews=settings.REVIEW_MAX_COUNT,
    )
    if not reviews:
        raise HTTPException(
            status_code=404,
            detail=f"No reviews found for location: {location}",
        )
    return reviews


def _analysis_failed(operation: str, location: str, exc: Exception) -> HTTPException:
    logger.error(
        f"{operation}_failed",
        extra={"location": location, "error_message": str(exc)},
    )
    return HTTPException(status_code=500, detail=f"Analysis failed: {exc}")


# ---------------------------------------------------------------------------
# Single provider
# ---------------------------------------------------------------------------


@router.post("/text-analytics", response_model=TextAnalyticsSummary)
async def analyze_with_text_analytics(
    location: str = Query(..., min_length=1, description="Location to analyze"),
    store: ReviewStore = Depends(get_store),
    analyzer: TextAnalyticsAnalyzer = Depends(get_text_analytics_analyzer),
) -> TextAnalyticsSummary:
    """Run the text analytics provider and store its results and summary."""
    reviews = await _recent_reviews(store, location)
    try:
        results = await analyzer.analyze_reviews(reviews)
        summary = await analyzer.generate_summary(location, results)
    except Exception as exc:
        raise _analysis_failed("text_analytics_analysis", location, exc) from exc

    await store.store_text_analytics_results(results)
    await store.store_text_analytics_summary(summary)
    return summary


@router.post("/chat", response_model=ChatSummary)
async def analyze_with_chat(
    location: str = Query(..., min_length=1, description="Location to analyze"),
    store: ReviewStore = Depends(get_store),
    analyzer: ChatAnalyzer = Depends(get_chat_analyzer),
) -> ChatSummary:
    """Run the chat provider and store its results and summary."""
    reviews = await _recent_reviews(store, location)
    try:
        results = await analyzer.analyze_reviews(reviews)
        summary = await analyzer.generate_summary(location, results)
    except Exception as exc:
        raise _analysis_failed("chat_analysis", location, exc) from exc

    await store.store_chat_results(results)
    await store.store_chat_summary(summary)
    return summary


@router.get("/text-analytics", response_model=TextAnalyticsSummary)
async def get_stored_text_analytics_summary(
    location: str = Query(..., min_length=1, description="Location to look up"),
    store: ReviewStore = Depends(get_store),
) -> TextAnalyticsSummary:
    """Return the last stored text analytics summary for a location."""
    summary = await store.get_text_analytics_summary(location)
    if summary is None:
        raise HTTPException(
            status_code=404,
            detail=f"No text analytics summary stored for location: {location}",
        )
    return summary


@router.get("/chat", response_model=ChatSummary)
async def get_stored_chat_summary(
    location: str = Query(..., min_length=1, description="Location to look up"),
    store: ReviewStore = Depends(get_store),
) -> ChatSummary:
    """Return the last stored chat summary for a location."""
    summary = await store.get_chat_summary(location)
    if summary is None:
        raise HTTPException(
            status_code=404,
            detail=f"No chat summary stored for location: {location}",
        )
    return summary


# ---------------------------------------------------------------------------
# Comparison and hybrid
# ---------------------------------------------------------------------------


@router.post("/compare", response_model=ComparisonResult)
async def compare_providers(
    location: str = Query(..., min_length=1, description="Location to analyze"),
    store: ReviewStore = Depends(get_store),
    service: ComparisonService = Depends(get_comparison_service),
) -> ComparisonResult:
    """Analyze with both providers and return the comparison."""
    reviews = await _recent_reviews(store, location)
    try:
        return await service.compare(location, reviews)
    except Exception as exc:
        raise _analysis_failed("comparison", location, exc) from exc


@router.get("/compare", response_model=ComparisonResult)
async def get_stored_comparison(
    location: str = Query(..., min_length=1, description="Location to analyze"),
    store: ReviewStore = Depends(get_store),
) -> ComparisonResult:
    """Return the last stored comparison for a location."""
    comparison = await store.get_comparison(location)
    if comparison is None:
        raise HTTPException(
            status_code=404,
            detail=f"No comparison stored for location: {location}",
        )
    return comparison


@router.post("/hybrid", response_model=HybridResult)
async def hybrid_analysis(
    location: str = Query(..., min_length=1, description="Location to analyze"),
    store: ReviewStore = Depends(get_store),
    text_analytics: TextAnalyticsAnalyzer = Depends(get_text_analytics_analyzer),
    chat: ChatAnalyzer = Depends(get_chat_analyzer),
) -> HybridResult:
    """Text analytics aggregates with a single chat narrative."""
    reviews = await _recent_reviews(store, location)
    try:
        return await run_hybrid_analysis(location, reviews, text_analytics, chat, store)
    except Exception as exc:
        raise _analysis_failed("hybrid_analysis", location, exc) from exc


# ---------------------------------------------------------------------------
# Manual refresh
# ---------------------------------------------------------------------------


@router.post("/refresh", status_code=200)
async def trigger_refresh() -> dict[str, Any]:
    """Run the scheduled comparison refresh now; 409 if one is running."""
    result = await asyncio.to_thread(run_scheduled_comparisons, "manual")
    if result.get("status") == "skipped":
        raise HTTPException(status_code=409, detail="Comparison refresh already running")
    return result
