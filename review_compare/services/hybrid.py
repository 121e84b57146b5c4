"""Hybrid analysis: text analytics aggregates plus one chat narrative.

Only the text analytics provider sees every review.  Its records are
re-labelled as chat records (no pros, cons or key points) so the chat
analyzer can build a summary, which costs a single narrative call.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from review_compare.db.store import ReviewStore
from review_compare.models.comparison import HybridResult
from review_compare.models.review import Review
from review_compare.models.sentiment import ChatRecord, TextAnalyticsRecord
from review_compare.services.chat_analyzer import ChatAnalyzer
from review_compare.services.text_analytics_analyzer import TextAnalyticsAnalyzer

logger = logging.getLogger(__name__)


def as_chat_records(records: Sequence[TextAnalyticsRecord]) -> list[ChatRecord]:
    """Text analytics records viewed as chat records without pros/cons."""
    return [
        ChatRecord(
            review_id=record.review_id,
            location=record.location,
            review_content=record.review_content,
            author_name=record.author_name,
            star_rating=record.star_rating,
            sentiment=record.sentiment,
            confidence=record.confidence,
            analysis_date=record.analysis_date,
        )
        for record in records
    ]


async def run_hybrid_analysis(
    location: str,
    reviews: Sequence[Review],
    text_analytics: TextAnalyticsAnalyzer,
    chat: ChatAnalyzer,
    store: ReviewStore,
) -> HybridResult:
    """Analyze ``reviews`` with text analytics and add a chat narrative.

    Stores the text analytics results and both summaries; storage failures
    are logged by the store and do not affect the returned result.
    """
    text_analytics_results = await text_analytics.analyze_reviews(reviews)
    text_analytics_summary = await text_analytics.generate_summary(
        location, text_analytics_results
    )
    chat_summary = await chat.generate_summary(
        location, as_chat_records(text_analytics_results)
    )

    if text_analytics_results:
        await store.store_text_analytics_results(text_analytics_results)
    await store.store_text_analytics_summary(text_analytics_summary)
    await store.store_chat_summary(chat_summary)

    logger.info(
        "hybrid_analysis_completed",
        extra={
            "location": location,
            "review_count": len(reviews),
            "analyzed_count": len(text_analytics_results),
        },
    )
    return HybridResult(
        location=location,
        text_analytics_summary=text_analytics_summary,
        chat_summary=chat_summary,
    )
