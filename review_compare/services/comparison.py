"""Comparison engine: run both providers over one review set and compare.

Metrics are pure functions of the two result sets and summaries.  Alignment
is by ``review_id``: agreement and confidence delta only consider reviews
present in both result sets, and ids unique to one side are ignored.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import TypeVar

from review_compare.core.constants import (
    CHAT_COST_PER_1K_TOKENS,
    CHAT_TOKENS_PER_REVIEW,
    COST_FACTOR,
    CONFIDENCE_DIFFERENCE_THRESHOLD,
    HIGH_AGREEMENT_THRESHOLD,
    LOW_AGREEMENT_THRESHOLD,
    LOW_OVERLAP_THRESHOLD,
    RELIABLE_AGREEMENT_THRESHOLD,
    RELIABLE_OVERLAP_THRESHOLD,
    SLOWDOWN_FACTOR,
    TEXT_ANALYTICS_COST_PER_1K_RECORDS,
)
from review_compare.db.store import ReviewStore
from review_compare.models.comparison import ComparisonMetrics, ComparisonResult
from review_compare.models.review import Review
from review_compare.models.sentiment import ChatRecord, SentimentRecord, TextAnalyticsRecord
from review_compare.models.summary import ChatSummary, TextAnalyticsSummary
from review_compare.services.chat_analyzer import ChatAnalyzer
from review_compare.services.text_analytics_analyzer import TextAnalyticsAnalyzer

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=SentimentRecord)


def _index_by_review(records: Iterable[R]) -> dict[str, R]:
    """First record per review id."""
    index: dict[str, R] = {}
    for record in records:
        index.setdefault(record.review_id, record)
    return index


def _aligned_pairs(
    text_analytics_results: Sequence[TextAnalyticsRecord],
    chat_results: Sequence[ChatRecord],
) -> list[tuple[TextAnalyticsRecord, ChatRecord]]:
    chat_by_review = _index_by_review(chat_results)
    return [
        (record, chat_by_review[record.review_id])
        for record in _index_by_review(text_analytics_results).values()
        if record.review_id in chat_by_review
    ]


def calculate_sentiment_agreement(
    text_analytics_results: Sequence[TextAnalyticsRecord],
    chat_results: Sequence[ChatRecord],
) -> float:
    """Percentage of shared reviews on which both providers gave the same label."""
    if not text_analytics_results or not chat_results:
        return 0.0

    pairs = _aligned_pairs(text_analytics_results, chat_results)
    if not pairs:
        return 0.0

    agreements = sum(1 for a, b in pairs if a.sentiment == b.sentiment)
    return agreements / len(pairs) * 100


def calculate_confidence_difference(
    text_analytics_results: Sequence[TextAnalyticsRecord],
    chat_results: Sequence[ChatRecord],
) -> float:
    """Mean absolute confidence difference over shared reviews."""
    if not text_analytics_results or not chat_results:
        return 0.0

    pairs = _aligned_pairs(text_analytics_results, chat_results)
    if not pairs:
        return 0.0

    return sum(abs(a.confidence - b.confidence) for a, b in pairs) / len(pairs)


def calculate_overlap(first: Sequence[str], second: Sequence[str]) -> float:
    """Jaccard similarity (0-100) of two case-folded string lists."""
    if not first or not second:
        return 0.0

    left = {item.casefold() for item in first}
    right = {item.casefold() for item in second}
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union) * 100


def estimate_text_analytics_cost(record_count: int) -> Decimal:
    return Decimal(record_count) / 1000 * TEXT_ANALYTICS_COST_PER_1K_RECORDS


def estimate_chat_cost(record_count: int) -> Decimal:
    tokens = Decimal(record_count * CHAT_TOKENS_PER_REVIEW)
    return tokens / 1000 * CHAT_COST_PER_1K_TOKENS


def generate_recommendations(metrics: ComparisonMetrics) -> list[str]:
    """Ordered, independently evaluated recommendations for a comparison."""
    recommendations: list[str] = []

    if metrics.sentiment_agreement > HIGH_AGREEMENT_THRESHOLD:
        recommendations.append(
            "High sentiment agreement between models - results are reliable"
        )
    elif metrics.sentiment_agreement < LOW_AGREEMENT_THRESHOLD:
        recommendations.append(
            "Low sentiment agreement - consider manual review of conflicting cases"
        )

    if (
        metrics.processing_time_chat
        > metrics.processing_time_text_analytics * SLOWDOWN_FACTOR
    ):
        recommendations.append(
            "Chat model processing is significantly slower - consider text analytics "
            "for real-time needs"
        )

    if metrics.chat_cost_estimate > metrics.text_analytics_cost_estimate * COST_FACTOR:
        recommendations.append(
            "Chat model costs are higher - text analytics may be more cost-effective "
            "for large volumes"
        )

    if metrics.confidence_difference > CONFIDENCE_DIFFERENCE_THRESHOLD:
        recommendations.append(
            "Significant confidence differences - models may have different sensitivity levels"
        )

    if metrics.pros_overlap < LOW_OVERLAP_THRESHOLD:
        recommendations.append("Low pros overlap - models identify different positive aspects")

    if metrics.cons_overlap < LOW_OVERLAP_THRESHOLD:
        recommendations.append("Low cons overlap - models identify different negative aspects")

    if (
        metrics.sentiment_agreement > RELIABLE_AGREEMENT_THRESHOLD
        and metrics.pros_overlap > RELIABLE_OVERLAP_THRESHOLD
        and metrics.cons_overlap > RELIABLE_OVERLAP_THRESHOLD
    ):
        recommendations.append("Both models show good agreement - either can be used reliably")
    else:
        recommendations.append("Consider using both models for comprehensive analysis")

    return recommendations


def calculate_comparison_metrics(
    text_analytics_results: Sequence[TextAnalyticsRecord],
    chat_results: Sequence[ChatRecord],
    text_analytics_summary: TextAnalyticsSummary,
    chat_summary: ChatSummary,
    processing_time_text_analytics: float = 0.0,
    processing_time_chat: float = 0.0,
) -> ComparisonMetrics:
    """All comparison figures, recommendations included.

    Processing times are seconds; costs are estimated from each provider's
    own result count.
    """
    text_analytics_cost = estimate_text_analytics_cost(len(text_analytics_results))
    chat_cost = estimate_chat_cost(len(chat_results))

    metrics = ComparisonMetrics(
        sentiment_agreement=calculate_sentiment_agreement(text_analytics_results, chat_results),
        confidence_difference=calculate_confidence_difference(
            text_analytics_results, chat_results
        ),
        pros_overlap=calculate_overlap(text_analytics_summary.top_pros, chat_summary.top_pros),
        cons_overlap=calculate_overlap(text_analytics_summary.top_cons, chat_summary.top_cons),
        processing_time_text_analytics=processing_time_text_analytics,
        processing_time_chat=processing_time_chat,
        text_analytics_cost_estimate=text_analytics_cost,
        chat_cost_estimate=chat_cost,
        total_cost_estimate=text_analytics_cost + chat_cost,
    )
    metrics.recommendations = generate_recommendations(metrics)
    return metrics


class ComparisonService:
    """Runs both analyzers over the same reviews and persists the outcome."""

    def __init__(
        self,
        text_analytics: TextAnalyticsAnalyzer,
        chat: ChatAnalyzer,
        store: ReviewStore,
    ) -> None:
        self.text_analytics = text_analytics
        self.chat = chat
        self.store = store

    async def compare(self, location: str, reviews: Sequence[Review]) -> ComparisonResult:
        """Analyze ``reviews`` with both providers and compare the results.

        Storage failures are logged; the in-memory result is returned
        regardless.
        """
        logger.info(
            "comparison_started",
            extra={"location": location, "review_count": len(reviews)},
        )

        started = time.perf_counter()
        text_analytics_results = await self.text_analytics.analyze_reviews(reviews)
        text_analytics_summary = await self.text_analytics.generate_summary(
            location, text_analytics_results
        )
        text_analytics_seconds = time.perf_counter() - started

        started = time.perf_counter()
        chat_results = await self.chat.analyze_reviews(reviews)
        chat_summary = await self.chat.generate_summary(location, chat_results)
        chat_seconds = time.perf_counter() - started

        metrics = calculate_comparison_metrics(
            text_analytics_results,
            chat_results,
            text_analytics_summary,
            chat_summary,
            processing_time_text_analytics=text_analytics_seconds,
            processing_time_chat=chat_seconds,
        )
        result = ComparisonResult(
            location=location,
            text_analytics_summary=text_analytics_summary,
            chat_summary=chat_summary,
            comparison_metrics=metrics,
        )

        await self._persist(
            result,
            text_analytics_results,
            chat_results,
        )

        logger.info(
            "comparison_completed",
            extra={
                "location": location,
                "sentiment_agreement": round(metrics.sentiment_agreement, 2),
                "text_analytics_count": len(text_analytics_results),
                "chat_count": len(chat_results),
                "duration_text_analytics_ms": int(text_analytics_seconds * 1000),
                "duration_chat_ms": int(chat_seconds * 1000),
            },
        )
        return result

    async def _persist(
        self,
        result: ComparisonResult,
        text_analytics_results: Sequence[TextAnalyticsRecord],
        chat_results: Sequence[ChatRecord],
    ) -> None:
        steps = (
            ("text_analytics_results", self.store.store_text_analytics_results(text_analytics_results)),
            ("chat_results", self.store.store_chat_results(chat_results)),
            ("text_analytics_summary", self.store.store_text_analytics_summary(result.text_analytics_summary)),
            ("chat_summary", self.store.store_chat_summary(result.chat_summary)),
            ("comparison", self.store.store_comparison(result)),
        )
        for step, pending in steps:
            try:
                stored = await pending
            except Exception as exc:
                stored = False
                logger.error(
                    "comparison_persist_error",
                    extra={
                        "location": result.location,
                        "step": step,
                        "error_message": str(exc),
                    },
                )
            if not stored:
                logger.warning(
                    "comparison_persist_failed",
                    extra={"location": result.location, "step": step},
                )
