"""Structured-provider analyzer: batch sentiment, opinion mining, summaries.

Reviews go to the text analytics provider ten at a time.  A failing batch
is logged and skipped as a whole; per-document errors only drop that
document.  Each analyzed review triggers a ``MarkReviewProcessed`` command
through the injected handler; the analyzer itself knows nothing about
storage.

Top pros/cons come from opinion mining (targets + assessments) over the
positive and negative records, normalized by ``OpinionNormalizer``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence

from review_compare.core.config import settings
from review_compare.core.constants import TEXT_ANALYTICS_BATCH_SIZE
from review_compare.models.enums import ProcessedSentiment, SentimentLabel
from review_compare.models.provider import OpinionPhrase, TextDocument
from review_compare.models.review import MarkReviewProcessed, Review
from review_compare.models.sentiment import TextAnalyticsRecord
from review_compare.models.summary import TextAnalyticsSummary
from review_compare.services.opinions import OpinionNormalizer, rank_opinion_phrases
from review_compare.services.summary import (
    build_summary_counts,
    chunked,
    clean_text_for_analysis,
    filter_location,
)
from review_compare.services.text_analytics import TextAnalyticsClient

logger = logging.getLogger(__name__)

ProcessedHandler = Callable[[MarkReviewProcessed], Awaitable[bool]]

_PROVIDER_LABELS: dict[str, SentimentLabel] = {
    "positive": SentimentLabel.positive,
    "negative": SentimentLabel.negative,
    "neutral": SentimentLabel.neutral,
}


def map_provider_label(sentiment: str) -> SentimentLabel:
    """Provider label -> SentimentLabel; ``mixed`` and unknowns become Neutral."""
    return _PROVIDER_LABELS.get(sentiment.strip().lower(), SentimentLabel.neutral)


def to_processed_tag(label: SentimentLabel) -> ProcessedSentiment:
    if label == SentimentLabel.positive:
        return ProcessedSentiment.positive
    if label == SentimentLabel.negative:
        return ProcessedSentiment.negative
    return ProcessedSentiment.mixed


class TextAnalyticsAnalyzer:
    """Adapter between reviews and the structured sentiment provider."""

    def __init__(
        self,
        client: TextAnalyticsClient,
        normalizer: OpinionNormalizer,
        on_processed: ProcessedHandler | None = None,
        batch_size: int = TEXT_ANALYTICS_BATCH_SIZE,
        language: str | None = None,
    ) -> None:
        self.client = client
        self.normalizer = normalizer
        self.on_processed = on_processed
        self.batch_size = batch_size
        self.language = language or settings.TEXT_ANALYTICS_LANGUAGE

    # ------------------------------------------------------------------
    # Sentiment
    # ------------------------------------------------------------------

    async def analyze_reviews(self, reviews: Sequence[Review]) -> list[TextAnalyticsRecord]:
        """Analyze reviews batch by batch; failed batches are skipped."""
        results: list[TextAnalyticsRecord] = []

        if not reviews:
            logger.warning("No reviews provided for text analytics sentiment analysis")
            return results

        logger.info(
            "text_analytics_analysis_started",
            extra={"review_count": len(reviews)},
        )

        for batch in chunked(reviews, self.batch_size):
            try:
                batch_results = await self._process_batch(batch)
            except Exception as exc:
                logger.error(
                    "text_analytics_batch_failed",
                    extra={
                        "batch_size": len(batch),
                        "error_type": type(exc).__name__,
                        "error_message": str(exc),
                    },
                )
                continue

            results.extend(batch_results)
            logger.debug(
                "text_analytics_batch_completed",
                extra={"batch_size": len(batch), "analyzed": len(batch_results)},
            )

        logger.info(
            "text_analytics_analysis_completed",
            extra={"review_count": len(reviews), "analyzed_count": len(results)},
        )
        return results

    async def _process_batch(self, batch: list[Review]) -> list[TextAnalyticsRecord]:
        reviews_by_id: dict[str, Review] = {}
        documents: list[TextDocument] = []

        for review in batch:
            text = clean_text_for_analysis(review.review_content)
            if not text:
                logger.warning(
                    "review_skipped_empty_content",
                    extra={"review_id": review.id},
                )
                continue
            if review.id in reviews_by_id:
                logger.warning("review_skipped_duplicate_id", extra={"review_id": review.id})
                continue
            reviews_by_id[review.id] = review
            documents.append(TextDocument(id=review.id, text=text, language=self.language))

        if not documents:
            return []

        response = await self.client.analyze_sentiment_batch(documents)

        for error in response.errors:
            logger.warning(
                "text_analytics_document_error",
                extra={"review_id": error.id, "error_message": error.message},
            )

        results: list[TextAnalyticsRecord] = []
        for document in response.documents:
            review = reviews_by_id.get(document.id)
            if review is None:
                logger.warning(
                    "text_analytics_document_unmatched",
                    extra={"document_id": document.id},
                )
                continue

            scores = document.confidence_scores
            label = map_provider_label(document.sentiment)
            record = TextAnalyticsRecord(
                review_id=review.id,
                location=review.location,
                review_content=review.review_content,
                author_name=review.author_name,
                star_rating=review.star_rating,
                sentiment=label,
                confidence=max(scores.positive, scores.negative, scores.neutral),
                positive_score=scores.positive,
                negative_score=scores.negative,
                neutral_score=scores.neutral,
            )
            results.append(record)

            await self._mark_processed(review.id, label)

        return results

    async def _mark_processed(self, review_id: str, label: SentimentLabel) -> None:
        if self.on_processed is None:
            return

        command = MarkReviewProcessed(review_id=review_id, sentiment_tag=to_processed_tag(label))
        try:
            updated = await self.on_processed(command)
        except Exception as exc:
            logger.warning(
                "mark_review_processed_failed",
                extra={"review_id": review_id, "error_message": str(exc)},
            )
            return

        if not updated:
            logger.warning("mark_review_processed_failed", extra={"review_id": review_id})

    # ------------------------------------------------------------------
    # Opinion mining
    # ------------------------------------------------------------------

    async def extract_top_phrases(self, records: Sequence[TextAnalyticsRecord]) -> list[str]:
        """Top opinion phrases (at most five) for a set of records."""
        if not records:
            return []

        phrases: list[OpinionPhrase] = []

        for chunk in chunked(records, self.batch_size):
            documents = []
            for record in chunk:
                text = clean_text_for_analysis(record.review_content)
                if text:
                    documents.append(
                        TextDocument(id=record.review_id, text=text, language=self.language)
                    )
            if not documents:
                continue

            try:
                response = await self.client.analyze_sentiment_batch(
                    documents, opinion_mining=True
                )
            except Exception as exc:
                logger.error(
                    "opinion_mining_batch_failed",
                    extra={
                        "batch_size": len(documents),
                        "error_type": type(exc).__name__,
                        "error_message": str(exc),
                    },
                )
                continue

            for document in response.documents:
                for opinion in document.opinions:
                    for assessment in opinion.assessments:
                        phrase = self.normalizer.to_phrase(
                            opinion.target.text,
                            assessment.text,
                            assessment.sentiment,
                            # intensity regardless of polarity
                            assessment.positive + assessment.negative,
                        )
                        if phrase is not None:
                            phrases.append(phrase)

        return rank_opinion_phrases(phrases)

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    async def generate_summary(
        self, location: str, records: Sequence[TextAnalyticsRecord]
    ) -> TextAnalyticsSummary:
        """Fold one location's records into a summary."""
        location_records = filter_location(records, location)

        if not location_records:
            logger.warning(
                "no_text_analytics_results_for_location",
                extra={"location": location},
            )
            return TextAnalyticsSummary(location=location)

        total = len(location_records)
        summary = TextAnalyticsSummary(
            **build_summary_counts(location, location_records),
            average_positive_score=sum(r.positive_score for r in location_records) / total,
            average_negative_score=sum(r.negative_score for r in location_records) / total,
            average_neutral_score=sum(r.neutral_score for r in location_records) / total,
        )

        summary.top_pros = await self.extract_top_phrases(
            [r for r in location_records if r.sentiment == SentimentLabel.positive]
        )
        summary.top_cons = await self.extract_top_phrases(
            [r for r in location_records if r.sentiment == SentimentLabel.negative]
        )

        logger.info(
            "text_analytics_summary_generated",
            extra={
                "location": location,
                "overall_sentiment": summary.overall_sentiment.value,
                "total_reviews": summary.total_reviews,
            },
        )
        return summary
