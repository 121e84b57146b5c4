"""Chat-provider analyzer: per-review LLM sentiment and narrative summaries.

Reviews are grouped in batches of five, but each review is its own chat
call, so a failure only drops that review.  The model is asked for a JSON
object; ``parse_chat_output`` validates it against ``ChatSentimentPayload``
and returns an explicit success or failure instead of raising.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import ValidationError

from review_compare.core.config import settings
from review_compare.core.constants import (
    CHAT_ANALYSIS_MAX_TOKENS,
    CHAT_ANALYSIS_TEMPERATURE,
    CHAT_BATCH_SIZE,
    CHAT_SUMMARY_MAX_TOKENS,
    CHAT_SUMMARY_SAMPLE_SIZE,
    CHAT_SUMMARY_TEMPERATURE,
    NARRATIVE_FALLBACK,
)
from review_compare.models.review import Review
from review_compare.models.sentiment import (
    ChatParseFailure,
    ChatParseResult,
    ChatParseSuccess,
    ChatRecord,
    ChatSentimentPayload,
)
from review_compare.models.summary import ChatSummary
from review_compare.services.chat import ChatClient
from review_compare.services.summary import (
    build_summary_counts,
    chunked,
    clean_text_for_analysis,
    filter_location,
    top_by_frequency,
)

logger = logging.getLogger(__name__)

ANALYSIS_SYSTEM_PROMPT = (
    "You are an expert sentiment analysis AI specializing in retail and {domain} "
    "customer reviews. Analyze reviews and provide structured JSON responses with "
    "sentiment, confidence, reasoning, key points, pros, and cons focused on retail experience."
)

ANALYSIS_USER_PROMPT = """\
Analyze this {domain} customer review and provide a structured response.

Review: "{review}"

Please provide a JSON response with the following structure:
{{
  "sentiment": "positive", "negative", or "neutral",
  "confidence": 0.0-1.0,
  "reasoning": "Brief explanation of why this sentiment was chosen",
  "keyPoints": ["key point 1", "key point 2"],
  "pros": ["positive aspect 1", "positive aspect 2"],
  "cons": ["negative aspect 1", "negative aspect 2"]
}}

Focus on {domain}-specific aspects like:
- Customer service quality
- Staff knowledge and helpfulness
- Wait times and appointment availability
- Product availability and selection
- Store layout and atmosphere
- Technical support and repairs
- Overall shopping experience

Be objective and analytical."""

SUMMARY_SYSTEM_PROMPT = (
    "You are an expert retail analyst specializing in {domain} operations. Analyze "
    "customer reviews and provide concise, actionable insights with bold keywords "
    "for important terms."
)

SUMMARY_USER_PROMPT = """\
Based on these {domain} customer reviews for {location}, provide a concise summary:

{reviews}

Please provide a brief summary (1-2 paragraphs) that includes:
1. Overall customer satisfaction and sentiment
2. Key strengths and positive aspects
3. Main concerns and areas for improvement

Format the response with **bold keywords** for important terms like: **customer service**, \
**staff**, **wait times**, **product availability**, **store layout**, **technical support**, etc.

Focus on {domain}-specific insights and be concise."""


def parse_chat_output(content: str | None) -> ChatParseResult:
    """Validate the JSON object embedded in a chat completion.

    The object is taken from the first ``{`` to the last ``}`` of the reply,
    so code fences and surrounding prose are ignored. It must satisfy
    ``ChatSentimentPayload``.
    """
    if not content or not content.strip():
        return ChatParseFailure(reason="empty completion", raw=content or "")

    start = content.find("{")
    end = content.rfind("}")
    if start < 0 or end <= start:
        return ChatParseFailure(reason="no JSON object found", raw=content)

    try:
        payload = ChatSentimentPayload.model_validate_json(content[start:end + 1])
    except ValidationError as exc:
        return ChatParseFailure(
            reason=f"schema validation failed: {exc.error_count()} error(s)",
            raw=content,
        )
    return ChatParseSuccess(payload=payload)


class ChatAnalyzer:
    """Adapter between reviews and the chat sentiment provider."""

    def __init__(
        self,
        client: ChatClient,
        batch_size: int = CHAT_BATCH_SIZE,
        domain: str | None = None,
    ) -> None:
        self.client = client
        self.batch_size = batch_size
        self.domain = domain or settings.REVIEW_DOMAIN

    async def analyze_reviews(self, reviews: Sequence[Review]) -> list[ChatRecord]:
        """Analyze reviews one by one, batch by batch."""
        results: list[ChatRecord] = []

        if not reviews:
            logger.warning("No reviews provided for chat sentiment analysis")
            return results

        logger.info("chat_analysis_started", extra={"review_count": len(reviews)})

        for batch in chunked(reviews, self.batch_size):
            batch_results = await self._process_batch(batch)
            results.extend(batch_results)
            logger.debug(
                "chat_batch_completed",
                extra={"batch_size": len(batch), "analyzed": len(batch_results)},
            )

        logger.info(
            "chat_analysis_completed",
            extra={"review_count": len(reviews), "analyzed_count": len(results)},
        )
        return results

    async def _process_batch(self, batch: list[Review]) -> list[ChatRecord]:
        results: list[ChatRecord] = []
        for review in batch:
            try:
                record = await self.analyze_review(review)
            except Exception as exc:
                logger.error(
                    "chat_review_failed",
                    extra={
                        "review_id": review.id,
                        "error_type": type(exc).__name__,
                        "error_message": str(exc),
                    },
                )
                continue
            if record is not None:
                results.append(record)
        return results

    async def analyze_review(self, review: Review) -> ChatRecord | None:
        """Analyze one review; None when skipped or the reply is malformed."""
        text = clean_text_for_analysis(review.review_content)
        if not text:
            logger.warning("review_skipped_empty_content", extra={"review_id": review.id})
            return None

        content = await self.client.complete(
            ANALYSIS_SYSTEM_PROMPT.format(domain=self.domain),
            ANALYSIS_USER_PROMPT.format(domain=self.domain, review=text),
            temperature=CHAT_ANALYSIS_TEMPERATURE,
            max_tokens=CHAT_ANALYSIS_MAX_TOKENS,
        )

        parsed = parse_chat_output(content)
        if isinstance(parsed, ChatParseFailure):
            logger.warning(
                "chat_response_unparseable",
                extra={"review_id": review.id, "reason": parsed.reason},
            )
            return None

        payload = parsed.payload
        return ChatRecord(
            review_id=review.id,
            location=review.location,
            review_content=review.review_content,
            author_name=review.author_name,
            star_rating=review.star_rating,
            sentiment=payload.sentiment,
            confidence=payload.confidence,
            reasoning=payload.reasoning,
            key_points=payload.key_points,
            pros=payload.pros,
            cons=payload.cons,
        )

    async def generate_summary(
        self, location: str, records: Sequence[ChatRecord]
    ) -> ChatSummary:
        """Fold one location's records into a summary with a narrative."""
        location_records = filter_location(records, location)

        if not location_records:
            logger.warning("no_chat_results_for_location", extra={"location": location})
            return ChatSummary(location=location)

        summary = ChatSummary(
            **build_summary_counts(location, location_records),
            top_pros=top_by_frequency(p for r in location_records for p in r.pros),
            top_cons=top_by_frequency(c for r in location_records for c in r.cons),
        )
        summary.ai_summary = await self.generate_narrative(location, location_records)

        logger.info(
            "chat_summary_generated",
            extra={
                "location": location,
                "overall_sentiment": summary.overall_sentiment.value,
                "total_reviews": summary.total_reviews,
            },
        )
        return summary

    async def generate_narrative(self, location: str, records: Sequence[ChatRecord]) -> str:
        """One or two paragraphs synthesizing up to ten reviews.

        Provider failures never propagate; ``NARRATIVE_FALLBACK`` is
        returned instead.
        """
        reviews_text = "\n\n".join(
            f"Rating: {r.star_rating}/5\nReview: {r.review_content}\nSentiment: {r.sentiment.value}"
            for r in records[:CHAT_SUMMARY_SAMPLE_SIZE]
        )

        try:
            return await self.client.complete(
                SUMMARY_SYSTEM_PROMPT.format(domain=self.domain),
                SUMMARY_USER_PROMPT.format(
                    domain=self.domain, location=location, reviews=reviews_text
                ),
                temperature=CHAT_SUMMARY_TEMPERATURE,
                max_tokens=CHAT_SUMMARY_MAX_TOKENS,
            )
        except Exception as exc:
            logger.error(
                "chat_narrative_failed",
                extra={
                    "location": location,
                    "error_type": type(exc).__name__,
                    "error_message": str(exc),
                },
            )
            return NARRATIVE_FALLBACK
