"""Document storage facade over Supabase tables.

Every record is a schema-less JSON document with an ``id`` and a
``partition_key`` (the review location).  The Supabase client is
synchronous, so each call runs in a worker thread; writes never raise to
callers and instead return ``False`` after logging.

``put_many`` fans out the writes of one batch concurrently and waits for
the whole batch before starting the next, so at most
``STORAGE_BATCH_SIZE`` writes are in flight at any time.
"""

from __future__ import annotations

import asyncio
import calendar
import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel
from supabase import Client

from review_compare.core.constants import QUERY_PAGE_SIZE, STORAGE_BATCH_SIZE
from review_compare.db.supabase import get_supabase
from review_compare.models.comparison import ComparisonResult
from review_compare.models.review import MarkReviewProcessed, Review, ReviewCreate
from review_compare.models.sentiment import ChatRecord, TextAnalyticsRecord
from review_compare.models.summary import ChatSummary, TextAnalyticsSummary
from review_compare.services.ingest import parse_review_date
from review_compare.services.summary import chunked

logger = logging.getLogger(__name__)

REVIEWS_TABLE = "reviews"
TEXT_ANALYTICS_RESULTS_TABLE = "text_analytics_results"
CHAT_RESULTS_TABLE = "chat_results"
TEXT_ANALYTICS_SUMMARIES_TABLE = "text_analytics_summaries"
CHAT_SUMMARIES_TABLE = "chat_summaries"
COMPARISONS_TABLE = "comparisons"

# Postgres unique_violation
_CONFLICT_CODE = "23505"

Document = BaseModel | dict[str, Any]


def _to_document(record: Document) -> dict[str, Any]:
    if isinstance(record, BaseModel):
        return record.model_dump(mode="json")
    return dict(record)


def _subtract_months(moment: datetime, months: int) -> datetime:
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    # 31 March minus one month is the last day of February
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class ReviewStore:
    """get / put / upsert / query over the review tables."""

    def __init__(self, client: Client | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Client:
        return self._client if self._client is not None else get_supabase()

    # ------------------------------------------------------------------
    # Generic document operations
    # ------------------------------------------------------------------

    async def put(self, table: str, record: Document) -> bool:
        """Insert one document; an existing ``id`` is overwritten."""
        document = _to_document(record)
        try:
            await asyncio.to_thread(self._insert_or_replace, table, document)
        except Exception as exc:
            logger.error(
                "document_store_failed",
                extra={
                    "table": table,
                    "document_id": document.get("id"),
                    "error_message": str(exc),
                },
            )
            return False
        return True

    def _insert_or_replace(self, table: str, document: dict[str, Any]) -> None:
        try:
            self.client.table(table).insert(document).execute()
        except Exception as exc:
            if getattr(exc, "code", None) != _CONFLICT_CODE:
                raise
            self.client.table(table).upsert(document).execute()

    async def put_many(self, table: str, records: Sequence[Document]) -> bool:
        """Store documents batch by batch; True only if every write succeeded."""
        if not records:
            logger.warning("put_many_empty", extra={"table": table})
            return True

        success_count = 0
        error_count = 0

        for batch in chunked(records, STORAGE_BATCH_SIZE):
            outcomes = await asyncio.gather(*(self.put(table, record) for record in batch))
            batch_success = sum(1 for ok in outcomes if ok)
            success_count += batch_success
            error_count += len(outcomes) - batch_success

        logger.info(
            "put_many_completed",
            extra={
                "table": table,
                "success_count": success_count,
                "error_count": error_count,
            },
        )
        return error_count == 0

    async def upsert(self, table: str, record: Document, partition_key: str) -> bool:
        """Replace the document stored for ``partition_key``."""
        document = _to_document(record)
        document["partition_key"] = partition_key
        try:
            await asyncio.to_thread(
                lambda: self.client.table(table)
                .upsert(document, on_conflict="partition_key")
                .execute()
            )
        except Exception as exc:
            logger.error(
                "document_upsert_failed",
                extra={
                    "table": table,
                    "partition_key": partition_key,
                    "error_message": str(exc),
                },
            )
            return False
        return True

    async def query(self, table: str, columns: str = "*", **filters: Any) -> list[dict[str, Any]]:
        """Documents whose fields equal every keyword filter.

        Pages through the table ``QUERY_PAGE_SIZE`` rows at a time until a
        short page comes back, so results are never cut at the server's
        row cap.
        """

        def _run() -> list[dict[str, Any]]:
            rows: list[dict[str, Any]] = []
            start = 0
            while True:
                request = self.client.table(table).select(columns)
                for field, value in filters.items():
                    request = request.eq(field, value)
                page = (
                    request.order("id")
                    .range(start, start + QUERY_PAGE_SIZE - 1)
                    .execute()
                    .data
                    or []
                )
                rows.extend(page)
                if len(page) < QUERY_PAGE_SIZE:
                    return rows
                start += QUERY_PAGE_SIZE

        try:
            return await asyncio.to_thread(_run)
        except Exception as exc:
            logger.error(
                "document_query_failed",
                extra={"table": table, "filters": filters, "error_message": str(exc)},
            )
            return []

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    async def store_reviews(self, reviews: Sequence[ReviewCreate]) -> bool:
        logger.info("store_reviews_started", extra={"review_count": len(reviews)})
        return await self.put_many(REVIEWS_TABLE, reviews)

    async def get_reviews(self, location: str | None = None) -> list[Review]:
        filters = {"location": location} if location else {}
        rows = await self.query(REVIEWS_TABLE, **filters)
        return [Review.model_validate(row) for row in rows]

    async def get_reviews_with_filter(
        self,
        location: str | None = None,
        max_months: int = 12,
        max_reviews: int = 1000,
        now: datetime | None = None,
    ) -> list[Review]:
        """Most recent reviews within ``max_months``, newest first.

        Reviews whose date cannot be parsed are left out.
        """
        now = now or datetime.now(timezone.utc).replace(tzinfo=None)
        cutoff = _subtract_months(now, max_months)
        dated: list[tuple[datetime, Review]] = []

        for review in await self.get_reviews(location):
            reviewed_at = parse_review_date(review.review_date)
            if reviewed_at is not None and reviewed_at >= cutoff:
                dated.append((reviewed_at, review))

        dated.sort(key=lambda pair: pair[0], reverse=True)
        reviews = [review for _, review in dated[:max_reviews]]

        logger.info(
            "filtered_reviews_retrieved",
            extra={
                "location": location or "all",
                "review_count": len(reviews),
                "max_months": max_months,
                "max_reviews": max_reviews,
            },
        )
        return reviews

    async def get_locations(self) -> list[str]:
        rows = await self.query(REVIEWS_TABLE, columns="location")
        return sorted({row["location"] for row in rows if row.get("location")})

    async def get_unprocessed_locations(self) -> list[str]:
        rows = await self.query(REVIEWS_TABLE, columns="location", processed=False)
        return sorted({row["location"] for row in rows if row.get("location")})

    async def mark_review_processed(self, command: MarkReviewProcessed) -> bool:
        """Apply a ``MarkReviewProcessed`` command; False if the review is missing."""

        def _run() -> list[dict[str, Any]]:
            result = (
                self.client.table(REVIEWS_TABLE)
                .update({
                    "processed": True,
                    "sentiment_result": command.sentiment_tag.value,
                })
                .eq("id", command.review_id)
                .execute()
            )
            return result.data or []

        try:
            updated = await asyncio.to_thread(_run)
        except Exception as exc:
            logger.error(
                "mark_review_processed_error",
                extra={"review_id": command.review_id, "error_message": str(exc)},
            )
            return False

        if not updated:
            logger.warning("review_not_found_for_update", extra={"review_id": command.review_id})
            return False
        return True

    # ------------------------------------------------------------------
    # Results, summaries, comparisons
    # ------------------------------------------------------------------

    async def store_text_analytics_results(self, results: Sequence[TextAnalyticsRecord]) -> bool:
        return await self.put_many(TEXT_ANALYTICS_RESULTS_TABLE, results)

    async def store_chat_results(self, results: Sequence[ChatRecord]) -> bool:
        return await self.put_many(CHAT_RESULTS_TABLE, results)

    async def store_text_analytics_summary(self, summary: TextAnalyticsSummary) -> bool:
        return await self.upsert(TEXT_ANALYTICS_SUMMARIES_TABLE, summary, summary.location)

    async def store_chat_summary(self, summary: ChatSummary) -> bool:
        return await self.upsert(CHAT_SUMMARIES_TABLE, summary, summary.location)

    async def store_comparison(self, comparison: ComparisonResult) -> bool:
        return await self.upsert(COMPARISONS_TABLE, comparison, comparison.location)

    async def get_text_analytics_summary(self, location: str) -> TextAnalyticsSummary | None:
        rows = await self.query(TEXT_ANALYTICS_SUMMARIES_TABLE, partition_key=location)
        return TextAnalyticsSummary.model_validate(rows[0]) if rows else None

    async def get_chat_summary(self, location: str) -> ChatSummary | None:
        rows = await self.query(CHAT_SUMMARIES_TABLE, partition_key=location)
        return ChatSummary.model_validate(rows[0]) if rows else None

    async def get_comparison(self, location: str) -> ComparisonResult | None:
        rows = await self.query(COMPARISONS_TABLE, partition_key=location)
        return ComparisonResult.model_validate(rows[0]) if rows else None
