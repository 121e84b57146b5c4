"""Shared test fixtures.

Seeds the required settings before the application is imported and provides
a FastAPI ``test_client``, mock Supabase clients, a mock ``ReviewStore`` and
small record factories used across test modules.
"""

import os

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-key")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from collections.abc import Callable, Generator  # noqa: E402
from unittest.mock import AsyncMock, MagicMock, patch  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from review_compare.db.store import ReviewStore  # noqa: E402
from review_compare.models.enums import SentimentLabel  # noqa: E402
from review_compare.models.review import Review  # noqa: E402
from review_compare.models.sentiment import ChatRecord, TextAnalyticsRecord  # noqa: E402


def _chainable_table_mock() -> MagicMock:
    """Return a Supabase table mock that supports fluent chaining."""
    m = MagicMock()
    for method in ("select", "insert", "upsert", "update", "eq", "limit", "order", "range"):
        getattr(m, method).return_value = m
    return m


@pytest.fixture()
def mock_supabase_module() -> Generator[MagicMock, None, None]:
    """Patch the Supabase client used by the health router."""
    mock_client = MagicMock()
    mock_client.table.return_value = _chainable_table_mock()
    mock_client.table.return_value.execute.return_value = MagicMock(data=[{"id": "r-1"}])

    with patch("review_compare.routers.health.get_supabase", return_value=mock_client):
        yield mock_client


@pytest.fixture()
def mock_supabase_disconnected() -> Generator[MagicMock, None, None]:
    """Simulate an unreachable database for the health router."""
    with patch(
        "review_compare.routers.health.get_supabase",
        side_effect=Exception("Connection refused"),
    ):
        yield MagicMock()


@pytest.fixture()
def mock_store() -> AsyncMock:
    """A ``ReviewStore`` whose writes succeed and reads return nothing."""
    store = AsyncMock(spec=ReviewStore)
    for method in (
        "store_reviews",
        "store_text_analytics_results",
        "store_chat_results",
        "store_text_analytics_summary",
        "store_chat_summary",
        "store_comparison",
        "mark_review_processed",
    ):
        getattr(store, method).return_value = True
    store.get_reviews_with_filter.return_value = []
    store.get_locations.return_value = []
    store.get_unprocessed_locations.return_value = []
    store.get_text_analytics_summary.return_value = None
    store.get_chat_summary.return_value = None
    store.get_comparison.return_value = None
    return store


@pytest.fixture()
def test_client() -> Generator[TestClient, None, None]:
    """Provide a FastAPI TestClient."""
    from review_compare.main import app

    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_review() -> Callable[..., Review]:
    def _make(
        review_id: str = "r-1",
        content: str = "Great staff, quick service",
        location: str = "NYC",
        rating: int = 5,
        review_date: str = "2026-09-01",
    ) -> Review:
        return Review(
            id=review_id,
            review_content=content,
            location=location,
            star_rating=rating,
            review_date=review_date,
            author_name="Alex",
        )

    return _make


@pytest.fixture()
def make_ta_record() -> Callable[..., TextAnalyticsRecord]:
    def _make(
        review_id: str = "r-1",
        sentiment: SentimentLabel = SentimentLabel.positive,
        confidence: float = 0.9,
        location: str = "NYC",
        content: str = "Great staff, quick service",
        rating: int = 5,
    ) -> TextAnalyticsRecord:
        return TextAnalyticsRecord(
            review_id=review_id,
            location=location,
            sentiment=sentiment,
            confidence=confidence,
            review_content=content,
            star_rating=rating,
            positive_score=confidence if sentiment == SentimentLabel.positive else 0.0,
            negative_score=confidence if sentiment == SentimentLabel.negative else 0.0,
            neutral_score=confidence if sentiment == SentimentLabel.neutral else 0.0,
        )

    return _make


@pytest.fixture()
def make_chat_record() -> Callable[..., ChatRecord]:
    def _make(
        review_id: str = "r-1",
        sentiment: SentimentLabel = SentimentLabel.positive,
        confidence: float = 0.8,
        location: str = "NYC",
        pros: list[str] | None = None,
        cons: list[str] | None = None,
        rating: int = 5,
    ) -> ChatRecord:
        return ChatRecord(
            review_id=review_id,
            location=location,
            sentiment=sentiment,
            confidence=confidence,
            review_content="Great staff, quick service",
            star_rating=rating,
            pros=pros or [],
            cons=cons or [],
        )

    return _make
