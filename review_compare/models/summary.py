"""Per-location summaries for the ``*_summaries`` tables.

Summaries are upserted on ``location`` so a later run replaces the earlier one.
"""

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, Field, computed_field

from review_compare.models.enums import Provider, SentimentLabel


class LocationSummary(BaseModel):
    """Aggregated sentiment for one location and provider."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    location: str
    provider: Provider
    overall_sentiment: SentimentLabel = SentimentLabel.neutral
    total_reviews: int = 0
    positive_count: int = 0
    negative_count: int = 0
    neutral_count: int = 0
    average_confidence: float = 0.0
    average_star_rating: float = 0.0
    top_pros: list[str] = Field(default_factory=list)
    top_cons: list[str] = Field(default_factory=list)
    analysis_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def partition_key(self) -> str:
        return self.location


class TextAnalyticsSummary(LocationSummary):
    provider: Provider = Provider.text_analytics
    average_positive_score: float = 0.0
    average_negative_score: float = 0.0
    average_neutral_score: float = 0.0


class ChatSummary(LocationSummary):
    provider: Provider = Provider.chat
    ai_summary: str = ""
