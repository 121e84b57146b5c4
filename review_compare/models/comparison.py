"""Models for the ``comparisons`` table and the hybrid analysis response."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import BaseModel, Field, computed_field

from review_compare.models.summary import ChatSummary, TextAnalyticsSummary


class ComparisonMetrics(BaseModel):
    """Agreement, overlap, timing and cost figures for two providers.

    Percentages are on a 0-100 scale, processing times are in seconds and
    cost estimates are USD.
    """
    sentiment_agreement: float = 0.0
    confidence_difference: float = 0.0
    pros_overlap: float = 0.0
    cons_overlap: float = 0.0
    processing_time_text_analytics: float = 0.0
    processing_time_chat: float = 0.0
    text_analytics_cost_estimate: Decimal = Decimal("0")
    chat_cost_estimate: Decimal = Decimal("0")
    total_cost_estimate: Decimal = Decimal("0")
    recommendations: list[str] = Field(default_factory=list)


class ComparisonResult(BaseModel):
    """Both providers' summaries for a location plus their comparison."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    location: str
    text_analytics_summary: TextAnalyticsSummary
    chat_summary: ChatSummary
    comparison_metrics: ComparisonMetrics = Field(default_factory=ComparisonMetrics)
    analysis_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def partition_key(self) -> str:
        return self.location


class HybridResult(BaseModel):
    """Text analytics aggregates with a single chat narrative on top."""
    location: str
    text_analytics_summary: TextAnalyticsSummary
    chat_summary: ChatSummary
