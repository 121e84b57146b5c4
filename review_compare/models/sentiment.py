"""Pydantic models for per-review sentiment records and chat output.

Records are immutable once created; every analysis run produces new ones
(fresh ``id``) rather than updating earlier results.
"""

from datetime import datetime, timezone
from typing import Any, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from review_compare.models.enums import Provider, SentimentLabel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SentimentRecord(BaseModel):
    """Sentiment judgment for one review from one provider."""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    review_id: str
    location: str
    sentiment: SentimentLabel
    confidence: float = Field(..., ge=0.0, le=1.0)
    review_content: str = ""
    author_name: str = ""
    star_rating: int = 0
    provider: Provider
    analysis_date: datetime = Field(default_factory=_utcnow)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def partition_key(self) -> str:
        return self.location


class TextAnalyticsRecord(SentimentRecord):
    """Record produced by the structured text analytics provider."""
    provider: Provider = Provider.text_analytics
    positive_score: float = Field(default=0.0, ge=0.0, le=1.0)
    negative_score: float = Field(default=0.0, ge=0.0, le=1.0)
    neutral_score: float = Field(default=0.0, ge=0.0, le=1.0)


class ChatRecord(SentimentRecord):
    """Record produced by the chat provider."""
    provider: Provider = Provider.chat
    reasoning: str = ""
    key_points: list[str] = Field(default_factory=list)
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Chat output contract
# ---------------------------------------------------------------------------


class ChatSentimentPayload(BaseModel):
    """JSON object the chat model is asked to return for each review."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sentiment: SentimentLabel
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str = ""
    key_points: list[str] = Field(default_factory=list, alias="keyPoints")
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)

    @field_validator("sentiment", mode="before")
    @classmethod
    def _label_case_insensitive(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for label in SentimentLabel:
                if label.value.lower() == lowered:
                    return label
        return value

    @field_validator("key_points", "pros", "cons", mode="before")
    @classmethod
    def _null_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("reasoning", mode="before")
    @classmethod
    def _null_text(cls, value: Any) -> Any:
        return "" if value is None else value


class ChatParseSuccess(BaseModel):
    """The completion contained a schema-valid payload."""
    ok: Literal[True] = True
    payload: ChatSentimentPayload


class ChatParseFailure(BaseModel):
    """The completion could not be turned into a payload."""
    ok: Literal[False] = False
    reason: str
    raw: str = ""


ChatParseResult = Union[ChatParseSuccess, ChatParseFailure]
