"""Pydantic models for the ``reviews`` table.

A review is written once at import; afterwards only ``processed`` and
``sentiment_result`` change, and only through ``MarkReviewProcessed``.
"""

from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field

from review_compare.models.enums import ProcessedSentiment


class ReviewCreate(BaseModel):
    """Payload for inserting a new review parsed from CSV."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    review_date: str = ""
    author_name: str = ""
    star_rating: int = Field(default=3, ge=1, le=5)
    review_content: str = ""
    location: str = ""
    processed: bool = False
    sentiment_result: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def partition_key(self) -> str:
        return self.location


class Review(BaseModel):
    """Full review record returned from the database."""
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    review_date: str = ""
    author_name: str = ""
    star_rating: int = 0
    review_content: str = ""
    location: str = ""
    processed: bool = False
    sentiment_result: str = ""


class MarkReviewProcessed(BaseModel):
    """Command: flag a review as analyzed and record its simplified sentiment."""
    model_config = ConfigDict(frozen=True)

    review_id: str
    sentiment_tag: ProcessedSentiment
