"""Request/response contracts of the structured text analytics provider.

The REST payload is translated into these models by
``review_compare.services.text_analytics`` so analyzers never touch raw JSON.
"""

from pydantic import BaseModel, ConfigDict, Field


class TextDocument(BaseModel):
    """One document submitted in a sentiment batch."""
    id: str
    text: str
    language: str = "en"


class ConfidenceScores(BaseModel):
    """Three-way probability distribution returned per document."""
    positive: float = 0.0
    negative: float = 0.0
    neutral: float = 0.0


class OpinionAssessment(BaseModel):
    """An adjective or phrase the provider linked to an opinion target."""
    text: str
    sentiment: str
    positive: float = 0.0
    negative: float = 0.0


class OpinionTarget(BaseModel):
    """The aspect an opinion is about (e.g. "staff", "wait")."""
    text: str
    sentiment: str = ""


class SentenceOpinion(BaseModel):
    """A target and the assessments the provider attached to it."""
    target: OpinionTarget
    assessments: list[OpinionAssessment] = Field(default_factory=list)


class DocumentSentiment(BaseModel):
    """Successful per-document result."""
    id: str
    sentiment: str
    confidence_scores: ConfidenceScores
    opinions: list[SentenceOpinion] = Field(default_factory=list)


class DocumentError(BaseModel):
    """Per-document failure; never fatal for the batch."""
    id: str
    code: str = ""
    message: str = ""


class SentimentBatchResponse(BaseModel):
    """Parsed batch response."""
    documents: list[DocumentSentiment] = Field(default_factory=list)
    errors: list[DocumentError] = Field(default_factory=list)


class OpinionPhrase(BaseModel):
    """A normalized, human-readable opinion ready for ranking."""
    model_config = ConfigDict(frozen=True)

    phrase: str
    target: str
    assessment: str
    sentiment: str
    confidence: float
