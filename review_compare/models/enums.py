"""Enum types shared by models, services and stored documents."""

from enum import Enum


class SentimentLabel(str, Enum):
    """Per-review and per-location sentiment classification."""
    positive = "Positive"
    negative = "Negative"
    neutral = "Neutral"


class ProcessedSentiment(str, Enum):
    """Simplified tag written back onto a processed review."""
    positive = "+"
    negative = "-"
    mixed = "mixed"


class Provider(str, Enum):
    """Sentiment provider that produced a record or summary."""
    text_analytics = "text_analytics"
    chat = "chat"
