"""Summary building blocks shared by both provider analyzers.

Text cleaning, batching, location filtering, plurality voting and
frequency ranking.  Everything here is pure; the analyzers add their
provider-specific pros/cons and narrative on top of
``build_summary_counts``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Sequence
from typing import Any, TypeVar

from review_compare.core.constants import MIN_ANALYSIS_TEXT_LENGTH, TOP_ASPECT_LIMIT
from review_compare.models.enums import SentimentLabel
from review_compare.models.sentiment import SentimentRecord

T = TypeVar("T")
R = TypeVar("R", bound=SentimentRecord)

_WHITESPACE_RE = re.compile(r"\s+")


def clean_text_for_analysis(text: str | None) -> str:
    """Collapse whitespace and trim; return ``""`` when too short to analyze.

    Anything under ``MIN_ANALYSIS_TEXT_LENGTH`` characters after cleaning
    is treated as noise and must never reach a provider.
    """
    if not text or not text.strip():
        return ""

    cleaned = _WHITESPACE_RE.sub(" ", text).strip()
    if len(cleaned) < MIN_ANALYSIS_TEXT_LENGTH:
        return ""
    return cleaned


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive slices of at most ``size`` items."""
    if size < 1:
        raise ValueError("size must be >= 1")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def filter_location(records: Iterable[R], location: str) -> list[R]:
    """Keep records whose location equals ``location`` ignoring case."""
    wanted = location.casefold()
    return [r for r in records if r.location.casefold() == wanted]


def determine_overall_sentiment(
    positive: int, negative: int, neutral: int
) -> SentimentLabel:
    """Strict plurality vote.

    A label wins only when it beats both others; any tie (including a
    three-way tie) yields Neutral.
    """
    if positive > negative and positive > neutral:
        return SentimentLabel.positive
    if negative > positive and negative > neutral:
        return SentimentLabel.negative
    return SentimentLabel.neutral


def top_by_frequency(items: Iterable[str], limit: int = TOP_ASPECT_LIMIT) -> list[str]:
    """Group strings case-insensitively and return the most frequent ones.

    Groups are ordered by size (descending, first-seen order on ties) and
    each is represented by the first original-cased string seen.
    """
    groups: dict[str, list[str]] = {}
    for item in items:
        if not item or not item.strip():
            continue
        groups.setdefault(item.lower(), []).append(item)

    ranked = sorted(groups.values(), key=len, reverse=True)
    return [group[0] for group in ranked[:limit]]


def build_summary_counts(
    location: str, records: Sequence[SentimentRecord]
) -> dict[str, Any]:
    """Counts, overall label and averages for one location's records.

    ``records`` must already be filtered to ``location``.  An empty list
    yields a zero-valued summary carrying only the location.
    """
    if not records:
        return {"location": location}

    positive = sum(1 for r in records if r.sentiment == SentimentLabel.positive)
    negative = sum(1 for r in records if r.sentiment == SentimentLabel.negative)
    neutral = sum(1 for r in records if r.sentiment == SentimentLabel.neutral)
    total = len(records)

    return {
        "location": location,
        "total_reviews": total,
        "positive_count": positive,
        "negative_count": negative,
        "neutral_count": neutral,
        "overall_sentiment": determine_overall_sentiment(positive, negative, neutral),
        "average_confidence": sum(r.confidence for r in records) / total,
        "average_star_rating": sum(r.star_rating for r in records) / total,
    }
