"""Opinion normalization: filter, canonicalize and rank opinion phrases.

Raw targets and assessments coming back from opinion mining are noisy
("girl", "associate", "awesome", "queue").  The normalizer drops targets
with no actionable signal, maps synonyms onto canonical terms and turns
each pair into a short phrase such as "wait time is quick".

The vocabulary is immutable configuration loaded once per process and
handed to ``OpinionNormalizer``, so tests can supply their own tables.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from review_compare.core.constants import (
    ASSESSMENT_SYNONYMS,
    GENERIC_TERMS,
    MIN_OPINION_PHRASE_LENGTH,
    PERSON_WORDS,
    TARGET_SYNONYMS,
    TOP_ASPECT_LIMIT,
)
from review_compare.models.provider import OpinionPhrase

logger = logging.getLogger(__name__)

_POLAR_SENTIMENTS = frozenset({"positive", "negative"})


class OpinionVocabulary(BaseModel):
    """Word sets and synonym tables used by the normalizer.

    All keys are stored lower-cased; lookups are case-insensitive.
    """
    model_config = ConfigDict(frozen=True)

    person_words: frozenset[str]
    generic_terms: frozenset[str]
    target_synonyms: Mapping[str, str]
    assessment_synonyms: Mapping[str, str]

    @field_validator("person_words", "generic_terms", mode="before")
    @classmethod
    def _lower_words(cls, value: Iterable[str]) -> frozenset[str]:
        return frozenset(w.strip().lower() for w in value)

    @field_validator("target_synonyms", "assessment_synonyms", mode="before")
    @classmethod
    def _lower_table(cls, value: Mapping[str, str]) -> dict[str, str]:
        return {k.strip().lower(): v for k, v in value.items()}

    @field_validator("target_synonyms", "assessment_synonyms", mode="after")
    @classmethod
    def _read_only_table(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))


def default_vocabulary() -> OpinionVocabulary:
    """Vocabulary built from the tables in ``core.constants``."""
    return OpinionVocabulary(
        person_words=PERSON_WORDS,
        generic_terms=GENERIC_TERMS,
        target_synonyms=TARGET_SYNONYMS,
        assessment_synonyms=ASSESSMENT_SYNONYMS,
    )


@lru_cache(maxsize=None)
def load_vocabulary(path: str = "") -> OpinionVocabulary:
    """Load the vocabulary once per path.

    With an empty ``path`` the built-in defaults are used.  A JSON file
    may override any of the four tables; missing keys fall back to the
    defaults.
    """
    if not path:
        return default_vocabulary()

    raw: dict[str, Any] = json.loads(Path(path).read_text(encoding="utf-8"))
    vocabulary = OpinionVocabulary(
        person_words=raw.get("person_words", PERSON_WORDS),
        generic_terms=raw.get("generic_terms", GENERIC_TERMS),
        target_synonyms=raw.get("target_synonyms", TARGET_SYNONYMS),
        assessment_synonyms=raw.get("assessment_synonyms", ASSESSMENT_SYNONYMS),
    )
    logger.info(
        "opinion_vocabulary_loaded",
        extra={
            "path": path,
            "person_words": len(vocabulary.person_words),
            "generic_terms": len(vocabulary.generic_terms),
        },
    )
    return vocabulary


class OpinionNormalizer:
    """Pure functions of their inputs and the injected vocabulary."""

    def __init__(self, vocabulary: OpinionVocabulary) -> None:
        self.vocabulary = vocabulary

    def is_actionable_target(self, target: str | None) -> bool:
        """False for blank targets, person words and generic terms."""
        if not target or not target.strip():
            return False
        key = target.strip().lower()
        return (
            key not in self.vocabulary.person_words
            and key not in self.vocabulary.generic_terms
        )

    def normalize_target(self, target: str) -> str:
        key = target.strip().lower()
        return self.vocabulary.target_synonyms.get(key, key)

    def normalize_assessment(self, assessment: str) -> str:
        key = assessment.strip().lower()
        return self.vocabulary.assessment_synonyms.get(key, key)

    @staticmethod
    def build_phrase(target: str, assessment: str, sentiment: str = "positive") -> str | None:
        """Readable phrase for a normalized pair, or None if too short."""
        if sentiment.lower() in _POLAR_SENTIMENTS:
            phrase = f"{target} is {assessment}"
        else:
            phrase = f"{target} {assessment}"

        if len(phrase) < MIN_OPINION_PHRASE_LENGTH:
            return None
        return phrase

    def to_phrase(
        self,
        target: str | None,
        assessment: str | None,
        sentiment: str,
        confidence: float,
    ) -> OpinionPhrase | None:
        """Filter, normalize and phrase one raw (target, assessment) pair."""
        if not self.is_actionable_target(target):
            return None
        if not assessment or not assessment.strip():
            return None

        normalized_target = self.normalize_target(target)  # type: ignore[arg-type]
        normalized_assessment = self.normalize_assessment(assessment)
        phrase = self.build_phrase(normalized_target, normalized_assessment, sentiment)
        if phrase is None:
            return None

        return OpinionPhrase(
            phrase=phrase,
            target=normalized_target,
            assessment=normalized_assessment,
            sentiment=sentiment,
            confidence=confidence,
        )


def rank_opinion_phrases(
    phrases: Iterable[OpinionPhrase], limit: int = TOP_ASPECT_LIMIT
) -> list[str]:
    """Top phrases ranked by ``count * mean(confidence)``.

    Phrases are grouped on the lower-cased "target assessment" key; the
    first phrase seen in each group represents it.  Ties keep first-seen
    group order.
    """
    groups: dict[str, list[OpinionPhrase]] = {}
    for op in phrases:
        groups.setdefault(f"{op.target} {op.assessment}".lower(), []).append(op)

    def _score(group: list[OpinionPhrase]) -> float:
        return len(group) * (sum(op.confidence for op in group) / len(group))

    ranked = sorted(groups.values(), key=_score, reverse=True)
    return [group[0].phrase for group in ranked[:limit]]
