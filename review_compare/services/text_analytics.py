"""REST client for the structured text analytics sentiment provider.

Speaks the Language service ``/text/analytics/v3.1/sentiment`` contract via
``httpx`` and translates the payload into ``review_compare.models.provider``
models.  With ``opinion_mining=True`` each sentence's targets are resolved
against their linked assessments (``#/documents/i/sentences/j/assessments/k``
references) into ``SentenceOpinion`` pairs.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from review_compare.core.config import settings
from review_compare.models.provider import (
    ConfidenceScores,
    DocumentError,
    DocumentSentiment,
    OpinionAssessment,
    OpinionTarget,
    SentenceOpinion,
    SentimentBatchResponse,
    TextDocument,
)

logger = logging.getLogger(__name__)

SENTIMENT_PATH = "/text/analytics/v3.1/sentiment"

_ASSESSMENT_REF_RE = re.compile(
    r"#/documents/(?P<doc>\d+)/sentences/(?P<sentence>\d+)/assessments/(?P<assessment>\d+)$"
)


def _parse_opinions(
    documents: list[dict[str, Any]], doc_index: int
) -> list[SentenceOpinion]:
    """Resolve target -> assessment relations for one response document."""
    opinions: list[SentenceOpinion] = []
    sentences = documents[doc_index].get("sentences") or []

    for sentence in sentences:
        for target in sentence.get("targets") or []:
            assessments: list[OpinionAssessment] = []
            for relation in target.get("relations") or []:
                if relation.get("relationType") != "assessment":
                    continue
                match = _ASSESSMENT_REF_RE.search(relation.get("ref", ""))
                if match is None:
                    continue
                try:
                    ref_sentence = documents[int(match["doc"])]["sentences"][int(match["sentence"])]
                    raw = ref_sentence["assessments"][int(match["assessment"])]
                except (IndexError, KeyError):
                    logger.warning(
                        "opinion_reference_unresolved",
                        extra={"ref": relation.get("ref", "")},
                    )
                    continue
                scores = raw.get("confidenceScores") or {}
                assessments.append(
                    OpinionAssessment(
                        text=raw.get("text", ""),
                        sentiment=raw.get("sentiment", ""),
                        positive=float(scores.get("positive", 0.0)),
                        negative=float(scores.get("negative", 0.0)),
                    )
                )

            opinions.append(
                SentenceOpinion(
                    target=OpinionTarget(
                        text=target.get("text", ""),
                        sentiment=target.get("sentiment", ""),
                    ),
                    assessments=assessments,
                )
            )

    return opinions


def parse_sentiment_response(data: dict[str, Any]) -> SentimentBatchResponse:
    """Translate a raw sentiment response body into models."""
    raw_documents: list[dict[str, Any]] = data.get("documents") or []
    documents: list[DocumentSentiment] = []

    for index, doc in enumerate(raw_documents):
        scores = doc.get("confidenceScores") or {}
        documents.append(
            DocumentSentiment(
                id=str(doc["id"]),
                sentiment=doc.get("sentiment", "neutral"),
                confidence_scores=ConfidenceScores(
                    positive=float(scores.get("positive", 0.0)),
                    negative=float(scores.get("negative", 0.0)),
                    neutral=float(scores.get("neutral", 0.0)),
                ),
                opinions=_parse_opinions(raw_documents, index),
            )
        )

    errors = [
        DocumentError(
            id=str(err.get("id", "")),
            code=(err.get("error") or {}).get("code", ""),
            message=(err.get("error") or {}).get("message", ""),
        )
        for err in data.get("errors") or []
    ]

    return SentimentBatchResponse(documents=documents, errors=errors)


class TextAnalyticsClient:
    """Thin async client; one HTTP request per batch."""

    def __init__(
        self,
        endpoint: str | None = None,
        api_key: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.endpoint = (endpoint if endpoint is not None else settings.TEXT_ANALYTICS_ENDPOINT).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.TEXT_ANALYTICS_KEY
        self.timeout = timeout

    async def analyze_sentiment_batch(
        self,
        documents: list[TextDocument],
        opinion_mining: bool = False,
    ) -> SentimentBatchResponse:
        """Submit one batch.  HTTP failures propagate to the caller."""
        params = {"opinionMining": "true"} if opinion_mining else None

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.endpoint}{SENTIMENT_PATH}",
                params=params,
                headers={
                    "Ocp-Apim-Subscription-Key": self.api_key,
                    "Content-Type": "application/json",
                },
                json={"documents": [doc.model_dump() for doc in documents]},
            )
            response.raise_for_status()
            return parse_sentiment_response(response.json())
