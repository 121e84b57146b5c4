"""Unit tests for the text analytics client, response parsing and analyzer."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from review_compare.models.enums import ProcessedSentiment, SentimentLabel
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
from review_compare.models.review import MarkReviewProcessed
from review_compare.services.opinions import OpinionNormalizer, default_vocabulary
from review_compare.services.text_analytics import (
    SENTIMENT_PATH,
    TextAnalyticsClient,
    parse_sentiment_response,
)
from review_compare.services.text_analytics_analyzer import (
    TextAnalyticsAnalyzer,
    map_provider_label,
    to_processed_tag,
)


def _document(
    doc_id: str,
    sentiment: str = "positive",
    positive: float = 0.9,
    negative: float = 0.05,
    neutral: float = 0.05,
    opinions: list[SentenceOpinion] | None = None,
) -> DocumentSentiment:
    return DocumentSentiment(
        id=doc_id,
        sentiment=sentiment,
        confidence_scores=ConfidenceScores(positive=positive, negative=negative, neutral=neutral),
        opinions=opinions or [],
    )


def _analyzer(
    client: Any, on_processed: Any = None, batch_size: int = 10
) -> TextAnalyticsAnalyzer:
    return TextAnalyticsAnalyzer(
        client,
        OpinionNormalizer(default_vocabulary()),
        on_processed=on_processed,
        batch_size=batch_size,
        language="en",
    )


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


RAW_OPINION_RESPONSE: dict[str, Any] = {
    "documents": [
        {
            "id": "r-1",
            "sentiment": "mixed",
            "confidenceScores": {"positive": 0.6, "negative": 0.3, "neutral": 0.1},
            "sentences": [
                {
                    "text": "The queue was fast but the price was awful.",
                    "targets": [
                        {
                            "text": "queue",
                            "sentiment": "positive",
                            "relations": [
                                {"relationType": "assessment", "ref": "#/documents/0/sentences/0/assessments/0"}
                            ],
                        },
                        {
                            "text": "price",
                            "sentiment": "negative",
                            "relations": [
                                {"relationType": "assessment", "ref": "#/documents/0/sentences/0/assessments/1"},
                                {"relationType": "assessment", "ref": "#/documents/0/sentences/0/assessments/9"},
                            ],
                        },
                    ],
                    "assessments": [
                        {"text": "fast", "sentiment": "positive", "confidenceScores": {"positive": 0.95, "negative": 0.05}},
                        {"text": "awful", "sentiment": "negative", "confidenceScores": {"positive": 0.02, "negative": 0.98}},
                    ],
                }
            ],
        }
    ],
    "errors": [{"id": "r-2", "error": {"code": "InvalidDocument", "message": "Document text is empty."}}],
}


class TestParseSentimentResponse:
    def test_documents_and_errors(self) -> None:
        response = parse_sentiment_response(RAW_OPINION_RESPONSE)

        assert len(response.documents) == 1
        doc = response.documents[0]
        assert doc.id == "r-1"
        assert doc.sentiment == "mixed"
        assert doc.confidence_scores.positive == pytest.approx(0.6)

        assert response.errors == [
            DocumentError(id="r-2", code="InvalidDocument", message="Document text is empty.")
        ]

    def test_relations_resolve_to_assessments(self) -> None:
        """Refs are resolved; a dangling ref is skipped."""
        opinions = parse_sentiment_response(RAW_OPINION_RESPONSE).documents[0].opinions

        assert [o.target.text for o in opinions] == ["queue", "price"]
        assert [a.text for a in opinions[0].assessments] == ["fast"]
        assert [a.text for a in opinions[1].assessments] == ["awful"]
        assert opinions[1].assessments[0].negative == pytest.approx(0.98)

    def test_empty_body(self) -> None:
        response = parse_sentiment_response({})
        assert response.documents == []
        assert response.errors == []


class TestTextAnalyticsClient:
    @pytest.mark.asyncio
    async def test_posts_batch_with_subscription_key(self) -> None:
        mock_response = MagicMock()
        mock_response.raise_for_status = MagicMock()
        mock_response.json.return_value = {
            "documents": [
                {"id": "r-1", "sentiment": "positive", "confidenceScores": {"positive": 0.9, "negative": 0.05, "neutral": 0.05}}
            ],
            "errors": [],
        }

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.__aenter__ = AsyncMock(return_value=mock_client)
            mock_client.__aexit__ = AsyncMock(return_value=False)
            mock_client.post = AsyncMock(return_value=mock_response)
            mock_client_class.return_value = mock_client

            client = TextAnalyticsClient(endpoint="https://lang.example.com/", api_key="secret")
            result = await client.analyze_sentiment_batch(
                [TextDocument(id="r-1", text="Great staff, quick service")],
                opinion_mining=True,
            )

        call = mock_client.post.call_args
        assert call.args[0] == f"https://lang.example.com{SENTIMENT_PATH}"
        assert call.kwargs["headers"]["Ocp-Apim-Subscription-Key"] == "secret"
        assert call.kwargs["params"] == {"opinionMining": "true"}
        assert call.kwargs["json"]["documents"][0] == {
            "id": "r-1",
            "text": "Great staff, quick service",
            "language": "en",
        }
        assert result.documents[0].confidence_scores.positive == pytest.approx(0.9)

    @pytest.mark.asyncio
    async def test_http_error_propagates(self) -> None:
        request = httpx.Request("POST", "https://lang.example.com")
        mock_response = MagicMock()
        mock_response.raise_for_status = MagicMock(
            side_effect=httpx.HTTPStatusError(
                "429", request=request, response=httpx.Response(429, request=request)
            )
        )

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.__aenter__ = AsyncMock(return_value=mock_client)
            mock_client.__aexit__ = AsyncMock(return_value=False)
            mock_client.post = AsyncMock(return_value=mock_response)
            mock_client_class.return_value = mock_client

            client = TextAnalyticsClient(endpoint="https://lang.example.com", api_key="k")
            with pytest.raises(httpx.HTTPStatusError):
                await client.analyze_sentiment_batch([TextDocument(id="1", text="long enough text")])


# ---------------------------------------------------------------------------
# Label mapping
# ---------------------------------------------------------------------------


class TestLabelMapping:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("positive", SentimentLabel.positive),
            ("Negative", SentimentLabel.negative),
            ("neutral", SentimentLabel.neutral),
            ("mixed", SentimentLabel.neutral),
            ("unknown", SentimentLabel.neutral),
        ],
    )
    def test_map_provider_label(self, raw: str, expected: SentimentLabel) -> None:
        assert map_provider_label(raw) == expected

    def test_processed_tags(self) -> None:
        assert to_processed_tag(SentimentLabel.positive) == ProcessedSentiment.positive
        assert to_processed_tag(SentimentLabel.negative) == ProcessedSentiment.negative
        assert to_processed_tag(SentimentLabel.neutral) == ProcessedSentiment.mixed
        assert ProcessedSentiment.positive.value == "+"
        assert ProcessedSentiment.negative.value == "-"


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


class TestAnalyzeReviews:
    @pytest.mark.asyncio
    async def test_single_review_scenario(self, make_review) -> None:
        """One NYC review scored 0.9 positive gives confidence 0.9 and a Positive summary."""
        client = MagicMock()
        client.analyze_sentiment_batch = AsyncMock(
            return_value=SentimentBatchResponse(documents=[_document("r-1")])
        )
        analyzer = _analyzer(client)
        analyzer.extract_top_phrases = AsyncMock(return_value=[])  # type: ignore[method-assign]

        results = await analyzer.analyze_reviews([make_review("r-1")])
        summary = await analyzer.generate_summary("NYC", results)

        assert len(results) == 1
        assert results[0].confidence == pytest.approx(0.9)
        assert results[0].sentiment == SentimentLabel.positive
        assert results[0].location == "NYC"
        assert summary.overall_sentiment == SentimentLabel.positive
        assert summary.positive_count == 1
        assert summary.total_reviews == 1
        assert summary.average_positive_score == pytest.approx(0.9)

    @pytest.mark.asyncio
    async def test_short_review_never_reaches_provider(self, make_review) -> None:
        client = MagicMock()
        client.analyze_sentiment_batch = AsyncMock()
        analyzer = _analyzer(client)

        results = await analyzer.analyze_reviews([make_review("r-1", content="  ok  ")])

        assert results == []
        client.analyze_sentiment_batch.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_batch_is_skipped(self, make_review) -> None:
        """A provider failure drops only its own batch."""
        client = MagicMock()
        client.analyze_sentiment_batch = AsyncMock(
            side_effect=[
                httpx.ConnectError("boom"),
                SentimentBatchResponse(documents=[_document("r-3")]),
            ]
        )
        analyzer = _analyzer(client, batch_size=2)
        reviews = [make_review(f"r-{i}") for i in range(1, 4)]

        results = await analyzer.analyze_reviews(reviews)

        assert [r.review_id for r in results] == ["r-3"]
        assert client.analyze_sentiment_batch.await_count == 2

    @pytest.mark.asyncio
    async def test_default_batches_of_ten(self, make_review) -> None:
        """25 reviews go out in provider batches of 10, 10 and 5."""
        batch_sizes: list[int] = []

        async def score(documents: list[TextDocument], **kwargs: Any) -> SentimentBatchResponse:
            batch_sizes.append(len(documents))
            return SentimentBatchResponse(documents=[_document(d.id) for d in documents])

        client = MagicMock()
        client.analyze_sentiment_batch = AsyncMock(side_effect=score)
        analyzer = TextAnalyticsAnalyzer(client, OpinionNormalizer(default_vocabulary()))

        results = await analyzer.analyze_reviews([make_review(f"r-{i}") for i in range(25)])

        assert batch_sizes == [10, 10, 5]
        assert len(results) == 25

    @pytest.mark.asyncio
    async def test_document_errors_and_unmatched_ids_dropped(self, make_review) -> None:
        client = MagicMock()
        client.analyze_sentiment_batch = AsyncMock(
            return_value=SentimentBatchResponse(
                documents=[_document("r-1"), _document("ghost")],
                errors=[DocumentError(id="r-2", code="InvalidDocument", message="bad")],
            )
        )
        analyzer = _analyzer(client)

        results = await analyzer.analyze_reviews([make_review("r-1"), make_review("r-2")])

        assert [r.review_id for r in results] == ["r-1"]

    @pytest.mark.asyncio
    async def test_mixed_maps_to_neutral_with_max_confidence(self, make_review) -> None:
        client = MagicMock()
        client.analyze_sentiment_batch = AsyncMock(
            return_value=SentimentBatchResponse(
                documents=[_document("r-1", "mixed", positive=0.4, negative=0.45, neutral=0.15)]
            )
        )
        results = await _analyzer(client).analyze_reviews([make_review("r-1")])

        assert results[0].sentiment == SentimentLabel.neutral
        assert results[0].confidence == pytest.approx(0.45)

    @pytest.mark.asyncio
    async def test_processed_command_issued(self, make_review) -> None:
        client = MagicMock()
        client.analyze_sentiment_batch = AsyncMock(
            return_value=SentimentBatchResponse(
                documents=[_document("r-1"), _document("r-2", "negative", 0.1, 0.8, 0.1)]
            )
        )
        on_processed = AsyncMock(return_value=True)

        await _analyzer(client, on_processed=on_processed).analyze_reviews(
            [make_review("r-1"), make_review("r-2")]
        )

        commands = [c.args[0] for c in on_processed.await_args_list]
        assert commands == [
            MarkReviewProcessed(review_id="r-1", sentiment_tag=ProcessedSentiment.positive),
            MarkReviewProcessed(review_id="r-2", sentiment_tag=ProcessedSentiment.negative),
        ]

    @pytest.mark.asyncio
    async def test_processed_handler_failure_is_not_fatal(self, make_review) -> None:
        client = MagicMock()
        client.analyze_sentiment_batch = AsyncMock(
            return_value=SentimentBatchResponse(documents=[_document("r-1")])
        )
        on_processed = AsyncMock(side_effect=RuntimeError("db down"))

        results = await _analyzer(client, on_processed=on_processed).analyze_reviews(
            [make_review("r-1")]
        )

        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_empty_input(self) -> None:
        client = MagicMock()
        client.analyze_sentiment_batch = AsyncMock()
        assert await _analyzer(client).analyze_reviews([]) == []


class TestOpinionMining:
    @pytest.mark.asyncio
    async def test_top_phrases_from_opinions(self, make_ta_record) -> None:
        opinions = [
            SentenceOpinion(
                target=OpinionTarget(text="queue"),
                assessments=[OpinionAssessment(text="fast", sentiment="positive", positive=0.9, negative=0.0)],
            ),
            SentenceOpinion(
                target=OpinionTarget(text="staff"),
                assessments=[OpinionAssessment(text="great", sentiment="positive", positive=0.99, negative=0.0)],
            ),
        ]
        client = MagicMock()
        client.analyze_sentiment_batch = AsyncMock(
            return_value=SentimentBatchResponse(documents=[_document("r-1", opinions=opinions)])
        )

        phrases = await _analyzer(client).extract_top_phrases([make_ta_record("r-1")])

        assert phrases == ["wait time is quick"]
        assert client.analyze_sentiment_batch.call_args.kwargs["opinion_mining"] is True

    @pytest.mark.asyncio
    async def test_mining_failure_yields_no_phrases(self, make_ta_record) -> None:
        client = MagicMock()
        client.analyze_sentiment_batch = AsyncMock(side_effect=httpx.ReadTimeout("slow"))

        assert await _analyzer(client).extract_top_phrases([make_ta_record("r-1")]) == []

    @pytest.mark.asyncio
    async def test_summary_mines_positive_and_negative_separately(self, make_ta_record) -> None:
        client = MagicMock()
        analyzer = _analyzer(client)
        analyzer.extract_top_phrases = AsyncMock(  # type: ignore[method-assign]
            side_effect=[["wait time is quick"], ["pricing is poor"]]
        )
        records = [
            make_ta_record("r-1", SentimentLabel.positive),
            make_ta_record("r-2", SentimentLabel.negative),
            make_ta_record("r-3", SentimentLabel.neutral),
        ]

        summary = await analyzer.generate_summary("NYC", records)

        positives = analyzer.extract_top_phrases.await_args_list[0].args[0]
        negatives = analyzer.extract_top_phrases.await_args_list[1].args[0]
        assert [r.review_id for r in positives] == ["r-1"]
        assert [r.review_id for r in negatives] == ["r-2"]
        assert summary.top_pros == ["wait time is quick"]
        assert summary.top_cons == ["pricing is poor"]
        assert summary.overall_sentiment == SentimentLabel.neutral

    @pytest.mark.asyncio
    async def test_summary_for_unknown_location(self, make_ta_record) -> None:
        summary = await _analyzer(MagicMock()).generate_summary("X", [make_ta_record("r-1")])

        assert summary.location == "X"
        assert summary.total_reviews == 0
        assert summary.overall_sentiment == SentimentLabel.neutral
