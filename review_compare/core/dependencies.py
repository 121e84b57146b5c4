"""Process-wide service factories.

Routers receive these through ``Depends``; the scheduler calls them
directly.  Each factory builds its object once from ``settings``.
"""

from functools import lru_cache

from review_compare.core.config import settings
from review_compare.db.store import ReviewStore
from review_compare.services.chat import ChatClient
from review_compare.services.chat_analyzer import ChatAnalyzer
from review_compare.services.comparison import ComparisonService
from review_compare.services.opinions import OpinionNormalizer, load_vocabulary
from review_compare.services.text_analytics import TextAnalyticsClient
from review_compare.services.text_analytics_analyzer import TextAnalyticsAnalyzer


@lru_cache(maxsize=1)
def get_store() -> ReviewStore:
    return ReviewStore()


@lru_cache(maxsize=1)
def get_normalizer() -> OpinionNormalizer:
    return OpinionNormalizer(load_vocabulary(settings.OPINION_VOCABULARY_PATH))


@lru_cache(maxsize=1)
def get_text_analytics_analyzer() -> TextAnalyticsAnalyzer:
    """Text analytics analyzer wired to mark reviews processed in the store."""
    return TextAnalyticsAnalyzer(
        TextAnalyticsClient(),
        get_normalizer(),
        on_processed=get_store().mark_review_processed,
    )


@lru_cache(maxsize=1)
def get_chat_analyzer() -> ChatAnalyzer:
    return ChatAnalyzer(ChatClient())


@lru_cache(maxsize=1)
def get_comparison_service() -> ComparisonService:
    return ComparisonService(get_text_analytics_analyzer(), get_chat_analyzer(), get_store())
