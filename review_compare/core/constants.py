"""Application constants.

Contains provider batch limits, cost rates, recommendation thresholds and the
default opinion-mining vocabulary.
"""

from decimal import Decimal

# ---------------------------------------------------------------------------
# Provider batching
# ---------------------------------------------------------------------------
TEXT_ANALYTICS_BATCH_SIZE: int = 10
CHAT_BATCH_SIZE: int = 5
STORAGE_BATCH_SIZE: int = 100
QUERY_PAGE_SIZE: int = 1000
MIN_ANALYSIS_TEXT_LENGTH: int = 10

# ---------------------------------------------------------------------------
# Chat completion parameters
# ---------------------------------------------------------------------------
CHAT_ANALYSIS_TEMPERATURE: float = 0.1
CHAT_ANALYSIS_MAX_TOKENS: int = 500
CHAT_SUMMARY_TEMPERATURE: float = 0.3
CHAT_SUMMARY_MAX_TOKENS: int = 800
CHAT_SUMMARY_SAMPLE_SIZE: int = 10
NARRATIVE_FALLBACK: str = "Unable to generate AI summary due to technical issues."

# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------
TOP_ASPECT_LIMIT: int = 5
MIN_OPINION_PHRASE_LENGTH: int = 8

# ---------------------------------------------------------------------------
# Cost estimates (USD)
# ---------------------------------------------------------------------------
TEXT_ANALYTICS_COST_PER_1K_RECORDS: Decimal = Decimal("1.00")
CHAT_COST_PER_1K_TOKENS: Decimal = Decimal("0.002")
CHAT_TOKENS_PER_REVIEW: int = 100

# ---------------------------------------------------------------------------
# Recommendation thresholds
# ---------------------------------------------------------------------------
HIGH_AGREEMENT_THRESHOLD: float = 80.0
LOW_AGREEMENT_THRESHOLD: float = 60.0
SLOWDOWN_FACTOR: float = 2.0
COST_FACTOR: Decimal = Decimal("2")
CONFIDENCE_DIFFERENCE_THRESHOLD: float = 0.3
LOW_OVERLAP_THRESHOLD: float = 50.0
RELIABLE_AGREEMENT_THRESHOLD: float = 75.0
RELIABLE_OVERLAP_THRESHOLD: float = 60.0

# ---------------------------------------------------------------------------
# Opinion mining vocabulary
# Targets naming people or generic nouns carry no actionable signal.
# ---------------------------------------------------------------------------
PERSON_WORDS: frozenset[str] = frozenset({
    "girl", "guy", "lady", "man", "woman", "person", "people", "staff",
    "employee", "worker", "associate", "rep", "technician", "manager",
    "supervisor", "clerk", "cashier",
})

GENERIC_TERMS: frozenset[str] = frozenset({
    "store", "time", "place", "experience", "thing", "day", "week", "month",
    "year", "help", "issue", "problem", "lot", "everything", "stuff",
    "service", "customer",
})

# Synonyms -> canonical target
TARGET_SYNONYMS: dict[str, str] = {
    "staff": "staff",
    "associate": "staff",
    "rep": "staff",
    "employee": "staff",
    "wait": "wait time",
    "queue": "wait time",
    "line": "wait time",
    "price": "pricing",
    "cost": "pricing",
    "money": "pricing",
    "device": "device",
    "phone": "device",
    "product": "device",
    "battery": "battery life",
    "charge": "battery life",
    "repair": "repair service",
    "fix": "repair service",
    "service": "repair service",
    "return": "return policy",
    "refund": "return policy",
}

ASSESSMENT_SYNONYMS: dict[str, str] = {
    "nice": "good",
    "great": "excellent",
    "awesome": "excellent",
    "terrible": "poor",
    "awful": "poor",
    "horrible": "poor",
    "fast": "quick",
    "slow": "slow",
    "quick": "quick",
}
