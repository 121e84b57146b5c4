"""Application configuration via pydantic-settings.

Loads all settings from environment variables with sensible defaults.
A global `settings` singleton is available for import throughout the app.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Supabase
    SUPABASE_URL: str
    SUPABASE_KEY: str

    # Text analytics (structured sentiment provider)
    TEXT_ANALYTICS_ENDPOINT: str = ""
    TEXT_ANALYTICS_KEY: str = ""
    TEXT_ANALYTICS_LANGUAGE: str = "en"

    # LLM (chat sentiment provider)
    LLM_BASE_URL: str = "https://api.openai.com/v1"
    LLM_MODEL: str = "gpt-3.5-turbo"
    LLM_API_KEY: str = ""

    # Analysis
    REVIEW_DOMAIN: str = "Apple store"
    OPINION_VOCABULARY_PATH: str = ""
    REVIEW_MAX_MONTHS: int = 12
    REVIEW_MAX_COUNT: int = 1000

    # CORS
    ALLOWED_ORIGINS: str = "*"

    # Scheduler
    SCHEDULER_ENABLED: bool = True
    COMPARISON_INTERVAL_HOURS: int = 24

    # Logging
    LOG_LEVEL: str = "INFO"


settings = Settings()  # type: ignore[call-arg]
