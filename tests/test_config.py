"""Unit tests for configuration, Supabase client, /health and logging setup."""

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient


class TestSettings:
    """Settings loading via pydantic-settings."""

    def test_settings_loads_required_fields(self) -> None:
        """Given env vars are set, settings loads without error."""
        env_overrides = {
            "SUPABASE_URL": "https://test.supabase.co",
            "SUPABASE_KEY": "test-key-123",
            "TEXT_ANALYTICS_ENDPOINT": "https://lang.example.com",
            "LLM_API_KEY": "sk-test",
        }
        with patch.dict("os.environ", env_overrides, clear=False):
            from review_compare.core.config import Settings

            s = Settings()  # type: ignore[call-arg]
            assert s.SUPABASE_URL == "https://test.supabase.co"
            assert s.SUPABASE_KEY == "test-key-123"
            assert s.TEXT_ANALYTICS_ENDPOINT == "https://lang.example.com"
            assert s.LLM_API_KEY == "sk-test"

    def test_settings_defaults(self) -> None:
        """Given minimal env vars, defaults are applied correctly."""
        env_overrides = {
            "SUPABASE_URL": "https://test.supabase.co",
            "SUPABASE_KEY": "test-key",
        }
        with patch.dict("os.environ", env_overrides, clear=True):
            from review_compare.core.config import Settings

            s = Settings(_env_file=None)  # type: ignore[call-arg]
            assert s.LLM_MODEL == "gpt-3.5-turbo"
            assert s.TEXT_ANALYTICS_LANGUAGE == "en"
            assert s.REVIEW_DOMAIN == "Apple store"
            assert s.REVIEW_MAX_MONTHS == 12
            assert s.REVIEW_MAX_COUNT == 1000
            assert s.COMPARISON_INTERVAL_HOURS == 24
            assert s.SCHEDULER_ENABLED is True
            assert s.ALLOWED_ORIGINS == "*"
            assert s.LOG_LEVEL == "INFO"


class TestSupabaseClient:
    """Supabase singleton client."""

    def test_get_supabase_returns_client(self) -> None:
        mock_client = MagicMock()
        with patch("review_compare.db.supabase.create_client", return_value=mock_client):
            import review_compare.db.supabase as supa_mod

            supa_mod._client = None
            assert supa_mod.get_supabase() is mock_client
            supa_mod._client = None

    def test_get_supabase_is_singleton(self) -> None:
        mock_client = MagicMock()
        with patch("review_compare.db.supabase.create_client", return_value=mock_client) as mock_create:
            import review_compare.db.supabase as supa_mod

            supa_mod._client = None
            first = supa_mod.get_supabase()
            second = supa_mod.get_supabase()
            assert first is second
            mock_create.assert_called_once()
            supa_mod._client = None


class TestHealthEndpoint:
    """GET /health returns database and scheduler status."""

    def test_health_connected(
        self, test_client: TestClient, mock_supabase_module: MagicMock
    ) -> None:
        response = test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["database"] == "connected"
        assert body["scheduler"] == "stopped"
        assert body["refresh_running"] is False
        mock_supabase_module.table.assert_called_with("reviews")

    def test_health_disconnected(
        self, test_client: TestClient, mock_supabase_disconnected: MagicMock
    ) -> None:
        """Given Supabase is unreachable, /health returns 503."""
        response = test_client.get("/health")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "degraded"
        assert body["database"] == "disconnected"


class TestLogging:
    """Structured logging configuration."""

    def test_setup_logging_configures_root_logger(self) -> None:
        import logging

        from review_compare.core.logging import setup_logging

        setup_logging()
        root = logging.getLogger()
        assert len(root.handlers) == 1
        handler = root.handlers[0]
        assert handler.formatter is not None
        fmt = handler.formatter._fmt
        assert "%(levelname)" in fmt
        assert "%(asctime)" in fmt
        assert "%(name)" in fmt
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_setup_logging_is_idempotent(self) -> None:
        import logging

        from review_compare.core.logging import setup_logging

        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1


class TestSchedulerSettings:
    """Scheduler and review-window settings drive the refresh job."""

    def test_disabled_from_env_keeps_scheduler_stopped(self) -> None:
        env_overrides = {
            "SUPABASE_URL": "https://test.supabase.co",
            "SUPABASE_KEY": "test-key",
            "SCHEDULER_ENABLED": "false",
        }
        with patch.dict("os.environ", env_overrides, clear=True):
            from review_compare.core.config import Settings

            disabled = Settings(_env_file=None)  # type: ignore[call-arg]

        assert disabled.SCHEDULER_ENABLED is False

        from review_compare.scheduler.jobs import is_scheduler_running, start_scheduler

        with (
            patch("review_compare.scheduler.jobs.settings", disabled),
            patch("review_compare.scheduler.jobs.scheduler") as mock_scheduler,
        ):
            assert start_scheduler() is False
            mock_scheduler.add_job.assert_not_called()
            mock_scheduler.start.assert_not_called()

        assert is_scheduler_running() is False

    def test_review_window_and_interval_from_env(self) -> None:
        env_overrides = {
            "SUPABASE_URL": "https://test.supabase.co",
            "SUPABASE_KEY": "test-key",
            "REVIEW_MAX_MONTHS": "6",
            "REVIEW_MAX_COUNT": "250",
            "COMPARISON_INTERVAL_HOURS": "6",
        }
        with patch.dict("os.environ", env_overrides, clear=True):
            from review_compare.core.config import Settings

            s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert (s.REVIEW_MAX_MONTHS, s.REVIEW_MAX_COUNT, s.COMPARISON_INTERVAL_HOURS) == (6, 250, 6)
