"""Tests for settings and client initialization."""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from cri_assessment.config import Settings, get_settings
from cri_assessment.supabase_client import get_supabase


@pytest.fixture
def fresh_supabase():
    get_supabase.cache_clear()
    yield
    get_supabase.cache_clear()


class TestSettings:
    def test_defaults(self):
        settings = get_settings()
        assert settings.PAGE_SIZE == 10
        assert settings.DIAGNOSTICS_TABLE == "diagnosticstatements"
        assert settings.RESPONSES_TABLE == "assessment_responses"
        assert settings.EVIDENCE_BUCKET == "evidence"
        assert settings.RESEND_API_KEY is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PAGE_SIZE", "25")
        monkeypatch.setenv("SAVE_DEBOUNCE_SECONDS", "0.5")
        settings = Settings(_env_file=None)
        assert settings.PAGE_SIZE == 25
        assert settings.SAVE_DEBOUNCE_SECONDS == 0.5

    def test_missing_credentials(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_cached(self):
        assert get_settings() is get_settings()


class TestGetSupabase:
    def test_creates_client_from_settings(self, fresh_supabase, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://test.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "test-key")
        with patch("cri_assessment.supabase_client.create_client") as mock_create:
            client = get_supabase()
        mock_create.assert_called_once_with("https://test.supabase.co", "test-key")
        assert client is mock_create.return_value

    def test_wraps_initialization_errors(self, fresh_supabase):
        with patch("cri_assessment.supabase_client.create_client", side_effect=Exception("bad url")):
            with pytest.raises(RuntimeError, match="Failed to initialize Supabase client"):
                get_supabase()
