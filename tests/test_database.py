"""
Tests for the Supabase client factory and the shared client.
"""

import pytest
from unittest.mock import ANY, patch

from creatorscook.core import database
from creatorscook.core.config import Config


@pytest.fixture(autouse=True)
def fresh_client():
    database.reset_supabase_client()
    yield
    database.reset_supabase_client()


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(Config, "SUPABASE_URL", "https://db.example.supabase.co")
    monkeypatch.setattr(Config, "SUPABASE_SERVICE_KEY", "service-key")
    monkeypatch.setattr(Config, "DATABASE_TIMEOUT_SECONDS", 12)


@pytest.fixture
def unconfigured(monkeypatch):
    monkeypatch.setattr(Config, "SUPABASE_URL", "")
    monkeypatch.setattr(Config, "SUPABASE_SERVICE_KEY", "")


class TestCreateSupabaseClient:

    def test_uses_config_and_timeouts(self, configured):
        with patch("creatorscook.core.database.create_client") as mock_create:
            client = database.create_supabase_client()

        assert client is mock_create.return_value
        mock_create.assert_called_once_with("https://db.example.supabase.co", "service-key", options=ANY)
        options = mock_create.call_args.kwargs["options"]
        assert options.postgrest_client_timeout == 12
        assert options.storage_client_timeout == 12

    def test_explicit_credentials_skip_config(self, unconfigured):
        with patch("creatorscook.core.database.create_client") as mock_create:
            database.create_supabase_client("https://other.supabase.co", "other-key")

        assert mock_create.call_args.args == ("https://other.supabase.co", "other-key")

    def test_partial_credentials(self, unconfigured):
        with patch("creatorscook.core.database.create_client") as mock_create:
            with pytest.raises(ValueError, match="URL and service key"):
                database.create_supabase_client(url="https://other.supabase.co")

        mock_create.assert_not_called()


class TestGetSupabaseClient:

    def test_created_once(self, configured):
        with patch("creatorscook.core.database.create_client") as mock_create:
            first = database.get_supabase_client()
            second = database.get_supabase_client()

        assert first is second
        mock_create.assert_called_once()

    def test_reset_builds_a_new_client(self, configured):
        with patch("creatorscook.core.database.create_client") as mock_create:
            database.get_supabase_client()
            database.reset_supabase_client()
            database.get_supabase_client()

        assert mock_create.call_count == 2

    def test_missing_configuration(self, unconfigured):
        with patch("creatorscook.core.database.create_client") as mock_create:
            with pytest.raises(ValueError, match="SUPABASE_URL"):
                database.get_supabase_client()

        mock_create.assert_not_called()
