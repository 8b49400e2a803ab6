"""
Tests for the configuration module.
"""

from pathlib import Path

import pytest


class TestSettings:
    """Tests for Settings class."""

    def test_defaults(self):
        """Test that defaults are applied without any environment."""
        from config.settings import Settings

        settings = Settings(_env_file=None)

        assert settings.host == "0.0.0.0"
        assert settings.port == 8080
        assert settings.catalog_backend == "memory"
        assert settings.search_default_page_size == 12
        assert settings.search_max_page_size == 100
        assert settings.history_capacity == 100
        assert settings.popular_query_cap == 20
        assert settings.correlation_window_seconds == 3600
        assert settings.trending_windowing == "monotonic"

    def test_is_development_property(self):
        """Test is_development property."""
        from config.settings import Settings

        for env in ["development", "dev", "local"]:
            assert Settings(_env_file=None, environment=env).is_development is True

        assert Settings(_env_file=None, environment="production").is_development is False

    def test_is_production_property(self):
        """Test is_production property."""
        from config.settings import Settings

        for env in ["production", "prod"]:
            assert Settings(_env_file=None, environment=env).is_production is True

        assert Settings(_env_file=None, environment="development").is_production is False

    def test_cors_origins_parsing(self):
        """Test that CORS origins can be parsed from comma-separated string."""
        from config.settings import Settings

        settings = Settings(
            _env_file=None,
            cors_origins="http://localhost:3000,http://localhost:5173",
        )

        assert settings.cors_origins == ["http://localhost:3000", "http://localhost:5173"]

    def test_seed_path_parsing(self):
        """Test that the seed path is parsed from string and blank means unset."""
        from config.settings import Settings

        settings = Settings(_env_file=None, catalog_seed_path="/tmp/items.json")
        assert settings.catalog_seed_path == Path("/tmp/items.json")

        assert Settings(_env_file=None, catalog_seed_path="  ").catalog_seed_path is None

    def test_env_vars_are_case_insensitive(self, monkeypatch):
        """Test that settings load from environment variables."""
        from config.settings import Settings

        monkeypatch.setenv("TRENDING_WINDOWING", "bucketed")
        monkeypatch.setenv("search_max_page_size", "50")

        settings = Settings(_env_file=None)
        assert settings.trending_windowing == "bucketed"
        assert settings.search_max_page_size == 50

    def test_invalid_windowing_is_rejected(self):
        from pydantic import ValidationError
        from config.settings import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None, trending_windowing="sliding")

    def test_settings_for_testing(self):
        """Test get_settings_for_testing function."""
        from config.settings import get_settings_for_testing

        settings = get_settings_for_testing(search_default_page_size=5)

        assert settings.environment == "testing"
        assert settings.debug is True
        assert settings.tracking_workers == 0
        assert settings.search_default_page_size == 5
        assert len(settings.supabase_jwt_secret) >= 32


class TestConstants:
    """Tests for constants module."""

    def test_relevance_weights(self):
        from config.constants import DEFAULT_RELEVANCE_WEIGHTS

        assert DEFAULT_RELEVANCE_WEIGHTS.FIELD_WEIGHTS["name"] == 3.0
        assert DEFAULT_RELEVANCE_WEIGHTS.FIELD_WEIGHTS["brand"] == 2.5
        assert DEFAULT_RELEVANCE_WEIGHTS.EXACT_NAME_BONUS == 2.0
        assert DEFAULT_RELEVANCE_WEIGHTS.IN_STOCK_BOOST == 0.5

    def test_trending_config(self):
        from config.constants import DEFAULT_TRENDING_CONFIG, TIMEFRAMES

        assert (DEFAULT_TRENDING_CONFIG.WEIGHT_24H, DEFAULT_TRENDING_CONFIG.WEIGHT_7D,
                DEFAULT_TRENDING_CONFIG.WEIGHT_30D) == (10.0, 2.0, 0.5)
        assert set(DEFAULT_TRENDING_CONFIG.WINDOW_HOURS) == set(TIMEFRAMES)

    def test_configs_are_frozen(self):
        from dataclasses import FrozenInstanceError
        from config.constants import DEFAULT_HISTORY_CONFIG

        with pytest.raises(FrozenInstanceError):
            DEFAULT_HISTORY_CONFIG.CAPACITY = 5


class TestDatabase:
    """Tests for database module."""

    def test_missing_credentials_raise(self):
        from config.database import SupabaseClientError, create_supabase_client
        from config.settings import get_settings_for_testing

        with pytest.raises(SupabaseClientError):
            create_supabase_client(get_settings_for_testing(supabase_url="", supabase_service_key=""))

    def test_client_created_from_settings(self, monkeypatch):
        from unittest.mock import MagicMock
        import config.database as database
        from config.settings import get_settings_for_testing

        fake = MagicMock()
        monkeypatch.setattr(database, "create_client", MagicMock(return_value=fake))

        settings = get_settings_for_testing(
            supabase_url="https://test.supabase.co",
            supabase_service_key="test-key",
        )
        assert database.create_supabase_client(settings) is fake
        database.create_client.assert_called_once_with("https://test.supabase.co", "test-key")
