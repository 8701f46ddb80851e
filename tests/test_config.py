"""Tests for configuration settings."""

from unittest.mock import patch

import pytest

from github_sync_db.config import (
    QueryConfig,
    Settings,
    SyncConfig,
    default_pool_size,
    get_settings,
)


class TestSettings:
    """Tests for Settings class."""

    def test_settings_defaults(self):
        """Test default values are correct."""
        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite+aiosqlite:///./github_sync.db"
        assert settings.github_client_id == ""
        assert settings.github_client_secret == ""
        assert settings.github_oauth_scope == "repo,user,read:org"
        assert settings.environment == "development"
        assert settings.log_level == "INFO"

    def test_nested_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.github.per_page == 100
        assert settings.github.rate_limit_cooldown_seconds == 60.0
        assert settings.sync.strategy == "sequential"
        assert settings.sync.worker_mode == "thread"
        assert settings.query.default_page_size == 100
        assert settings.query.max_page_size == 1000
        assert settings.query.list_timeout_seconds == 5.0
        assert settings.query.search_timeout_seconds == 3.0
        assert settings.query.search_limit == 10
        assert settings.logging.log_file is None

    def test_settings_from_env(self, monkeypatch):
        """Test environment variables override defaults."""
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
        monkeypatch.setenv("GITHUB_CLIENT_ID", "Iv1.8a61f9b3a7aba766")
        monkeypatch.setenv("GITHUB_CLIENT_SECRET", "s3cret")
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite+aiosqlite:///./test.db"
        assert settings.github_client_id == "Iv1.8a61f9b3a7aba766"
        assert settings.github_client_secret == "s3cret"
        assert settings.environment == "production"
        assert settings.log_level == "DEBUG"

    def test_nested_env_override(self, monkeypatch):
        monkeypatch.setenv("SYNC__STRATEGY", "worker_pool")
        monkeypatch.setenv("SYNC__WORKER_POOL_SIZE", "3")
        monkeypatch.setenv("QUERY__SEARCH_LIMIT", "25")
        monkeypatch.setenv("GITHUB__RATE_LIMIT_COOLDOWN_SECONDS", "5")

        settings = Settings(_env_file=None)

        assert settings.sync.strategy == "worker_pool"
        assert settings.sync.worker_pool_size == 3
        assert settings.query.search_limit == 25
        assert settings.github.rate_limit_cooldown_seconds == 5.0

    def test_settings_environment_validation(self, monkeypatch):
        """Test that invalid environment value is rejected."""
        monkeypatch.setenv("ENVIRONMENT", "invalid")

        with pytest.raises(ValueError):
            Settings(_env_file=None)

    def test_invalid_strategy_rejected(self, monkeypatch):
        monkeypatch.setenv("SYNC__STRATEGY", "threads")

        with pytest.raises(ValueError):
            Settings(_env_file=None)

    def test_settings_case_insensitive(self, monkeypatch):
        """Test that env var names are case-insensitive."""
        monkeypatch.setenv("database_url", "sqlite+aiosqlite:///./lower.db")
        monkeypatch.setenv("GITHUB_CLIENT_ID", "upper_id")

        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite+aiosqlite:///./lower.db"
        assert settings.github_client_id == "upper_id"


class TestSyncConfig:
    def test_explicit_pool_size(self):
        assert SyncConfig(worker_pool_size=7).effective_pool_size == 7

    @pytest.mark.parametrize(("cpus", "expected"), [(None, 2), (1, 2), (3, 3), (16, 4)])
    def test_default_pool_size_bounds(self, cpus, expected):
        with patch("github_sync_db.config.os.cpu_count", return_value=cpus):
            assert default_pool_size() == expected
            assert SyncConfig().effective_pool_size == expected

    def test_pool_size_upper_limit(self):
        with pytest.raises(ValueError):
            SyncConfig(worker_pool_size=64)


class TestQueryConfig:
    def test_timeouts_must_be_positive(self):
        with pytest.raises(ValueError):
            QueryConfig(list_timeout_seconds=0)


class TestGetSettings:
    """Tests for get_settings function."""

    def test_get_settings_returns_settings(self):
        get_settings.cache_clear()

        assert isinstance(get_settings(), Settings)

    def test_get_settings_cached(self):
        """Test that get_settings returns cached instance."""
        get_settings.cache_clear()

        assert get_settings() is get_settings()
