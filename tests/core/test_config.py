"""Tests for mycelix_trust.core.config - CoreSettings and global config management.

Tests cover:
- Settings loading with defaults
- Environment variable overrides
- Range validation
- Singleton behavior (get_config / clear_config_cache)
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from mycelix_trust.core.config import (
    CoreSettings,
    clear_config_cache,
    get_config,
)

# ============================================================================
# CoreSettings - Default Values
# ============================================================================


class TestCoreSettingsDefaults:
    """Test that CoreSettings loads with correct default values."""

    def test_logging_defaults(self, clean_env):
        """Test logging settings have correct defaults."""
        settings = CoreSettings()

        assert settings.log_level == "INFO"
        assert settings.log_format == ""
        assert settings.log_file is None

    def test_cache_defaults(self, clean_env):
        """Score cache holds 10,000 entries for five minutes by default."""
        settings = CoreSettings()

        assert settings.score_cache_ttl_seconds == 300.0
        assert settings.score_cache_max_size == 10_000

    def test_trust_and_arbitration_defaults(self, clean_env):
        """Thresholds match the protocol constants."""
        settings = CoreSettings()

        assert settings.byzantine_risk_threshold == 0.5
        assert settings.arbitrator_min_composite == 0.7
        assert settings.arbitrators_per_dispute == 3
        assert settings.buyer_win_threshold == 0.66


# ============================================================================
# CoreSettings - Environment Overrides
# ============================================================================


class TestCoreSettingsEnvOverrides:
    """Test MYCELIX_ environment variables override defaults."""

    def test_cache_env_vars(self, clean_env, monkeypatch):
        monkeypatch.setenv("MYCELIX_SCORE_CACHE_TTL_SECONDS", "60")
        monkeypatch.setenv("MYCELIX_SCORE_CACHE_MAX_SIZE", "25")

        settings = CoreSettings()

        assert settings.score_cache_ttl_seconds == 60.0
        assert settings.score_cache_max_size == 25

    def test_arbitration_env_vars(self, clean_env, monkeypatch):
        monkeypatch.setenv("MYCELIX_ARBITRATOR_MIN_COMPOSITE", "0.8")
        monkeypatch.setenv("MYCELIX_ARBITRATORS_PER_DISPUTE", "5")

        settings = CoreSettings()

        assert settings.arbitrator_min_composite == 0.8
        assert settings.arbitrators_per_dispute == 5

    def test_logging_env_vars(self, clean_env, monkeypatch):
        monkeypatch.setenv("MYCELIX_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("MYCELIX_LOG_FORMAT", "json")
        monkeypatch.setenv("MYCELIX_LOG_FILE", "/tmp/mycelix.log")

        settings = CoreSettings()

        assert settings.log_level == "DEBUG"
        assert settings.log_format == "json"
        assert settings.log_file == "/tmp/mycelix.log"


class TestCoreSettingsValidation:
    """Out-of-range values are rejected at load time."""

    def test_zero_ttl_rejected(self, clean_env, monkeypatch):
        monkeypatch.setenv("MYCELIX_SCORE_CACHE_TTL_SECONDS", "0")
        with pytest.raises(ValidationError):
            CoreSettings()

    def test_threshold_above_one_rejected(self, clean_env, monkeypatch):
        monkeypatch.setenv("MYCELIX_BYZANTINE_RISK_THRESHOLD", "1.5")
        with pytest.raises(ValidationError):
            CoreSettings()

    def test_non_numeric_rejected(self, clean_env, monkeypatch):
        monkeypatch.setenv("MYCELIX_ARBITRATORS_PER_DISPUTE", "three")
        with pytest.raises(ValidationError):
            CoreSettings()


# ============================================================================
# Singleton
# ============================================================================


class TestGetConfig:
    """Test the lazily loaded global instance."""

    def test_returns_same_instance(self, clean_env):
        assert get_config() is get_config()

    def test_clear_cache_reloads(self, clean_env, monkeypatch):
        first = get_config()
        monkeypatch.setenv("MYCELIX_LOG_LEVEL", "WARNING")

        assert get_config().log_level == "INFO"

        clear_config_cache()
        second = get_config()

        assert second is not first
        assert second.log_level == "WARNING"
