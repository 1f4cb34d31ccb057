# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mycelix Contributors

"""Core configuration - centralized config for the mycelix_trust package.

All environment-based configuration flows through this module.

Usage:
    from mycelix_trust.core.config import get_config
    config = get_config()

    ttl = config.score_cache_ttl_seconds
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreSettings(BaseSettings):
    """Engine settings, configured via MYCELIX_ environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="MYCELIX_LOG_LEVEL",
    )
    log_format: str = Field(
        default="",
        description="Log format: 'json', 'text', or '' (auto-detect)",
        validation_alias="MYCELIX_LOG_FORMAT",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (optional)",
        validation_alias="MYCELIX_LOG_FILE",
    )

    # ==========================================================================
    # SCORE CACHE SETTINGS
    # ==========================================================================

    score_cache_ttl_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Seconds a cached trust score stays valid",
        validation_alias="MYCELIX_SCORE_CACHE_TTL_SECONDS",
    )
    score_cache_max_size: int = Field(
        default=10_000,
        gt=0,
        description="Maximum number of cached trust scores",
        validation_alias="MYCELIX_SCORE_CACHE_MAX_SIZE",
    )

    # ==========================================================================
    # TRUST SETTINGS
    # ==========================================================================

    byzantine_risk_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Risk score at or above which a peer is reported Byzantine",
        validation_alias="MYCELIX_BYZANTINE_RISK_THRESHOLD",
    )

    # ==========================================================================
    # ARBITRATION SETTINGS
    # ==========================================================================

    arbitrator_min_composite: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Composite score an arbitrator must strictly exceed",
        validation_alias="MYCELIX_ARBITRATOR_MIN_COMPOSITE",
    )
    arbitrators_per_dispute: int = Field(
        default=3,
        gt=0,
        description="Maximum number of arbitrators assigned to a dispute",
        validation_alias="MYCELIX_ARBITRATORS_PER_DISPUTE",
    )
    buyer_win_threshold: float = Field(
        default=0.66,
        ge=0.0,
        le=1.0,
        description="Weighted vote the buyer must strictly exceed to win",
        validation_alias="MYCELIX_BUYER_WIN_THRESHOLD",
    )


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: CoreSettings | None = None


def get_config() -> CoreSettings:
    """Get the global configuration instance.

    Returns:
        The singleton CoreSettings instance.
    """
    global _config
    if _config is None:
        _config = CoreSettings()
    return _config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None
