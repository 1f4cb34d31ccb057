"""Constants for the trust score model."""

from __future__ import annotations


class TrustConstants:
    """Weights, learning rates and thresholds of the trust score model."""

    # Composite weights
    W_QUALITY = 0.4
    W_CONSISTENCY = 0.3
    W_REPUTATION = 0.3
    COMPOSITE_TOLERANCE = 0.01

    # Learning rates (EMA alpha)
    QUALITY_ALPHA = 0.2
    REPUTATION_ALPHA = 0.3
    CONSISTENCY_NEW_WEIGHT = 0.7

    # Transaction quality
    SUCCESS_BASE_QUALITY = 0.8
    SUCCESS_VALUE_BONUS_CAP = 0.2
    VALUE_BONUS_SCALE = 1_000_000
    FAILURE_QUALITY = 0.2

    # Neutral defaults
    NEUTRAL_QUALITY = 0.5
    NEUTRAL_CONSISTENCY = 0.5
    NEUTRAL_REPUTATION = 0.5
    NEUTRAL_COMPOSITE = 0.5
    NEUTRAL_ENTROPY = 0.0

    # Byzantine detection
    VOLATILE_ENTROPY_THRESHOLD = 0.7
    SYBIL_MAX_TRANSACTIONS = 3
    SYBIL_COMPOSITE_THRESHOLD = 0.8
    INCONSISTENCY_THRESHOLD = 0.3

    # Risk contributions
    RISK_CARTEL = 0.4
    RISK_VOLATILE = 0.2
    RISK_GRADIENT_POISONING = 0.3
    RISK_SYBIL = 0.1
    RISK_INCONSISTENCY = 0.2

    # Reviews
    MIN_RATING = 1
    MAX_RATING = 5
    SUCCESSFUL_RATING = 4
    MAX_COMMENT_LENGTH = 1000
