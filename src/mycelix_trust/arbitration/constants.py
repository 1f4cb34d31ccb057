"""Constants for Mutual Reputation Consensus arbitration."""

from __future__ import annotations


class ArbitrationConstants:
    """Thresholds and limits of the arbitration protocol."""

    # Decision
    BUYER_WIN_THRESHOLD = 0.66       # strictly greater, 0.66 exactly -> seller

    # Compensation by consensus strength
    STRONG_CONSENSUS = 0.85
    MODERATE_CONSENSUS = 0.75
    STRONG_MULTIPLIER = 1.0
    MODERATE_MULTIPLIER = 0.75
    WEAK_MULTIPLIER = 0.5

    # Content limits
    MAX_REASON_LENGTH = 5000
    MAX_REASONING_LENGTH = 2000

    # IPFS content identifiers
    CIDV0_PREFIX = "Qm"
    CIDV0_LENGTH = 46
    CIDV1_PREFIX = "b"
    CIDV1_MIN_LENGTH = 50
    CIDV1_MAX_LENGTH = 100
