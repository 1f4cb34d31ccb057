"""Validation functions for trust scores and reviews.

Each function returns a list of validation errors (empty if valid).
"""

from __future__ import annotations

from .constants import TrustConstants
from .models import Review, TrustScore
from .scoring import compute_composite_score


def validate_trust_score(score: TrustScore) -> list[str]:
    """Validate a score before it is persisted.

    Checks:
    1. Every [0, 1] component is in range
    2. Composite matches its formula within tolerance
    3. Counters are non-negative
    """
    errors = []

    for name in ("quality", "consistency", "entropy", "reputation", "composite"):
        value = getattr(score, name)
        if not 0.0 <= value <= 1.0:
            errors.append(f"{name} must be between 0.0 and 1.0 (got {value})")

    if not 0.0 <= score.byzantine_flags.risk_score <= 1.0:
        errors.append("risk_score must be between 0.0 and 1.0")

    expected = compute_composite_score(score.quality, score.consistency, score.reputation)
    if abs(score.composite - expected) > TrustConstants.COMPOSITE_TOLERANCE:
        errors.append(f"Composite score {score.composite:.4f} does not match formula ({expected:.4f})")

    if score.transaction_count < 0:
        errors.append("transaction_count cannot be negative")
    if score.total_value < 0:
        errors.append("total_value cannot be negative")

    return errors


def validate_review(review: Review) -> list[str]:
    """Validate a review submission."""
    errors = []

    if isinstance(review.rating, bool) or not isinstance(review.rating, int):
        errors.append("Rating must be a whole number")
    elif not TrustConstants.MIN_RATING <= review.rating <= TrustConstants.MAX_RATING:
        errors.append(
            f"Rating must be between {TrustConstants.MIN_RATING} and {TrustConstants.MAX_RATING}"
        )

    if not isinstance(review.comment, str):
        errors.append("Review comment must be text")
    elif not review.comment.strip():
        errors.append("Review comment cannot be empty")
    elif len(review.comment) > TrustConstants.MAX_COMMENT_LENGTH:
        errors.append(f"Review comment too long (max {TrustConstants.MAX_COMMENT_LENGTH} characters)")

    if review.reviewer == review.seller:
        errors.append("Cannot review your own sale")

    return errors
