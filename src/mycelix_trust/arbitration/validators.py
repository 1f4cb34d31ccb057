"""Validation functions for disputes, votes and results.

Each function returns a list of validation errors (empty if valid).
"""

from __future__ import annotations

from .constants import ArbitrationConstants
from .models import ArbitrationResult, ArbitrationVote, Dispute


def is_valid_cid(ref: str) -> bool:
    """Whether ``ref`` looks like an IPFS content identifier (CIDv0 or CIDv1)."""
    if not isinstance(ref, str):
        return False
    if ref.startswith(ArbitrationConstants.CIDV0_PREFIX):
        return len(ref) == ArbitrationConstants.CIDV0_LENGTH
    if ref.startswith(ArbitrationConstants.CIDV1_PREFIX):
        return ArbitrationConstants.CIDV1_MIN_LENGTH <= len(ref) <= ArbitrationConstants.CIDV1_MAX_LENGTH
    return False


def _validate_text(value: str, label: str, max_length: int) -> list[str]:
    if not isinstance(value, str):
        return [f"{label} must be text"]
    if not value.strip():
        return [f"{label} cannot be empty"]
    if len(value) > max_length:
        return [f"{label} too long (max {max_length} characters)"]
    return []


def validate_dispute(dispute: Dispute) -> list[str]:
    """Validate a dispute at filing time.

    Checks:
    1. Reason is non-blank and within length
    2. Buyer and seller differ
    3. Filer is a party to the transaction
    4. Evidence references are content identifiers
    """
    errors = _validate_text(dispute.reason, "Dispute reason", ArbitrationConstants.MAX_REASON_LENGTH)

    if dispute.buyer == dispute.seller:
        errors.append("Buyer and seller must be different peers")

    if dispute.filer not in (dispute.buyer, dispute.seller):
        errors.append("Dispute must be filed by the buyer or the seller")

    for ref in dispute.evidence_refs:
        if not is_valid_cid(ref):
            errors.append(f"Invalid evidence reference: {ref}")

    return errors


def validate_vote(vote: ArbitrationVote) -> list[str]:
    errors = _validate_text(vote.reasoning, "Vote reasoning", ArbitrationConstants.MAX_REASONING_LENGTH)
    if not 0.0 <= vote.weight_snapshot <= 1.0:
        errors.append(f"Vote weight must be between 0.0 and 1.0 (got {vote.weight_snapshot})")
    return errors


def validate_result(result: ArbitrationResult) -> list[str]:
    errors = []
    if not 0.0 <= result.weighted_vote <= 1.0:
        errors.append(f"Weighted vote must be between 0.0 and 1.0 (got {result.weighted_vote})")
    if result.total_votes < 1:
        errors.append("Result requires at least one vote")
    if result.compensation is not None and result.compensation < 0:
        errors.append("Compensation cannot be negative")
    if result.winner == result.loser:
        errors.append("Winner and loser must be different peers")
    return errors
