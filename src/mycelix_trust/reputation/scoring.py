"""Trust score arithmetic.

Pure functions only: nothing here touches storage, caches or clocks
beyond the timestamp handed in. The update pipeline for one transaction:

1. transaction quality from outcome and value
2. PoGQ (quality, consistency, entropy) via exponential moving averages
3. reputation EMA on the binary outcome
4. composite = 0.4 quality + 0.3 consistency + 0.3 reputation
5. Byzantine flags and risk from the *new* values
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from .constants import TrustConstants
from .models import ByzantineFlags, TrustScore


@dataclass(frozen=True)
class ProofOfGradientQuality:
    """Behavioural reliability triple."""
    quality: float
    consistency: float
    entropy: float


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def compute_transaction_quality(successful: bool, value: int) -> float:
    """Quality signal of a single transaction.

    Successful transactions score 0.8 plus a value bonus capped at 0.2
    (reached at 200,000 value units); failures score a flat 0.2.
    """
    if not successful:
        return TrustConstants.FAILURE_QUALITY
    bonus = min(value / TrustConstants.VALUE_BONUS_SCALE, TrustConstants.SUCCESS_VALUE_BONUS_CAP)
    return TrustConstants.SUCCESS_BASE_QUALITY + bonus


def compute_entropy(quality: float, consistency: float) -> float:
    """Volatility proxy: high when quality is extreme and consistency is low.

    Not an information-theoretic entropy.
    """
    return (abs(0.5 - quality) + (1.0 - consistency)) / 2.0


def compute_pogq(
    quality: float,
    consistency: float,
    transaction_quality: float,
) -> ProofOfGradientQuality:
    """Fold one transaction into the (quality, consistency, entropy) triple."""
    alpha = TrustConstants.QUALITY_ALPHA
    new_quality = clamp(alpha * transaction_quality + (1.0 - alpha) * quality)

    # Consistency compares against the quality *before* this transaction
    diff = abs(transaction_quality - quality)
    w = TrustConstants.CONSISTENCY_NEW_WEIGHT
    new_consistency = clamp(w * (1.0 - min(diff, 1.0)) + (1.0 - w) * consistency)

    return ProofOfGradientQuality(
        quality=new_quality,
        consistency=new_consistency,
        entropy=compute_entropy(new_quality, new_consistency),
    )


def compute_reputation(reputation: float, successful: bool) -> float:
    alpha = TrustConstants.REPUTATION_ALPHA
    outcome = 1.0 if successful else 0.0
    return clamp(alpha * outcome + (1.0 - alpha) * reputation)


def compute_composite_score(quality: float, consistency: float, reputation: float) -> float:
    """composite = clamp(0.4 quality + 0.3 consistency + 0.3 reputation, 0, 1)."""
    return clamp(
        TrustConstants.W_QUALITY * quality
        + TrustConstants.W_CONSISTENCY * consistency
        + TrustConstants.W_REPUTATION * reputation
    )


def detect_byzantine_patterns(score: TrustScore) -> ByzantineFlags:
    """Recompute Byzantine flags for an already-updated score.

    Cartel and gradient-poisoning flags are carried over untouched; the
    inconsistency penalty adds to risk without a named flag.
    """
    previous = score.byzantine_flags
    volatile = score.entropy > TrustConstants.VOLATILE_ENTROPY_THRESHOLD
    sybil = (
        score.transaction_count < TrustConstants.SYBIL_MAX_TRANSACTIONS
        and score.composite > TrustConstants.SYBIL_COMPOSITE_THRESHOLD
    )

    risk = 0.0
    if previous.cartel_detected:
        risk += TrustConstants.RISK_CARTEL
    if volatile:
        risk += TrustConstants.RISK_VOLATILE
    if previous.gradient_poisoning:
        risk += TrustConstants.RISK_GRADIENT_POISONING
    if sybil:
        risk += TrustConstants.RISK_SYBIL
    if score.quality - score.consistency > TrustConstants.INCONSISTENCY_THRESHOLD:
        risk += TrustConstants.RISK_INCONSISTENCY

    return ByzantineFlags(
        cartel_detected=previous.cartel_detected,
        volatile_reputation=volatile,
        gradient_poisoning=previous.gradient_poisoning,
        sybil_suspected=sybil,
        risk_score=min(risk, 1.0),
    )


def apply_transaction(
    score: TrustScore,
    successful: bool,
    value: int,
    now: datetime | None = None,
) -> TrustScore:
    """Return the score that results from one more transaction.

    The input is not modified.
    """
    transaction_quality = compute_transaction_quality(successful, value)
    pogq = compute_pogq(score.quality, score.consistency, transaction_quality)
    reputation = compute_reputation(score.reputation, successful)

    updated = replace(
        score,
        quality=pogq.quality,
        consistency=pogq.consistency,
        entropy=pogq.entropy,
        reputation=reputation,
        composite=compute_composite_score(pogq.quality, pogq.consistency, reputation),
        transaction_count=score.transaction_count + 1,
        total_value=score.total_value + value,
        updated_at=now if now is not None else score.updated_at,
    )
    updated.byzantine_flags = detect_byzantine_patterns(updated)
    return updated
