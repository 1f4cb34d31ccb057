"""Peer reputation: trust scores, Byzantine flagging and the score cache.

Submodules:
- constants: Weights, learning rates and thresholds
- models: TrustScore, ByzantineFlags, ByzantineCheckResult, Review
- scoring: Pure update arithmetic (PoGQ, reputation EMA, composite, flags)
- validators: Score and review validation
- cache: ScoreCache, the TTL read-through cache
- repository: Persistence over the record/link stores
- engine: TrustScoreEngine
"""

from .cache import CacheEntry, CacheStats, ScoreCache
from .constants import TrustConstants
from .engine import TrustScoreEngine
from .models import ByzantineCheckResult, ByzantineFlags, Review, TrustScore
from .repository import TrustScoreRepository
from .scoring import (
    ProofOfGradientQuality,
    apply_transaction,
    compute_composite_score,
    compute_entropy,
    compute_pogq,
    compute_reputation,
    compute_transaction_quality,
    detect_byzantine_patterns,
)
from .validators import validate_review, validate_trust_score

__all__ = [
    "TrustConstants",
    # Models
    "TrustScore",
    "ByzantineFlags",
    "ByzantineCheckResult",
    "Review",
    "ProofOfGradientQuality",
    # Scoring
    "compute_transaction_quality",
    "compute_pogq",
    "compute_entropy",
    "compute_reputation",
    "compute_composite_score",
    "detect_byzantine_patterns",
    "apply_transaction",
    # Validation
    "validate_trust_score",
    "validate_review",
    # Cache
    "ScoreCache",
    "CacheEntry",
    "CacheStats",
    # Service
    "TrustScoreRepository",
    "TrustScoreEngine",
]
