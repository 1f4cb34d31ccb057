"""Trust Score Engine.

Owns the trust score model: folding transaction outcomes into a peer's
score, Byzantine flagging, and the read-through cache used by everyone
who needs a score as a weight.
"""

from __future__ import annotations

import logging

from ..core.clock import SystemClock
from ..core.config import CoreSettings, get_config
from ..core.exceptions import ValidationException
from ..core.logging import operation_context
from ..core.metrics import MetricType, safe_emit
from ..core.ports import Clock, IdentityProvider, MetricsSink
from .cache import CacheStats, ScoreCache
from .models import ByzantineCheckResult, ByzantineFlags, Review, TrustScore
from .repository import TrustScoreRepository
from .scoring import apply_transaction
from .validators import validate_review, validate_trust_score

logger = logging.getLogger(__name__)


class TrustScoreEngine:
    """Compute, persist and serve peer trust scores.

    Scores are created lazily on a peer's first update and only ever
    mutated here. A peer without a stored score is treated as neutral
    everywhere; that is never an error.
    """

    def __init__(
        self,
        repository: TrustScoreRepository,
        cache: ScoreCache,
        clock: Clock | None = None,
        identity: IdentityProvider | None = None,
        metrics: MetricsSink | None = None,
        settings: CoreSettings | None = None,
    ):
        self.repository = repository
        self.cache = cache
        self._clock = clock or SystemClock()
        self._identity = identity
        self._metrics = metrics
        self._settings = settings or get_config()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, peer_id: str) -> TrustScore | None:
        """Stored score without caching; None if the peer never transacted."""
        return self.repository.get(peer_id)

    def get_cached(self, peer_id: str) -> TrustScore:
        """Score through the cache, neutral default for unknown peers."""
        return self.cache.get_or_compute(peer_id, lambda: self.repository.get(peer_id))

    def is_byzantine(self, peer_id: str) -> ByzantineCheckResult:
        """Report whether a peer's risk score crosses the Byzantine threshold."""
        threshold = self._settings.byzantine_risk_threshold
        score = self.repository.get(peer_id)
        if score is None:
            return ByzantineCheckResult(
                peer_id=peer_id,
                is_byzantine=False,
                risk_score=0.0,
                composite=TrustScore.neutral(peer_id).composite,
                flags=ByzantineFlags(),
            )
        risk = score.byzantine_flags.risk_score
        return ByzantineCheckResult(
            peer_id=peer_id,
            is_byzantine=risk >= threshold,
            risk_score=risk,
            composite=score.composite,
            flags=score.byzantine_flags,
        )

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def update(self, peer_id: str, successful: bool, value: int) -> TrustScore:
        """Fold one transaction outcome into ``peer_id``'s score.

        Args:
            peer_id: Peer whose score changes
            successful: Transaction outcome
            value: Transaction value in minor currency units

        Returns:
            The persisted score

        Raises:
            ValidationException: If value is not a non-negative integer
            ConflictError: If another update for the peer landed after this one
                read the score; nothing is written
            InternalError: If persistence fails; the previous record stays current
        """
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationException("Transaction value must be a non-negative integer", "value", value)

        with operation_context("update_score"):
            now = self._clock.now()
            current, record_id = self.repository.get_versioned(peer_id)
            current = current or TrustScore.neutral(peer_id, now)
            updated = apply_transaction(current, bool(successful), value, now)

            errors = validate_trust_score(updated)
            if errors:
                raise ValidationException("; ".join(errors))

            self.repository.replace_if_current(updated, record_id)
            self.cache.invalidate(peer_id)

            flags = updated.byzantine_flags
            logger.info(
                f"Score for {peer_id} updated: composite={updated.composite:.3f} "
                f"risk={flags.risk_score:.2f} tx={updated.transaction_count}"
            )
            safe_emit(
                self._metrics,
                MetricType.TRUST_SCORE_UPDATED,
                updated.composite,
                peer_id,
                f"quality:{updated.quality:.2f},consistency:{updated.consistency:.2f},"
                f"reputation:{updated.reputation:.2f}",
            )
            if flags.risk_score >= self._settings.byzantine_risk_threshold:
                logger.warning(f"Peer {peer_id} crossed Byzantine risk threshold ({flags.risk_score:.2f})")
                safe_emit(
                    self._metrics,
                    MetricType.HIGH_RISK_AGENT,
                    flags.risk_score,
                    peer_id,
                    f"composite:{updated.composite:.2f}",
                )
            return updated

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    def submit_review(
        self,
        transaction_ref: str,
        listing_ref: str,
        seller: str,
        rating: int,
        comment: str,
    ) -> Review:
        """Record the caller's review of a seller and update the seller's score.

        A rating of 4 or 5 counts as a successful transaction. The review
        carries no value; value is tracked by the transaction itself.

        If the score update fails the review is retracted before the error
        propagates, so the reviewer can submit again.

        Raises:
            ValidationException: Bad rating/comment, self-review, or a second
                review of the same transaction by the same reviewer
        """
        if self._identity is None:
            raise ValidationException("Reviews require an identity provider")

        with operation_context("submit_review"):
            review = Review(
                transaction_ref=transaction_ref,
                listing_ref=listing_ref,
                rating=rating,
                comment=comment,
                reviewer=self._identity.current_caller(),
                seller=seller,
                created_at=self._clock.now(),
            )
            errors = validate_review(review)
            if errors:
                raise ValidationException("; ".join(errors))

            existing = self.repository.transaction_reviews(transaction_ref)
            if any(r.reviewer == review.reviewer for r in existing):
                raise ValidationException("Already reviewed this transaction", "transaction_ref", transaction_ref)

            review_id = self.repository.save_review(review)
            try:
                self.update(seller, successful=review.successful, value=0)
            except Exception:
                self.repository.retract_review(review_id)
                raise

            logger.info(f"Review of {seller} by {review.reviewer}: {rating} stars")
            safe_emit(self._metrics, MetricType.REVIEW_SUBMITTED, float(rating), review.reviewer, f"seller:{seller}")
            return review

    def seller_reviews(self, seller: str) -> list[Review]:
        return self.repository.seller_reviews(seller)
