"""Trust score and review persistence over the record/link stores.

Link layout:
    peer      --peer_to_score-->        score record (latest link wins)
    seller    --seller_reviews-->       review record
    reviewer  --buyer_reviews-->        review record
    tx ref    --transaction_reviews-->  review record
    review    --review_retractions-->   itself, when the review was retracted
"""

from __future__ import annotations

import logging
import threading

from ..core.exceptions import ConflictError
from ..core.ports import LinkStore, RecordStore
from ..core.store import persistence_errors
from .models import Review, TrustScore

logger = logging.getLogger(__name__)

PEER_TO_SCORE = "peer_to_score"
SELLER_REVIEWS = "seller_reviews"
BUYER_REVIEWS = "buyer_reviews"
TRANSACTION_REVIEWS = "transaction_reviews"
REVIEW_RETRACTIONS = "review_retractions"

TRUST_SCORE_ENTRY = "trust_score"
REVIEW_ENTRY = "review"


class TrustScoreRepository:
    """Fetch and replace a peer's current trust score record.

    Replacements are serialized by a lock so ``replace_if_current`` can
    compare the current record id and write in one step.
    """

    def __init__(self, records: RecordStore, links: LinkStore):
        self._records = records
        self._links = links
        self._lock = threading.Lock()

    def _current_record_id(self, peer_id: str) -> str | None:
        targets = self._links.query(peer_id, PEER_TO_SCORE)
        return targets[-1] if targets else None

    def get_versioned(self, peer_id: str) -> tuple[TrustScore | None, str | None]:
        """Latest stored score and the id of the record it was read from."""
        with persistence_errors(f"fetch score for {peer_id}"):
            record_id = self._current_record_id(peer_id)
            if record_id is None:
                return None, None
            record = self._records.get(record_id)
        if record is None:
            logger.warning(f"Score link for {peer_id} points at missing record {record_id}")
            return None, record_id
        return TrustScore.from_dict(record), record_id

    def get(self, peer_id: str) -> TrustScore | None:
        """Latest stored score, or None if the peer never transacted."""
        return self.get_versioned(peer_id)[0]

    def _write(self, score: TrustScore, previous_id: str | None) -> str:
        record = {"entry_type": TRUST_SCORE_ENTRY, **score.to_dict()}
        with persistence_errors(f"store score for {score.peer_id}"):
            if previous_id is None:
                record_id = self._records.create(record)
            else:
                record_id = self._records.update(previous_id, record)
            self._links.link(score.peer_id, PEER_TO_SCORE, record_id)
        return record_id

    def put(self, score: TrustScore) -> str:
        """Replace the peer's score record unconditionally.

        The record is written before the link, so a failed write leaves the
        previous record current.
        """
        with self._lock:
            with persistence_errors(f"fetch score for {score.peer_id}"):
                previous_id = self._current_record_id(score.peer_id)
            return self._write(score, previous_id)

    def replace_if_current(self, score: TrustScore, expected_record_id: str | None) -> str:
        """Replace the peer's score only if ``expected_record_id`` is still current.

        ``expected_record_id`` is the id returned by ``get_versioned``; None
        means the peer must still have no score at all.

        Raises:
            ConflictError: If another writer replaced the score first
        """
        with self._lock:
            with persistence_errors(f"fetch score for {score.peer_id}"):
                current_id = self._current_record_id(score.peer_id)
            if current_id != expected_record_id:
                raise ConflictError(
                    f"Score for {score.peer_id} changed since it was read", existing_id=current_id
                )
            return self._write(score, current_id)

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    def save_review(self, review: Review) -> str:
        """Persist a review and index it; a half-indexed review is retracted."""
        record = {"entry_type": REVIEW_ENTRY, **review.to_dict()}
        with persistence_errors(f"store review of {review.seller}"):
            review_id = self._records.create(record)
        try:
            with persistence_errors(f"index review of {review.seller}"):
                self._links.link(review.seller, SELLER_REVIEWS, review_id)
                self._links.link(review.reviewer, BUYER_REVIEWS, review_id)
                self._links.link(review.transaction_ref, TRANSACTION_REVIEWS, review_id)
        except Exception:
            self.retract_review(review_id)
            raise
        return review_id

    def retract_review(self, review_id: str) -> None:
        """Hide a stored review from every index.

        Records are never deleted, so retraction is a marker link on the
        review itself.
        """
        with persistence_errors(f"retract review {review_id}"):
            self._links.link(review_id, REVIEW_RETRACTIONS, review_id)
        logger.info(f"Review {review_id} retracted")

    def _reviews(self, base: str, link_type: str) -> list[Review]:
        reviews = []
        with persistence_errors(f"fetch {link_type} for {base}"):
            for review_id in self._links.query(base, link_type):
                if self._links.query(review_id, REVIEW_RETRACTIONS):
                    continue
                record = self._records.get(review_id)
                if record is not None:
                    reviews.append(Review.from_dict(record))
        return reviews

    def seller_reviews(self, seller: str) -> list[Review]:
        return self._reviews(seller, SELLER_REVIEWS)

    def buyer_reviews(self, reviewer: str) -> list[Review]:
        return self._reviews(reviewer, BUYER_REVIEWS)

    def transaction_reviews(self, transaction_ref: str) -> list[Review]:
        return self._reviews(transaction_ref, TRANSACTION_REVIEWS)
