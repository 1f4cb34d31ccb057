"""Dispute, vote and result persistence over the record/link stores.

Link layout:
    dispute id  --dispute_revisions-->        dispute record (latest wins)
    dispute id  --dispute_votes-->            vote record
    dispute id  --dispute_result-->           result record
    result id   --result_retractions-->       itself, when the result was retracted
    arbitrator  --arbitrator_opportunities--> dispute id
    filer       --filed_disputes-->           dispute id
    tx ref      --transaction_disputes-->     dispute id
    "disputes"  --all_disputes-->             dispute id

A dispute is identified by the id of the record that created it. Later
revisions are new records linked from that id.
"""

from __future__ import annotations

import logging
import threading

from ..core.exceptions import ConflictError, NotFoundError
from ..core.ports import LinkStore, RecordStore
from ..core.store import persistence_errors
from .enums import DisputeStatus
from .models import ArbitrationResult, ArbitrationVote, Dispute

logger = logging.getLogger(__name__)

DISPUTE_REVISIONS = "dispute_revisions"
DISPUTE_VOTES = "dispute_votes"
DISPUTE_RESULT = "dispute_result"
RESULT_RETRACTIONS = "result_retractions"
ARBITRATOR_OPPORTUNITIES = "arbitrator_opportunities"
FILED_DISPUTES = "filed_disputes"
TRANSACTION_DISPUTES = "transaction_disputes"
ALL_DISPUTES = "all_disputes"
ALL_DISPUTES_ANCHOR = "disputes"

DISPUTE_ENTRY = "dispute"
VOTE_ENTRY = "arbitration_vote"
RESULT_ENTRY = "arbitration_result"


class DisputeRepository:
    """Store disputes with compare-and-swap status transitions.

    The swap is atomic within one repository instance. Writers on other
    nodes still race; each transition re-checks the status it expects so
    a stale writer fails with ``ConflictError`` instead of overwriting.
    """

    def __init__(self, records: RecordStore, links: LinkStore):
        self._records = records
        self._links = links
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Disputes
    # ------------------------------------------------------------------

    def create(self, dispute: Dispute) -> Dispute:
        """Persist a new dispute and index it; returns it with its id set."""
        record = {"entry_type": DISPUTE_ENTRY, **dispute.to_dict()}
        with persistence_errors(f"create dispute for {dispute.transaction_ref}"):
            dispute_id = self._records.create(record)
            self._links.link(dispute_id, DISPUTE_REVISIONS, dispute_id)
            self._links.link(dispute.filer, FILED_DISPUTES, dispute_id)
            self._links.link(dispute.transaction_ref, TRANSACTION_DISPUTES, dispute_id)
            self._links.link(ALL_DISPUTES_ANCHOR, ALL_DISPUTES, dispute_id)
        dispute.dispute_id = dispute_id
        return dispute

    def _latest_revision(self, dispute_id: str) -> str | None:
        revisions = self._links.query(dispute_id, DISPUTE_REVISIONS)
        return revisions[-1] if revisions else None

    def get(self, dispute_id: str) -> Dispute | None:
        with persistence_errors(f"fetch dispute {dispute_id}"):
            revision = self._latest_revision(dispute_id)
            if revision is None:
                return None
            record = self._records.get(revision)
        if record is None:
            logger.warning(f"Dispute {dispute_id} revision {revision} is missing")
            return None
        return Dispute.from_dict(record, dispute_id=dispute_id)

    def replace_if_status(self, dispute_id: str, expected: DisputeStatus, new: Dispute) -> Dispute:
        """Write ``new`` as the next revision if the status is still ``expected``.

        Raises:
            NotFoundError: If the dispute does not exist
            ConflictError: If another writer changed the status first
        """
        record = {"entry_type": DISPUTE_ENTRY, **new.to_dict()}
        with self._lock:
            current = self.get(dispute_id)
            if current is None:
                raise NotFoundError("Dispute", dispute_id)
            if current.status != expected:
                raise ConflictError(
                    f"Dispute {dispute_id} is {current.status.value}, expected {expected.value}",
                    existing_id=dispute_id,
                )
            with persistence_errors(f"update dispute {dispute_id}"):
                revision = self._records.update(self._latest_revision(dispute_id), record)
                self._links.link(dispute_id, DISPUTE_REVISIONS, revision)
        new.dispute_id = dispute_id
        logger.debug(f"Dispute {dispute_id}: {expected.value} -> {new.status.value}")
        return new

    def _dispute_ids(self, base: str, link_type: str) -> list[str]:
        with persistence_errors(f"fetch {link_type} for {base}"):
            return list(dict.fromkeys(self._links.query(base, link_type)))

    def _disputes(self, base: str, link_type: str) -> list[Dispute]:
        disputes = []
        for dispute_id in self._dispute_ids(base, link_type):
            dispute = self.get(dispute_id)
            if dispute is not None:
                disputes.append(dispute)
        return disputes

    def filed_by(self, peer_id: str) -> list[Dispute]:
        return self._disputes(peer_id, FILED_DISPUTES)

    def for_transaction(self, transaction_ref: str) -> list[Dispute]:
        return self._disputes(transaction_ref, TRANSACTION_DISPUTES)

    def all(self) -> list[Dispute]:
        return self._disputes(ALL_DISPUTES_ANCHOR, ALL_DISPUTES)

    # ------------------------------------------------------------------
    # Arbitrator assignment
    # ------------------------------------------------------------------

    def link_opportunity(self, arbitrator: str, dispute_id: str) -> None:
        with persistence_errors(f"link arbitrator {arbitrator} to {dispute_id}"):
            self._links.link(arbitrator, ARBITRATOR_OPPORTUNITIES, dispute_id)

    def assigned_to(self, arbitrator: str) -> list[Dispute]:
        return self._disputes(arbitrator, ARBITRATOR_OPPORTUNITIES)

    # ------------------------------------------------------------------
    # Votes
    # ------------------------------------------------------------------

    def add_vote(self, vote: ArbitrationVote) -> str:
        record = {"entry_type": VOTE_ENTRY, **vote.to_dict()}
        with persistence_errors(f"store vote by {vote.arbitrator} on {vote.dispute_ref}"):
            vote_id = self._records.create(record)
            self._links.link(vote.dispute_ref, DISPUTE_VOTES, vote_id)
        return vote_id

    def votes(self, dispute_id: str) -> list[ArbitrationVote]:
        """Votes in arrival order, one per arbitrator (the first one counts)."""
        votes: dict[str, ArbitrationVote] = {}
        with persistence_errors(f"fetch votes for {dispute_id}"):
            for vote_id in self._links.query(dispute_id, DISPUTE_VOTES):
                record = self._records.get(vote_id)
                if record is None:
                    logger.warning(f"Vote {vote_id} on dispute {dispute_id} is missing")
                    continue
                vote = ArbitrationVote.from_dict(record)
                if vote.arbitrator in votes:
                    logger.warning(f"Ignoring duplicate vote by {vote.arbitrator} on {dispute_id}")
                    continue
                votes[vote.arbitrator] = vote
        return list(votes.values())

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def save_result(self, result: ArbitrationResult) -> str:
        record = {"entry_type": RESULT_ENTRY, **result.to_dict()}
        with persistence_errors(f"store result for {result.dispute_ref}"):
            result_id = self._records.create(record)
            self._links.link(result.dispute_ref, DISPUTE_RESULT, result_id)
        return result_id

    def retract_result(self, result_id: str) -> None:
        """Hide a stored result; used when finalization is rolled back."""
        with persistence_errors(f"retract result {result_id}"):
            self._links.link(result_id, RESULT_RETRACTIONS, result_id)
        logger.info(f"Result {result_id} retracted")

    def result(self, dispute_id: str) -> ArbitrationResult | None:
        """The first result that was not retracted."""
        with persistence_errors(f"fetch result for {dispute_id}"):
            for result_id in self._links.query(dispute_id, DISPUTE_RESULT):
                if self._links.query(result_id, RESULT_RETRACTIONS):
                    continue
                record = self._records.get(result_id)
                if record is not None:
                    return ArbitrationResult.from_dict(record)
        return None
