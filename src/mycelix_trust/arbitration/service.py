"""Arbitration Engine (Mutual Reputation Consensus).

Dispute lifecycle:

    Filed --assign--> UnderReview --all voted--> Voting --finalize--> ResolvedBuyer | ResolvedSeller
    any non-terminal state --withdraw (filer)--> Withdrawn

Every transition re-reads the dispute and swaps its status only if it is
still the one the transition started from, so concurrent callers fail
with ``ConflictError`` rather than overwrite each other.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from ..core.clock import SystemClock
from ..core.config import CoreSettings, get_config
from ..core.exceptions import (
    ConflictError,
    InsufficientTrustError,
    InternalError,
    MycelixException,
    NotFoundError,
    UnauthorizedError,
    ValidationException,
)
from ..core.logging import operation_context
from ..core.metrics import MetricType, safe_emit
from ..core.ports import ArbitratorDirectory, Clock, IdentityProvider, MetricsSink, RemoteCaller
from ..reputation.engine import TrustScoreEngine
from .consensus import tally_votes
from .enums import DisputeStatus
from .models import ArbitrationResult, ArbitrationVote, Dispute, TransactionInfo
from .repository import DisputeRepository
from .validators import validate_dispute, validate_result, validate_vote

logger = logging.getLogger(__name__)

TRANSACTIONS_SERVICE = "transactions"
GET_TRANSACTION = "get_transaction"


class ArbitrationEngine:
    """Resolve disputes by trust-weighted arbitrator votes."""

    def __init__(
        self,
        repository: DisputeRepository,
        trust: TrustScoreEngine,
        remote: RemoteCaller,
        directory: ArbitratorDirectory,
        identity: IdentityProvider,
        clock: Clock | None = None,
        metrics: MetricsSink | None = None,
        settings: CoreSettings | None = None,
    ):
        self.repository = repository
        self.trust = trust
        self._remote = remote
        self._directory = directory
        self._identity = identity
        self._clock = clock or SystemClock()
        self._metrics = metrics
        self._settings = settings or get_config()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fetch_transaction(self, transaction_ref: str) -> TransactionInfo:
        payload = self._remote.call(TRANSACTIONS_SERVICE, GET_TRANSACTION, transaction_ref)
        if payload is None:
            raise NotFoundError("Transaction", transaction_ref)
        if isinstance(payload, TransactionInfo):
            return payload
        return TransactionInfo.from_dict(transaction_ref, payload)

    def _require_dispute(self, dispute_id: str) -> Dispute:
        dispute = self.repository.get(dispute_id)
        if dispute is None:
            raise NotFoundError("Dispute", dispute_id)
        return dispute

    def _candidates(self, dispute: Dispute) -> list[str]:
        try:
            return self._directory.top_scoring(exclude=dispute.parties)
        except MycelixException:
            raise
        except Exception as e:
            logger.error(f"Arbitrator directory lookup failed for {dispute.dispute_id}: {e}")
            raise InternalError(f"Arbitrator directory lookup failed: {e}") from e

    # ------------------------------------------------------------------
    # Filing and assignment
    # ------------------------------------------------------------------

    def file_dispute(
        self,
        transaction_ref: str,
        reason: str,
        evidence_refs: list[str] | None = None,
    ) -> Dispute:
        """File a dispute over a transaction and assign arbitrators.

        Args:
            transaction_ref: Transaction being disputed
            reason: Why the caller disputes it (1-5000 characters)
            evidence_refs: IPFS content identifiers of supporting evidence

        Returns:
            The dispute, ``UnderReview`` with its arbitrators assigned

        Raises:
            NotFoundError: If the transaction does not exist
            UnauthorizedError: If the caller is neither buyer nor seller
            ValidationException: If the reason or evidence is malformed
            InsufficientTrustError: If no eligible arbitrator exists; the
                dispute is kept as ``Filed`` and its id is in ``details``
        """
        with operation_context("file_dispute"):
            caller = self._identity.current_caller()
            transaction = self._fetch_transaction(transaction_ref)
            if caller not in (transaction.buyer, transaction.seller):
                raise UnauthorizedError(
                    "Only the buyer or seller can dispute a transaction", caller, "file_dispute"
                )

            now = self._clock.now()
            dispute = Dispute(
                transaction_ref=transaction_ref,
                filer=caller,
                buyer=transaction.buyer,
                seller=transaction.seller,
                reason=reason,
                evidence_refs=list(evidence_refs or []),
                created_at=now,
                updated_at=now,
            )
            errors = validate_dispute(dispute)
            if errors:
                raise ValidationException("; ".join(errors))

            dispute = self.repository.create(dispute)
            logger.info(f"Dispute {dispute.dispute_id} filed by {caller} on {transaction_ref}")
            safe_emit(
                self._metrics,
                MetricType.TRANSACTION_DISPUTED,
                1.0,
                caller,
                f"transaction:{transaction_ref}",
            )
            return self._assign(dispute)

    def _assign(self, dispute: Dispute) -> Dispute:
        min_composite = self._settings.arbitrator_min_composite
        wanted = self._settings.arbitrators_per_dispute
        parties = set(dispute.parties)

        eligible: list[str] = []
        for peer in dict.fromkeys(self._candidates(dispute)):
            if peer in parties:
                continue
            if self.trust.get_cached(peer).composite > min_composite:
                eligible.append(peer)
                if len(eligible) == wanted:
                    break

        if not eligible:
            logger.warning(f"No eligible arbitrators for dispute {dispute.dispute_id}")
            safe_emit(
                self._metrics,
                MetricType.ARBITRATOR_SHORTAGE,
                0.0,
                dispute.filer,
                f"dispute:{dispute.dispute_id}",
            )
            raise InsufficientTrustError(
                f"No eligible arbitrators for dispute {dispute.dispute_id}",
                need=min_composite,
                details={"dispute_id": dispute.dispute_id},
            )

        assigned = replace(
            dispute,
            arbitrators=eligible,
            status=DisputeStatus.UNDER_REVIEW,
            updated_at=self._clock.now(),
        )
        assigned = self.repository.replace_if_status(dispute.dispute_id, DisputeStatus.FILED, assigned)
        for arbitrator in eligible:
            self.repository.link_opportunity(arbitrator, dispute.dispute_id)

        logger.info(f"Dispute {dispute.dispute_id} assigned to {len(eligible)} arbitrators")
        safe_emit(
            self._metrics,
            MetricType.ARBITRATION_INITIATED,
            float(len(eligible)),
            dispute.filer,
            f"dispute:{dispute.dispute_id}",
        )
        return assigned

    def reassign(self, dispute_id: str) -> Dispute:
        """Retry arbitrator assignment for a dispute still waiting in ``Filed``."""
        with operation_context("reassign_dispute"):
            caller = self._identity.current_caller()
            dispute = self._require_dispute(dispute_id)
            if caller != dispute.filer:
                raise UnauthorizedError("Only the filer can request reassignment", caller, "reassign")
            if dispute.status != DisputeStatus.FILED:
                raise ValidationException(
                    f"Dispute is {dispute.status.value}; only filed disputes can be reassigned",
                    "status",
                    dispute.status.value,
                )
            return self._assign(dispute)

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------

    def submit_vote(self, dispute_id: str, favor_buyer: bool, reasoning: str) -> ArbitrationVote:
        """Cast the caller's vote, weighted by their current composite score.

        When the last assigned arbitrator has voted the dispute moves to
        ``Voting``.

        Raises:
            NotFoundError: If the dispute does not exist
            UnauthorizedError: If the caller is not an assigned arbitrator
            ValidationException: On a second vote, bad reasoning, or a
                dispute that is no longer collecting votes
        """
        with operation_context("submit_vote"):
            caller = self._identity.current_caller()
            dispute = self._require_dispute(dispute_id)
            if caller not in dispute.arbitrators:
                raise UnauthorizedError("Not an assigned arbitrator for this dispute", caller, "vote")

            existing = self.repository.votes(dispute_id)
            if any(v.arbitrator == caller for v in existing):
                raise ValidationException("Already voted on this dispute", "dispute_id", dispute_id)
            if dispute.status != DisputeStatus.UNDER_REVIEW:
                raise ValidationException(
                    f"Dispute is {dispute.status.value}; votes are closed", "status", dispute.status.value
                )

            vote = ArbitrationVote(
                dispute_ref=dispute_id,
                arbitrator=caller,
                favor_buyer=bool(favor_buyer),
                reasoning=reasoning,
                weight_snapshot=self.trust.get_cached(caller).composite,
                voted_at=self._clock.now(),
            )
            errors = validate_vote(vote)
            if errors:
                raise ValidationException("; ".join(errors))

            self.repository.add_vote(vote)
            logger.info(f"Vote on {dispute_id} by {caller} (weight {vote.weight_snapshot:.3f})")
            safe_emit(
                self._metrics,
                MetricType.ARBITRATION_VOTE_CAST,
                vote.weight_snapshot,
                caller,
                f"dispute:{dispute_id}",
            )

            # Re-count after our own write so the last of concurrent voters sees every vote
            if len(self.repository.votes(dispute_id)) >= len(dispute.arbitrators):
                self._close_voting(dispute)
            return vote

    def _close_voting(self, dispute: Dispute) -> None:
        voting = replace(dispute, status=DisputeStatus.VOTING, updated_at=self._clock.now())
        try:
            self.repository.replace_if_status(dispute.dispute_id, DisputeStatus.UNDER_REVIEW, voting)
        except ConflictError:
            current = self._require_dispute(dispute.dispute_id)
            logger.debug(f"Dispute {dispute.dispute_id} already moved to {current.status.value}")
        else:
            logger.info(f"All votes in for dispute {dispute.dispute_id}")

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    def finalize(self, dispute_id: str) -> ArbitrationResult:
        """Tally the votes, record the outcome and penalize the loser.

        The status swap to ``Resolved*`` comes first so only one caller
        finalizes. If storing the result or penalizing the loser then fails,
        the result is retracted and the dispute returns to ``Voting``, so
        finalize can be called again.

        Raises:
            NotFoundError: If the dispute or its transaction does not exist
            ValidationException: If the dispute is not ``Voting``, a vote is
                missing, or the votes carry no weight
            ConflictError: If another caller finalized or withdrew it first,
                or the loser's score changed while it was being penalized
            InternalError: If persistence fails; the dispute stays ``Voting``
        """
        with operation_context("finalize_dispute"):
            dispute = self._require_dispute(dispute_id)
            if dispute.status != DisputeStatus.VOTING:
                raise ValidationException(
                    f"Dispute is {dispute.status.value}; only voting disputes can be finalized",
                    "status",
                    dispute.status.value,
                )

            assigned = set(dispute.arbitrators)
            votes = [v for v in self.repository.votes(dispute_id) if v.arbitrator in assigned]
            if len(votes) != len(dispute.arbitrators):
                raise ValidationException(
                    f"Expected {len(dispute.arbitrators)} votes, have {len(votes)}", "votes", len(votes)
                )

            transaction = self._fetch_transaction(dispute.transaction_ref)
            tally = tally_votes(votes, transaction.value, self._settings.buyer_win_threshold)
            if tally.buyer_wins:
                winner, loser, status = dispute.buyer, dispute.seller, DisputeStatus.RESOLVED_BUYER
            else:
                winner, loser, status = dispute.seller, dispute.buyer, DisputeStatus.RESOLVED_SELLER

            now = self._clock.now()
            result = ArbitrationResult(
                dispute_ref=dispute_id,
                winner=winner,
                loser=loser,
                weighted_vote=tally.weighted_vote,
                total_votes=tally.total_votes,
                compensation=tally.compensation,
                summary=tally.summary,
                finalized_at=now,
            )
            errors = validate_result(result)
            if errors:
                raise ValidationException("; ".join(errors))

            # The status swap admits exactly one finalizer
            self.repository.replace_if_status(
                dispute_id,
                DisputeStatus.VOTING,
                replace(dispute, status=status, updated_at=now),
            )
            result_id = None
            try:
                result_id = self.repository.save_result(result)
                # Only the loser's score moves
                self.trust.update(loser, successful=False, value=transaction.value)
            except Exception:
                self._roll_back_finalize(dispute, status, result_id)
                raise

            logger.info(
                f"Dispute {dispute_id} resolved for {winner}: weighted vote {tally.weighted_vote:.3f}, "
                f"compensation {tally.compensation}"
            )
            safe_emit(
                self._metrics,
                MetricType.ARBITRATION_FINALIZED,
                tally.weighted_vote,
                winner,
                f"dispute:{dispute_id},compensation:{tally.compensation}",
            )
            return result

    def _roll_back_finalize(self, dispute: Dispute, resolved: DisputeStatus, result_id: str | None) -> None:
        """Return a dispute whose finalization failed part-way to ``Voting``."""
        try:
            if result_id is not None:
                self.repository.retract_result(result_id)
            self.repository.replace_if_status(
                dispute.dispute_id, resolved, replace(dispute, updated_at=self._clock.now())
            )
        except MycelixException as e:
            logger.error(f"Rollback of dispute {dispute.dispute_id} finalization failed: {e}")
        else:
            logger.warning(f"Finalization of dispute {dispute.dispute_id} failed; back to voting")

    # ------------------------------------------------------------------
    # Withdrawal
    # ------------------------------------------------------------------

    def withdraw(self, dispute_id: str) -> Dispute:
        """Withdraw a dispute the caller filed. Allowed from any non-terminal state."""
        with operation_context("withdraw_dispute"):
            caller = self._identity.current_caller()
            dispute = self._require_dispute(dispute_id)
            if caller != dispute.filer:
                raise UnauthorizedError("Only the filer can withdraw a dispute", caller, "withdraw")
            if dispute.status.is_terminal:
                raise ValidationException(
                    f"Dispute is already {dispute.status.value}", "status", dispute.status.value
                )

            withdrawn = replace(dispute, status=DisputeStatus.WITHDRAWN, updated_at=self._clock.now())
            withdrawn = self.repository.replace_if_status(dispute_id, dispute.status, withdrawn)
            logger.info(f"Dispute {dispute_id} withdrawn by {caller}")
            return withdrawn

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def opportunities(self, peer_id: str | None = None) -> list[Dispute]:
        """Open disputes assigned to ``peer_id`` (default: the caller) that still need their vote."""
        peer = peer_id or self._identity.current_caller()
        pending = []
        for dispute in self.repository.assigned_to(peer):
            if dispute.status.is_terminal or peer not in dispute.arbitrators:
                continue
            if any(v.arbitrator == peer for v in self.repository.votes(dispute.dispute_id)):
                continue
            pending.append(dispute)
        return pending

    def get_dispute(self, dispute_id: str) -> Dispute:
        return self._require_dispute(dispute_id)

    def get_votes(self, dispute_id: str) -> list[ArbitrationVote]:
        self._require_dispute(dispute_id)
        return self.repository.votes(dispute_id)

    def get_result(self, dispute_id: str) -> ArbitrationResult | None:
        self._require_dispute(dispute_id)
        return self.repository.result(dispute_id)

    def filed_by(self, peer_id: str | None = None) -> list[Dispute]:
        return self.repository.filed_by(peer_id or self._identity.current_caller())
