"""Enums for the arbitration protocol."""

from enum import Enum


class DisputeStatus(str, Enum):
    """Lifecycle of a dispute.

    Filed -> UnderReview -> Voting -> ResolvedBuyer | ResolvedSeller.
    Withdrawn is reachable from any non-terminal state.
    """
    FILED = "filed"                      # Awaiting arbitrator assignment
    UNDER_REVIEW = "under_review"        # Arbitrators assigned, collecting votes
    VOTING = "voting"                    # All votes in, awaiting finalization
    RESOLVED_BUYER = "resolved_buyer"    # Buyer won
    RESOLVED_SELLER = "resolved_seller"  # Seller won
    WITHDRAWN = "withdrawn"              # Withdrawn by the filer

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset(
    {DisputeStatus.RESOLVED_BUYER, DisputeStatus.RESOLVED_SELLER, DisputeStatus.WITHDRAWN}
)
