"""Dispute arbitration by Mutual Reputation Consensus.

Submodules:
- enums: DisputeStatus
- constants: Thresholds, multipliers and content limits
- models: TransactionInfo, Dispute, ArbitrationVote, ArbitrationResult, VoteTally
- consensus: Weighted vote, consensus strength and compensation arithmetic
- validators: Dispute, vote and result validation
- repository: DisputeRepository with compare-and-swap transitions
- service: ArbitrationEngine
"""

from .consensus import (
    buyer_wins,
    calculate_weighted_vote,
    compensation_multiplier,
    compute_compensation,
    consensus_strength,
    tally_votes,
)
from .constants import ArbitrationConstants
from .enums import DisputeStatus
from .models import ArbitrationResult, ArbitrationVote, Dispute, TransactionInfo, VoteTally
from .repository import DisputeRepository
from .service import ArbitrationEngine
from .validators import is_valid_cid, validate_dispute, validate_result, validate_vote

__all__ = [
    "ArbitrationConstants",
    "DisputeStatus",
    # Models
    "TransactionInfo",
    "Dispute",
    "ArbitrationVote",
    "ArbitrationResult",
    "VoteTally",
    # Consensus
    "calculate_weighted_vote",
    "buyer_wins",
    "consensus_strength",
    "compensation_multiplier",
    "compute_compensation",
    "tally_votes",
    # Validation
    "is_valid_cid",
    "validate_dispute",
    "validate_vote",
    "validate_result",
    # Service
    "DisputeRepository",
    "ArbitrationEngine",
]
