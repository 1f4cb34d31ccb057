"""Mutual Reputation Consensus arithmetic.

Votes are weighted by the arbitrator's composite score at vote time. The
buyer wins only with a weighted vote strictly above 0.66, and the
distance from the 50% midpoint scales the compensation.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from ..core.exceptions import ValidationException
from .constants import ArbitrationConstants
from .models import ArbitrationVote, VoteTally


def calculate_weighted_vote(votes: Iterable[ArbitrationVote]) -> float:
    """Share of total weight that favors the buyer.

    Raises:
        ValidationException: If there are no votes or the weights sum to zero
    """
    total_weight = 0.0
    buyer_weight = 0.0
    for vote in votes:
        total_weight += vote.weight_snapshot
        if vote.favor_buyer:
            buyer_weight += vote.weight_snapshot

    if total_weight <= 0.0:
        raise ValidationException("No valid votes: total vote weight is zero", "votes")

    return buyer_weight / total_weight


def buyer_wins(weighted_vote: float, threshold: float = ArbitrationConstants.BUYER_WIN_THRESHOLD) -> bool:
    """Strict comparison: a vote exactly at the threshold goes to the seller."""
    return weighted_vote > threshold


def consensus_strength(weighted_vote: float) -> float:
    return max(weighted_vote, 1.0 - weighted_vote)


def compensation_multiplier(strength: float) -> float:
    """Map consensus strength to the share of the transaction value awarded."""
    if strength >= ArbitrationConstants.STRONG_CONSENSUS:
        return ArbitrationConstants.STRONG_MULTIPLIER
    if strength >= ArbitrationConstants.MODERATE_CONSENSUS:
        return ArbitrationConstants.MODERATE_MULTIPLIER
    return ArbitrationConstants.WEAK_MULTIPLIER


def compute_compensation(value: int, multiplier: float) -> int:
    """value * multiplier, rounded half away from zero."""
    amount = Decimal(value) * Decimal(str(multiplier))
    return int(amount.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def tally_votes(
    votes: list[ArbitrationVote],
    transaction_value: int,
    buyer_win_threshold: float = ArbitrationConstants.BUYER_WIN_THRESHOLD,
) -> VoteTally:
    """Weigh a complete set of votes into an outcome."""
    weighted_vote = calculate_weighted_vote(votes)
    strength = consensus_strength(weighted_vote)
    multiplier = compensation_multiplier(strength)
    return VoteTally(
        weighted_vote=weighted_vote,
        buyer_wins=buyer_wins(weighted_vote, buyer_win_threshold),
        consensus_strength=strength,
        multiplier=multiplier,
        compensation=compute_compensation(transaction_value, multiplier),
        total_votes=len(votes),
    )
