"""Data models for disputes, votes and arbitration results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..core.exceptions import ValidationException
from .enums import DisputeStatus


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


# ============================================================================
# Transaction (owned by the transactions service)
# ============================================================================

@dataclass
class TransactionInfo:
    """The slice of a marketplace transaction that arbitration needs."""
    transaction_ref: str
    buyer: str
    seller: str
    value: int

    @classmethod
    def from_dict(cls, transaction_ref: str, data: dict[str, Any]) -> TransactionInfo:
        try:
            value = int(data["value"])
            buyer = data["buyer"]
            seller = data["seller"]
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationException(f"Malformed transaction {transaction_ref}: {e}", "transaction_ref") from e
        if value < 0:
            raise ValidationException("Transaction value cannot be negative", "value", value)
        return cls(transaction_ref=transaction_ref, buyer=buyer, seller=seller, value=value)


# ============================================================================
# Dispute
# ============================================================================

@dataclass
class Dispute:
    """A disputed transaction.

    ``dispute_id`` is the id of the record that created the dispute and
    stays stable across revisions. Only ``status``, ``arbitrators`` (once)
    and ``updated_at`` change after filing.
    """
    transaction_ref: str
    filer: str
    buyer: str
    seller: str
    reason: str
    evidence_refs: list[str] = field(default_factory=list)
    status: DisputeStatus = DisputeStatus.FILED
    arbitrators: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    dispute_id: str | None = None

    @property
    def parties(self) -> list[str]:
        """Peers that may never arbitrate this dispute."""
        return list(dict.fromkeys([self.buyer, self.seller, self.filer]))

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_ref": self.transaction_ref,
            "filer": self.filer,
            "buyer": self.buyer,
            "seller": self.seller,
            "reason": self.reason,
            "evidence_refs": list(self.evidence_refs),
            "status": self.status.value,
            "arbitrators": list(self.arbitrators),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], dispute_id: str | None = None) -> Dispute:
        return cls(
            transaction_ref=data["transaction_ref"],
            filer=data["filer"],
            buyer=data["buyer"],
            seller=data["seller"],
            reason=data["reason"],
            evidence_refs=list(data.get("evidence_refs", [])),
            status=DisputeStatus(data.get("status", "filed")),
            arbitrators=list(data.get("arbitrators", [])),
            created_at=_parse_datetime(data["created_at"]) if data.get("created_at") else None,
            updated_at=_parse_datetime(data["updated_at"]) if data.get("updated_at") else None,
            dispute_id=dispute_id,
        )


# ============================================================================
# Votes and Results
# ============================================================================

@dataclass
class ArbitrationVote:
    """One arbitrator's decision, weighted by their composite score at vote time."""
    dispute_ref: str
    arbitrator: str
    favor_buyer: bool
    reasoning: str
    weight_snapshot: float
    voted_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "dispute_ref": self.dispute_ref,
            "arbitrator": self.arbitrator,
            "favor_buyer": self.favor_buyer,
            "reasoning": self.reasoning,
            "weight_snapshot": self.weight_snapshot,
            "voted_at": self.voted_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArbitrationVote:
        return cls(
            dispute_ref=data["dispute_ref"],
            arbitrator=data["arbitrator"],
            favor_buyer=bool(data["favor_buyer"]),
            reasoning=data["reasoning"],
            weight_snapshot=float(data["weight_snapshot"]),
            voted_at=_parse_datetime(data["voted_at"]),
        )


@dataclass
class ArbitrationResult:
    """Final outcome of a dispute. Created exactly once."""
    dispute_ref: str
    winner: str
    loser: str
    weighted_vote: float
    total_votes: int
    compensation: int | None
    summary: str
    finalized_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "dispute_ref": self.dispute_ref,
            "winner": self.winner,
            "loser": self.loser,
            "weighted_vote": self.weighted_vote,
            "total_votes": self.total_votes,
            "compensation": self.compensation,
            "summary": self.summary,
            "finalized_at": self.finalized_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArbitrationResult:
        compensation = data.get("compensation")
        return cls(
            dispute_ref=data["dispute_ref"],
            winner=data["winner"],
            loser=data["loser"],
            weighted_vote=float(data["weighted_vote"]),
            total_votes=int(data["total_votes"]),
            compensation=int(compensation) if compensation is not None else None,
            summary=data["summary"],
            finalized_at=_parse_datetime(data["finalized_at"]),
        )


@dataclass
class VoteTally:
    """Outcome of weighing a complete set of votes, before it is persisted."""
    weighted_vote: float
    buyer_wins: bool
    consensus_strength: float
    multiplier: float
    compensation: int
    total_votes: int

    @property
    def summary(self) -> str:
        side = "buyer" if self.buyer_wins else "seller"
        return (
            f"Resolved in favor of {side}: weighted vote {self.weighted_vote:.3f} "
            f"across {self.total_votes} votes, consensus {self.consensus_strength:.3f}, "
            f"compensation multiplier {self.multiplier:.2f}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "weighted_vote": self.weighted_vote,
            "buyer_wins": self.buyer_wins,
            "consensus_strength": self.consensus_strength,
            "multiplier": self.multiplier,
            "compensation": self.compensation,
            "total_votes": self.total_votes,
            "summary": self.summary,
        }
