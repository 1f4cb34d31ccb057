"""Data models for trust scores, Byzantine flags and reviews.

The record store holds plain dictionaries; every model round-trips
through ``to_dict`` / ``from_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .constants import TrustConstants


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


# ============================================================================
# Byzantine Flags
# ============================================================================

@dataclass
class ByzantineFlags:
    """Suspicious-behaviour flags embedded in a trust score.

    ``cartel_detected`` and ``gradient_poisoning`` are set by external
    detectors; the engine only carries them forward and folds them into
    ``risk_score``.
    """
    cartel_detected: bool = False
    volatile_reputation: bool = False
    gradient_poisoning: bool = False
    sybil_suspected: bool = False
    risk_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "cartel_detected": self.cartel_detected,
            "volatile_reputation": self.volatile_reputation,
            "gradient_poisoning": self.gradient_poisoning,
            "sybil_suspected": self.sybil_suspected,
            "risk_score": self.risk_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ByzantineFlags:
        return cls(
            cartel_detected=bool(data.get("cartel_detected", False)),
            volatile_reputation=bool(data.get("volatile_reputation", False)),
            gradient_poisoning=bool(data.get("gradient_poisoning", False)),
            sybil_suspected=bool(data.get("sybil_suspected", False)),
            risk_score=float(data.get("risk_score", 0.0)),
        )


# ============================================================================
# Trust Score
# ============================================================================

@dataclass
class TrustScore:
    """The latest trust record for one peer.

    ``composite`` is derived from quality, consistency and reputation and is
    never set independently of them.
    """
    peer_id: str
    quality: float = TrustConstants.NEUTRAL_QUALITY
    consistency: float = TrustConstants.NEUTRAL_CONSISTENCY
    entropy: float = TrustConstants.NEUTRAL_ENTROPY
    reputation: float = TrustConstants.NEUTRAL_REPUTATION
    composite: float = TrustConstants.NEUTRAL_COMPOSITE
    transaction_count: int = 0
    total_value: int = 0
    updated_at: datetime | None = None
    byzantine_flags: ByzantineFlags = field(default_factory=ByzantineFlags)

    @classmethod
    def neutral(cls, peer_id: str, now: datetime | None = None) -> TrustScore:
        """Neutral default for a peer that has never transacted."""
        return cls(peer_id=peer_id, updated_at=now)

    @property
    def is_neutral_default(self) -> bool:
        return self.transaction_count == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "peer_id": self.peer_id,
            "quality": self.quality,
            "consistency": self.consistency,
            "entropy": self.entropy,
            "reputation": self.reputation,
            "composite": self.composite,
            "transaction_count": self.transaction_count,
            "total_value": self.total_value,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "byzantine_flags": self.byzantine_flags.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrustScore:
        return cls(
            peer_id=data["peer_id"],
            quality=float(data["quality"]),
            consistency=float(data["consistency"]),
            entropy=float(data.get("entropy", 0.0)),
            reputation=float(data["reputation"]),
            composite=float(data["composite"]),
            transaction_count=int(data.get("transaction_count", 0)),
            total_value=int(data.get("total_value", 0)),
            updated_at=_parse_datetime(data["updated_at"]) if data.get("updated_at") else None,
            byzantine_flags=ByzantineFlags.from_dict(data.get("byzantine_flags") or {}),
        )


@dataclass
class ByzantineCheckResult:
    """Answer to "is this peer Byzantine?"."""
    peer_id: str
    is_byzantine: bool
    risk_score: float
    composite: float
    flags: ByzantineFlags

    def to_dict(self) -> dict[str, Any]:
        return {
            "peer_id": self.peer_id,
            "is_byzantine": self.is_byzantine,
            "risk_score": self.risk_score,
            "composite": self.composite,
            "flags": self.flags.to_dict(),
        }


# ============================================================================
# Reviews
# ============================================================================

@dataclass
class Review:
    """Buyer feedback on a completed transaction."""
    transaction_ref: str
    listing_ref: str
    rating: int
    comment: str
    reviewer: str
    seller: str
    created_at: datetime

    @property
    def successful(self) -> bool:
        """Whether this review counts as a successful transaction for the seller."""
        return self.rating >= TrustConstants.SUCCESSFUL_RATING

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_ref": self.transaction_ref,
            "listing_ref": self.listing_ref,
            "rating": self.rating,
            "comment": self.comment,
            "reviewer": self.reviewer,
            "seller": self.seller,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Review:
        return cls(
            transaction_ref=data["transaction_ref"],
            listing_ref=data["listing_ref"],
            rating=int(data["rating"]),
            comment=data["comment"],
            reviewer=data["reviewer"],
            seller=data["seller"],
            created_at=_parse_datetime(data["created_at"]),
        )
