"""Tests for mycelix_trust.reputation.validators."""

from __future__ import annotations

from datetime import UTC, datetime

from mycelix_trust.reputation.models import ByzantineFlags, Review, TrustScore
from mycelix_trust.reputation.validators import validate_review, validate_trust_score


def _review(**overrides) -> Review:
    fields = {
        "transaction_ref": "tx-1",
        "listing_ref": "listing-1",
        "rating": 5,
        "comment": "Great",
        "reviewer": "alice",
        "seller": "bob",
        "created_at": datetime(2026, 1, 1, tzinfo=UTC),
    }
    fields.update(overrides)
    return Review(**fields)


class TestValidateTrustScore:
    def test_neutral_is_valid(self):
        assert validate_trust_score(TrustScore.neutral("peer")) == []

    def test_out_of_range_component(self):
        errors = validate_trust_score(TrustScore(peer_id="p", quality=1.2, composite=0.58))
        assert any("quality" in e for e in errors)

    def test_composite_must_match_formula(self):
        errors = validate_trust_score(TrustScore(peer_id="p", composite=0.9))
        assert any("does not match" in e for e in errors)

    def test_composite_tolerance(self):
        assert validate_trust_score(TrustScore(peer_id="p", composite=0.505)) == []

    def test_negative_counters(self):
        errors = validate_trust_score(TrustScore(peer_id="p", transaction_count=-1, total_value=-5))
        assert len(errors) == 2

    def test_risk_out_of_range(self):
        score = TrustScore(peer_id="p", byzantine_flags=ByzantineFlags(risk_score=1.5))
        assert validate_trust_score(score) == ["risk_score must be between 0.0 and 1.0"]


class TestValidateReview:
    def test_valid(self):
        assert validate_review(_review()) == []

    def test_rating_bounds(self):
        assert validate_review(_review(rating=1)) == []
        assert validate_review(_review(rating=0))
        assert validate_review(_review(rating=6))

    def test_comment_bounds(self):
        assert validate_review(_review(comment="x" * 1000)) == []
        assert validate_review(_review(comment="x" * 1001))
        assert validate_review(_review(comment=""))

    def test_wrong_types(self):
        assert validate_review(_review(rating="5")) == ["Rating must be a whole number"]
        assert validate_review(_review(comment=3)) == ["Review comment must be text"]

    def test_self_review(self):
        assert validate_review(_review(seller="alice")) == ["Cannot review your own sale"]

    def test_successful_threshold(self):
        assert _review(rating=4).successful
        assert not _review(rating=3).successful
