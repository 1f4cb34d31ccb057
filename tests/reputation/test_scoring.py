"""Tests for mycelix_trust.reputation.scoring - the trust score arithmetic."""

from __future__ import annotations

import pytest

from mycelix_trust.reputation.models import ByzantineFlags, TrustScore
from mycelix_trust.reputation.scoring import (
    apply_transaction,
    compute_composite_score,
    compute_entropy,
    compute_pogq,
    compute_reputation,
    compute_transaction_quality,
    detect_byzantine_patterns,
)

GRID = [i / 10 for i in range(11)]


def _score(quality, consistency, reputation, entropy=0.0, transaction_count=10, flags=None) -> TrustScore:
    return TrustScore(
        peer_id="peer",
        quality=quality,
        consistency=consistency,
        entropy=entropy,
        reputation=reputation,
        composite=compute_composite_score(quality, consistency, reputation),
        transaction_count=transaction_count,
        byzantine_flags=flags or ByzantineFlags(),
    )


# ============================================================================
# Composite
# ============================================================================


class TestCompositeScore:
    """composite = clamp(0.4 quality + 0.3 consistency + 0.3 reputation)."""

    def test_reference_value(self):
        assert compute_composite_score(0.8, 0.7, 0.75) == pytest.approx(0.755, abs=0.01)

    def test_neutral(self):
        assert compute_composite_score(0.5, 0.5, 0.5) == pytest.approx(0.5)

    def test_bounds(self):
        assert compute_composite_score(0.0, 0.0, 0.0) == 0.0
        assert compute_composite_score(1.0, 1.0, 1.0) == pytest.approx(1.0)

    def test_monotonic_in_each_argument(self):
        """Raising any one component never lowers the composite."""
        for a in GRID:
            for b in GRID:
                for lo, hi in zip(GRID, GRID[1:]):
                    assert compute_composite_score(lo, a, b) <= compute_composite_score(hi, a, b)
                    assert compute_composite_score(a, lo, b) <= compute_composite_score(a, hi, b)
                    assert compute_composite_score(a, b, lo) <= compute_composite_score(a, b, hi)


# ============================================================================
# Components
# ============================================================================


class TestTransactionQuality:
    def test_failure_is_flat(self):
        assert compute_transaction_quality(False, 0) == 0.2
        assert compute_transaction_quality(False, 5_000_000) == 0.2

    def test_success_value_bonus(self):
        assert compute_transaction_quality(True, 0) == pytest.approx(0.8)
        assert compute_transaction_quality(True, 100_000) == pytest.approx(0.9)

    def test_bonus_capped(self):
        assert compute_transaction_quality(True, 1_000_000) == pytest.approx(1.0)
        assert compute_transaction_quality(True, 10**12) == pytest.approx(1.0)


class TestPoGQ:
    def test_success_from_neutral(self):
        pogq = compute_pogq(0.5, 0.5, 0.8)
        assert pogq.quality == pytest.approx(0.56)
        assert pogq.consistency == pytest.approx(0.64)
        assert pogq.entropy == pytest.approx(0.21)

    def test_consistency_uses_previous_quality(self):
        """A transaction matching the prior quality is perfectly consistent."""
        pogq = compute_pogq(0.8, 0.5, 0.8)
        assert pogq.consistency == pytest.approx(0.7 * 1.0 + 0.3 * 0.5)

    def test_entropy_proxy(self):
        assert compute_entropy(0.5, 1.0) == 0.0
        assert compute_entropy(1.0, 0.0) == pytest.approx(0.75)


class TestReputation:
    def test_ema(self):
        assert compute_reputation(0.5, True) == pytest.approx(0.65)
        assert compute_reputation(0.5, False) == pytest.approx(0.35)

    def test_stays_in_range(self):
        rep = 0.5
        for _ in range(100):
            rep = compute_reputation(rep, True)
        assert 0.0 <= rep <= 1.0


# ============================================================================
# Byzantine detection
# ============================================================================


class TestDetectByzantinePatterns:
    """Flags and risk are computed from the already-updated score."""

    def test_clean_peer_has_zero_risk(self):
        flags = detect_byzantine_patterns(_score(0.6, 0.6, 0.6, entropy=0.1))
        assert flags == ByzantineFlags()
        assert flags.risk_score == 0.0

    def test_volatile(self):
        flags = detect_byzantine_patterns(_score(0.5, 0.5, 0.5, entropy=0.71))
        assert flags.volatile_reputation
        assert flags.risk_score == pytest.approx(0.2)

    def test_sybil_needs_few_transactions_and_high_composite(self):
        assert detect_byzantine_patterns(_score(0.9, 0.9, 0.9, transaction_count=2)).sybil_suspected
        assert not detect_byzantine_patterns(_score(0.9, 0.9, 0.9, transaction_count=3)).sybil_suspected
        assert not detect_byzantine_patterns(_score(0.7, 0.7, 0.7, transaction_count=1)).sybil_suspected

    def test_inconsistency_penalty_without_flag(self):
        flags = detect_byzantine_patterns(_score(0.9, 0.5, 0.5))
        assert flags.risk_score == pytest.approx(0.2)
        assert not any(
            [flags.cartel_detected, flags.volatile_reputation, flags.gradient_poisoning, flags.sybil_suspected]
        )

    def test_external_flags_carried_forward(self):
        flags = detect_byzantine_patterns(
            _score(0.6, 0.6, 0.6, flags=ByzantineFlags(cartel_detected=True, gradient_poisoning=True))
        )
        assert flags.cartel_detected
        assert flags.gradient_poisoning
        assert flags.risk_score == pytest.approx(0.7)

    def test_risk_capped_at_one(self):
        score = _score(
            1.0,
            0.6,
            1.0,
            entropy=0.8,
            transaction_count=1,
            flags=ByzantineFlags(cartel_detected=True, gradient_poisoning=True),
        )
        flags = detect_byzantine_patterns(score)
        assert flags.sybil_suspected and flags.volatile_reputation
        assert flags.risk_score == 1.0


# ============================================================================
# Full update
# ============================================================================


class TestApplyTransaction:
    def test_success_from_neutral(self):
        updated = apply_transaction(TrustScore.neutral("peer"), True, 0)

        assert updated.quality == pytest.approx(0.56)
        assert updated.consistency == pytest.approx(0.64)
        assert updated.entropy == pytest.approx(0.21)
        assert updated.reputation == pytest.approx(0.65)
        assert updated.composite == pytest.approx(0.611)
        assert updated.transaction_count == 1
        assert updated.byzantine_flags.risk_score == 0.0

    def test_failure_from_neutral(self):
        updated = apply_transaction(TrustScore.neutral("peer"), False, 500)

        assert updated.quality == pytest.approx(0.44)
        assert updated.reputation == pytest.approx(0.35)
        assert updated.composite == pytest.approx(0.473)
        assert updated.total_value == 500

    def test_input_not_modified(self):
        original = TrustScore.neutral("peer")
        apply_transaction(original, True, 1000)
        assert original.transaction_count == 0
        assert original.composite == 0.5

    def test_composite_invariant_holds_over_history(self):
        score = TrustScore.neutral("peer")
        for i in range(50):
            score = apply_transaction(score, i % 3 != 0, i * 10_000)
            expected = compute_composite_score(score.quality, score.consistency, score.reputation)
            assert abs(score.composite - expected) <= 0.01
            for value in (score.quality, score.consistency, score.entropy, score.reputation, score.composite):
                assert 0.0 <= value <= 1.0
