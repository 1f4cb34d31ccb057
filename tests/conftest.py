"""Global test fixtures for the Mycelix trust test suite."""

from __future__ import annotations

import os
from collections.abc import Callable

import pytest

from mycelix_trust.arbitration import ArbitrationEngine, DisputeRepository
from mycelix_trust.core import (
    CoreSettings,
    InMemoryLinkStore,
    InMemoryRecordStore,
    ManualClock,
    MarketplaceMetrics,
    ServiceRegistry,
    StaticArbitratorDirectory,
    StaticIdentity,
    clear_config_cache,
)
from mycelix_trust.reputation import (
    ScoreCache,
    TrustScore,
    TrustScoreEngine,
    TrustScoreRepository,
)

BUYER = "buyer-peer"
SELLER = "seller-peer"
ARBITRATORS = ["arb-1", "arb-2", "arb-3"]
TX_REF = "tx-1"
TX_VALUE = 10_000


# ============================================================================
# Environment
# ============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all MYCELIX_ environment variables and the cached config."""
    for key in list(os.environ.keys()):
        if key.startswith("MYCELIX_"):
            monkeypatch.delenv(key, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def settings(clean_env) -> CoreSettings:
    return CoreSettings()


# ============================================================================
# Collaborators
# ============================================================================


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def link_store() -> InMemoryLinkStore:
    return InMemoryLinkStore()


@pytest.fixture
def metrics() -> MarketplaceMetrics:
    return MarketplaceMetrics()


@pytest.fixture
def identity() -> StaticIdentity:
    return StaticIdentity(BUYER)


@pytest.fixture
def transactions() -> dict[str, dict]:
    """Ledger behind the fake transactions service."""
    return {TX_REF: {"buyer": BUYER, "seller": SELLER, "value": TX_VALUE}}


@pytest.fixture
def registry(transactions) -> ServiceRegistry:
    registry = ServiceRegistry()

    @registry.register("transactions", "get_transaction")
    def get_transaction(ref: str) -> dict | None:
        return transactions.get(ref)

    return registry


@pytest.fixture
def directory() -> StaticArbitratorDirectory:
    return StaticArbitratorDirectory(list(ARBITRATORS))


# ============================================================================
# Reputation
# ============================================================================


@pytest.fixture
def score_cache(clock, metrics) -> ScoreCache:
    return ScoreCache(clock=clock, ttl_seconds=300, max_size=10_000, metrics=metrics)


@pytest.fixture
def trust_repository(record_store, link_store) -> TrustScoreRepository:
    return TrustScoreRepository(record_store, link_store)


@pytest.fixture
def trust_engine(trust_repository, score_cache, clock, identity, metrics, settings) -> TrustScoreEngine:
    return TrustScoreEngine(
        trust_repository,
        score_cache,
        clock=clock,
        identity=identity,
        metrics=metrics,
        settings=settings,
    )


@pytest.fixture
def set_score(trust_repository, score_cache, clock) -> Callable[..., TrustScore]:
    """Store a score whose quality, consistency and reputation all equal ``composite``."""

    def _set(peer_id: str, composite: float, transaction_count: int = 10) -> TrustScore:
        score = TrustScore(
            peer_id=peer_id,
            quality=composite,
            consistency=composite,
            reputation=composite,
            composite=composite,
            transaction_count=transaction_count,
            updated_at=clock.now(),
        )
        trust_repository.put(score)
        score_cache.invalidate(peer_id)
        return score

    return _set


# ============================================================================
# Arbitration
# ============================================================================


@pytest.fixture
def dispute_repository(record_store, link_store) -> DisputeRepository:
    return DisputeRepository(record_store, link_store)


@pytest.fixture
def arbitration_engine(
    dispute_repository, trust_engine, registry, directory, identity, clock, metrics, settings
) -> ArbitrationEngine:
    return ArbitrationEngine(
        dispute_repository,
        trust_engine,
        registry,
        directory,
        identity,
        clock=clock,
        metrics=metrics,
        settings=settings,
    )


@pytest.fixture
def trusted_arbitrators(set_score) -> list[str]:
    """The default arbitrator pool, all comfortably above the eligibility bar."""
    for peer in ARBITRATORS:
        set_score(peer, 0.9)
    return list(ARBITRATORS)
