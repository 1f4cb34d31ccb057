"""Tests for the in-memory collaborators in mycelix_trust.core.store and core.clock."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import pytest

from mycelix_trust.core import (
    ArbitratorDirectory,
    Clock,
    IdentityProvider,
    LinkStore,
    RecordStore,
)
from mycelix_trust.core.clock import ManualClock, SystemClock
from mycelix_trust.core.exceptions import (
    InternalError,
    NotFoundError,
    UnauthorizedError,
    ValidationException,
)
from mycelix_trust.core.store import (
    InMemoryLinkStore,
    InMemoryRecordStore,
    StaticArbitratorDirectory,
    StaticIdentity,
    canonical_json,
    persistence_errors,
)


class TestProtocols:
    """In-memory implementations satisfy the engine's interfaces."""

    def test_runtime_checks(self):
        assert isinstance(InMemoryRecordStore(), RecordStore)
        assert isinstance(InMemoryLinkStore(), LinkStore)
        assert isinstance(StaticIdentity("a"), IdentityProvider)
        assert isinstance(StaticArbitratorDirectory(), ArbitratorDirectory)
        assert isinstance(ManualClock(), Clock)
        assert isinstance(SystemClock(), Clock)


class TestCanonicalJson:
    def test_key_order_irrelevant(self):
        assert canonical_json({"b": 1, "a": 2}) == canonical_json({"a": 2, "b": 1})


class TestInMemoryRecordStore:
    """Content-addressed record persistence."""

    def test_create_and_get(self):
        store = InMemoryRecordStore()
        record_id = store.create({"x": 1})
        assert store.get(record_id) == {"x": 1}
        assert len(store) == 1

    def test_identical_content_gets_distinct_ids(self):
        store = InMemoryRecordStore()
        assert store.create({"x": 1}) != store.create({"x": 1})

    def test_update_creates_new_id_and_keeps_old(self):
        store = InMemoryRecordStore()
        first = store.create({"v": 1})
        second = store.update(first, {"v": 2})

        assert second != first
        assert store.get(first) == {"v": 1}
        assert store.get(second) == {"v": 2}

    def test_update_missing_raises(self):
        with pytest.raises(NotFoundError):
            InMemoryRecordStore().update("nope", {"v": 1})

    def test_non_dict_rejected(self):
        with pytest.raises(ValidationException):
            InMemoryRecordStore().create(["not", "a", "dict"])

    def test_get_missing_returns_none(self):
        assert InMemoryRecordStore().get("missing") is None

    def test_records_are_copied(self):
        """Mutating a returned record must not change the stored one."""
        store = InMemoryRecordStore()
        original = {"nested": {"v": 1}}
        record_id = store.create(original)
        original["nested"]["v"] = 99

        fetched = store.get(record_id)
        fetched["nested"]["v"] = 42

        assert store.get(record_id) == {"nested": {"v": 1}}


class TestInMemoryLinkStore:
    def test_links_ordered_per_base_and_type(self):
        links = InMemoryLinkStore()
        links.link("peer", "scores", "r1")
        links.link("peer", "scores", "r2")
        links.link("peer", "reviews", "r3")

        assert links.query("peer", "scores") == ["r1", "r2"]
        assert links.query("peer", "reviews") == ["r3"]
        assert links.query("other", "scores") == []

    def test_concurrent_links_all_recorded(self):
        links = InMemoryLinkStore()

        def worker(n: int) -> None:
            for i in range(100):
                links.link("base", "t", f"{n}-{i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(links.query("base", "t")) == 500


class TestStaticCollaborators:
    def test_identity_switches_caller(self):
        identity = StaticIdentity("alice")
        assert identity.current_caller() == "alice"
        identity.set_caller("bob")
        assert identity.current_caller() == "bob"

    def test_directory_excludes_and_keeps_order(self):
        directory = StaticArbitratorDirectory(["a", "b", "c"])
        directory.add("d")
        directory.add("a")
        assert directory.top_scoring(exclude=["b"]) == ["a", "c", "d"]


class TestManualClock:
    def test_default_start(self):
        assert ManualClock().now() == datetime(2026, 1, 1, tzinfo=UTC)

    def test_advance(self):
        clock = ManualClock()
        start = clock.now()
        assert clock.advance(1.5) == start + timedelta(seconds=1.5)

    def test_cannot_go_backwards(self):
        with pytest.raises(ValueError):
            ManualClock().advance(-1)

    def test_system_clock_is_utc(self):
        assert SystemClock().now().tzinfo is UTC


class TestPersistenceErrors:
    """Store failures become InternalError; engine errors pass through."""

    def test_wraps_unexpected_errors(self):
        with pytest.raises(InternalError) as exc_info:
            with persistence_errors("write score"):
                raise OSError("disk full")
        assert "write score" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_passes_engine_errors_through(self):
        with pytest.raises(UnauthorizedError):
            with persistence_errors("write score"):
                raise UnauthorizedError("nope")
