# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mycelix Contributors

"""In-memory collaborators for tests and single-process deployments.

Production deployments plug in a DHT or database behind the same
``RecordStore`` / ``LinkStore`` protocols.
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
import threading
from collections import defaultdict
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from .exceptions import InternalError, MycelixException, NotFoundError, ValidationException

logger = logging.getLogger(__name__)


def canonical_json(data: Any) -> str:
    """Deterministic JSON encoding used for content addressing."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)


class InMemoryRecordStore:
    """Thread-safe content-addressed record store.

    Ids are the SHA-256 of the record, its predecessor id and a sequence
    number, so two writes of identical content still get distinct ids (as
    with action hashes on a source chain). Records are copied on the way
    in and out; callers never share mutable state with the store.
    """

    def __init__(self):
        self._records: dict[str, dict[str, Any]] = {}
        self._seq = 0
        self._lock = threading.RLock()

    def _next_id(self, record: dict[str, Any], previous: str | None) -> str:
        self._seq += 1
        material = canonical_json({"record": record, "previous": previous, "seq": self._seq})
        return hashlib.sha256(material.encode()).hexdigest()

    def create(self, record: dict[str, Any]) -> str:
        if not isinstance(record, dict):
            raise ValidationException("Records must be dictionaries", "record", type(record).__name__)
        with self._lock:
            record_id = self._next_id(record, None)
            self._records[record_id] = copy.deepcopy(record)
            return record_id

    def update(self, record_id: str, record: dict[str, Any]) -> str:
        if not isinstance(record, dict):
            raise ValidationException("Records must be dictionaries", "record", type(record).__name__)
        with self._lock:
            if record_id not in self._records:
                raise NotFoundError("Record", record_id)
            new_id = self._next_id(record, record_id)
            self._records[new_id] = copy.deepcopy(record)
            return new_id

    def get(self, record_id: str) -> dict[str, Any] | None:
        with self._lock:
            record = self._records.get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class InMemoryLinkStore:
    """Thread-safe ordered multimap of ``(base, link_type) -> [target]``."""

    def __init__(self):
        self._links: dict[tuple[str, str], list[str]] = defaultdict(list)
        self._lock = threading.RLock()

    def link(self, base: str, link_type: str, target: str) -> None:
        with self._lock:
            self._links[(base, link_type)].append(target)

    def query(self, base: str, link_type: str) -> list[str]:
        with self._lock:
            return list(self._links.get((base, link_type), ()))


class StaticIdentity:
    """Identity provider whose caller is set explicitly."""

    def __init__(self, caller: str):
        self._caller = caller
        self._lock = threading.Lock()

    def current_caller(self) -> str:
        with self._lock:
            return self._caller

    def set_caller(self, caller: str) -> None:
        with self._lock:
            self._caller = caller


class StaticArbitratorDirectory:
    """Arbitrator directory backed by a fixed, ordered candidate pool."""

    def __init__(self, candidates: list[str] | None = None):
        self._candidates = list(candidates or [])

    def add(self, peer_id: str) -> None:
        if peer_id not in self._candidates:
            self._candidates.append(peer_id)

    def top_scoring(self, exclude: list[str]) -> list[str]:
        excluded = set(exclude)
        return [peer for peer in self._candidates if peer not in excluded]


@contextmanager
def persistence_errors(operation: str) -> Generator[None, None, None]:
    """Translate store failures into ``InternalError``.

    Engine errors (``MycelixException``) pass through unchanged.
    """
    try:
        yield
    except MycelixException:
        raise
    except Exception as e:
        logger.error(f"Persistence failure during {operation}: {e}")
        raise InternalError(f"Persistence failure during {operation}: {e}") from e
