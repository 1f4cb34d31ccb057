# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mycelix Contributors

"""Narrow interfaces the engine consumes from its environment.

The engine depends on these protocols, never on a concrete store, network
or identity system. In-memory implementations live in ``store``,
``remote``, ``clock`` and ``metrics``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

Record = dict[str, Any]


@runtime_checkable
class RecordStore(Protocol):
    """Content-addressed record persistence.

    Updates create a new id; the previous record stays readable.
    """

    def create(self, record: Record) -> str:
        ...

    def update(self, record_id: str, record: Record) -> str:
        ...

    def get(self, record_id: str) -> Record | None:
        ...


@runtime_checkable
class LinkStore(Protocol):
    """Typed, ordered links between ids (the discovery index)."""

    def link(self, base: str, link_type: str, target: str) -> None:
        ...

    def query(self, base: str, link_type: str) -> list[str]:
        ...


@runtime_checkable
class RemoteCaller(Protocol):
    """Synchronous all-or-nothing call into another service."""

    def call(self, service: str, method: str, payload: Any) -> Any:
        ...


@runtime_checkable
class MetricsSink(Protocol):
    """Fire-and-forget metric receiver."""

    def emit(
        self,
        kind: Any,
        value: float,
        peer: str | None = None,
        metadata: str | None = None,
    ) -> None:
        ...


@runtime_checkable
class IdentityProvider(Protocol):
    """Who is calling the current operation."""

    def current_caller(self) -> str:
        ...


@runtime_checkable
class Clock(Protocol):
    """Wall clock with sub-second resolution."""

    def now(self) -> datetime:
        ...


@runtime_checkable
class ArbitratorDirectory(Protocol):
    """Source of arbitrator candidates.

    The selection policy (ordering, randomisation, pool size) is owned by
    the directory. The engine only filters the returned peers by score.
    """

    def top_scoring(self, exclude: list[str]) -> list[str]:
        ...
