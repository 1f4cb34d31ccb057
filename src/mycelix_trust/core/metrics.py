# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mycelix Contributors

"""Marketplace metrics and alerting.

``MarketplaceMetrics`` is an in-process ``MetricsSink``: it keeps counters,
a running average of published composite scores, a bounded window of
recent events and the currently active alerts. Engines never call a sink
directly; they go through ``safe_emit`` so a broken sink cannot fail or
block an operation.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

HIGH_RISK_SPIKE_THRESHOLD = 100
DISPUTE_RATE_THRESHOLD = 0.1
NETWORK_COMPOSITE_FLOOR = 0.5
NETWORK_MIN_SAMPLES = 100


class MetricType(str, Enum):
    """Kinds of metric events the engine emits."""
    TRANSACTION_DISPUTED = "transaction_disputed"
    HIGH_RISK_AGENT = "high_risk_agent"
    TRUST_SCORE_UPDATED = "trust_score_updated"
    REVIEW_SUBMITTED = "review_submitted"
    ARBITRATION_INITIATED = "arbitration_initiated"
    ARBITRATION_VOTE_CAST = "arbitration_vote_cast"
    ARBITRATION_FINALIZED = "arbitration_finalized"
    ARBITRATOR_SHORTAGE = "arbitrator_shortage"
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass
class MetricEvent:
    """A single emitted metric."""
    metric_type: MetricType
    value: float
    peer: str | None = None
    metadata: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric_type": self.metric_type.value,
            "value": self.value,
            "peer": self.peer,
            "metadata": self.metadata,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Alert:
    """An anomaly worth a human's attention."""
    severity: AlertSeverity
    message: str
    metric_type: MetricType
    value: float
    threshold: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def high_risk_spike(cls, count: int) -> Alert:
        return cls(
            severity=AlertSeverity.CRITICAL,
            message=f"High-risk peer spike: {count} flagged updates in the recent window",
            metric_type=MetricType.HIGH_RISK_AGENT,
            value=float(count),
            threshold=float(HIGH_RISK_SPIKE_THRESHOLD),
        )

    @classmethod
    def high_dispute_rate(cls, rate: float) -> Alert:
        return cls(
            severity=AlertSeverity.WARNING,
            message=f"Dispute rate elevated: {rate * 100:.1f}%",
            metric_type=MetricType.TRANSACTION_DISPUTED,
            value=rate,
            threshold=DISPUTE_RATE_THRESHOLD,
        )

    @classmethod
    def network_compromised(cls, average_composite: float) -> Alert:
        return cls(
            severity=AlertSeverity.CRITICAL,
            message=f"Network average composite score critically low: {average_composite:.2f}",
            metric_type=MetricType.TRUST_SCORE_UPDATED,
            value=average_composite,
            threshold=NETWORK_COMPOSITE_FLOOR,
        )

    @classmethod
    def arbitrator_shortage(cls, metadata: str | None) -> Alert:
        return cls(
            severity=AlertSeverity.WARNING,
            message=f"No eligible arbitrators for dispute ({metadata or 'unknown'})",
            metric_type=MetricType.ARBITRATOR_SHORTAGE,
            value=0.0,
            threshold=1.0,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "message": self.message,
            "metric_type": self.metric_type.value,
            "value": self.value,
            "threshold": self.threshold,
            "timestamp": self.timestamp.isoformat(),
        }


class MarketplaceMetrics:
    """Thread-safe metrics aggregator implementing ``MetricsSink``.

    Threshold alerts (spike, dispute rate, network health) are keyed by
    metric type: a re-triggered alert replaces the previous one rather than
    piling up. Shortage alerts are kept per dispute, newest
    ``max_recent_events`` only.
    """

    def __init__(self, max_recent_events: int = 1000):
        self.max_recent_events = max_recent_events
        self.counters: dict[MetricType, int] = {t: 0 for t in MetricType}
        self.average_composite = 0.5
        self.composite_samples = 0
        self.recent_events: deque[MetricEvent] = deque(maxlen=max_recent_events)
        self._threshold_alerts: dict[MetricType, Alert] = {}
        self._shortage_alerts: deque[Alert] = deque(maxlen=max_recent_events)
        self._lock = threading.RLock()

    def emit(
        self,
        kind: MetricType | str,
        value: float,
        peer: str | None = None,
        metadata: str | None = None,
    ) -> None:
        metric_type = MetricType(kind)
        event = MetricEvent(metric_type=metric_type, value=float(value), peer=peer, metadata=metadata)
        with self._lock:
            self.counters[metric_type] += 1
            if metric_type == MetricType.TRUST_SCORE_UPDATED:
                self.average_composite = (
                    self.average_composite * self.composite_samples + event.value
                ) / (self.composite_samples + 1)
                self.composite_samples += 1
            elif metric_type == MetricType.ARBITRATOR_SHORTAGE:
                self._shortage_alerts.append(Alert.arbitrator_shortage(metadata))
            self.recent_events.append(event)
            self._check_anomalies()

    def _check_anomalies(self) -> None:
        recent_high_risk = sum(
            1 for e in self.recent_events if e.metric_type == MetricType.HIGH_RISK_AGENT
        )
        if recent_high_risk > HIGH_RISK_SPIKE_THRESHOLD:
            self._threshold_alerts[MetricType.HIGH_RISK_AGENT] = Alert.high_risk_spike(recent_high_risk)

        rate = self.dispute_rate()
        if rate > DISPUTE_RATE_THRESHOLD:
            self._threshold_alerts[MetricType.TRANSACTION_DISPUTED] = Alert.high_dispute_rate(rate)
        else:
            self._threshold_alerts.pop(MetricType.TRANSACTION_DISPUTED, None)

        if self.composite_samples > NETWORK_MIN_SAMPLES and self.average_composite < NETWORK_COMPOSITE_FLOOR:
            self._threshold_alerts[MetricType.TRUST_SCORE_UPDATED] = Alert.network_compromised(
                self.average_composite
            )

    def dispute_rate(self) -> float:
        """Disputes filed per recorded trust score update."""
        with self._lock:
            updates = self.counters[MetricType.TRUST_SCORE_UPDATED]
            if updates == 0:
                return 0.0
            return self.counters[MetricType.TRANSACTION_DISPUTED] / updates

    def cache_hit_rate(self) -> float:
        with self._lock:
            hits = self.counters[MetricType.CACHE_HIT]
            total = hits + self.counters[MetricType.CACHE_MISS]
            return hits / total if total else 0.0

    @property
    def active_alerts(self) -> list[Alert]:
        with self._lock:
            return list(self._threshold_alerts.values()) + list(self._shortage_alerts)

    def dashboard(self) -> dict[str, Any]:
        """Snapshot of the aggregated state."""
        with self._lock:
            return {
                "trust_score_updates": self.counters[MetricType.TRUST_SCORE_UPDATED],
                "disputes_filed": self.counters[MetricType.TRANSACTION_DISPUTED],
                "disputes_finalized": self.counters[MetricType.ARBITRATION_FINALIZED],
                "votes_cast": self.counters[MetricType.ARBITRATION_VOTE_CAST],
                "reviews_submitted": self.counters[MetricType.REVIEW_SUBMITTED],
                "high_risk_flags": self.counters[MetricType.HIGH_RISK_AGENT],
                "dispute_rate": self.dispute_rate(),
                "average_composite": self.average_composite,
                "cache_hit_rate": self.cache_hit_rate(),
                "active_alerts": [a.to_dict() for a in self.active_alerts],
            }


def safe_emit(
    sink: Any,
    kind: MetricType,
    value: float,
    peer: str | None = None,
    metadata: str | None = None,
) -> None:
    """Emit to ``sink`` without ever raising.

    Metrics are fire-and-forget: a failing sink is logged and ignored.
    """
    if sink is None:
        return
    try:
        sink.emit(kind, value, peer, metadata)
    except Exception as e:
        logger.warning(f"Metrics sink rejected {kind.value}: {e}")
