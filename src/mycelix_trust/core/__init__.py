"""Mycelix trust core - configuration, errors, logging and collaborator interfaces."""

from .clock import ManualClock, SystemClock
from .config import CoreSettings, clear_config_cache, get_config
from .exceptions import (
    ConfigException,
    ConflictError,
    InsufficientTrustError,
    InternalError,
    MycelixException,
    NotFoundError,
    UnauthorizedError,
    ValidationException,
)
from .logging import configure_logging, get_logger, operation_context
from .metrics import Alert, AlertSeverity, MarketplaceMetrics, MetricEvent, MetricType, safe_emit
from .ports import (
    ArbitratorDirectory,
    Clock,
    IdentityProvider,
    LinkStore,
    MetricsSink,
    RecordStore,
    RemoteCaller,
)
from .remote import ServiceRegistry
from .store import (
    InMemoryLinkStore,
    InMemoryRecordStore,
    StaticArbitratorDirectory,
    StaticIdentity,
)

__all__ = [
    # Config
    "CoreSettings",
    "get_config",
    "clear_config_cache",
    # Exceptions
    "MycelixException",
    "NotFoundError",
    "UnauthorizedError",
    "ValidationException",
    "ConflictError",
    "InsufficientTrustError",
    "InternalError",
    "ConfigException",
    # Logging
    "configure_logging",
    "get_logger",
    "operation_context",
    # Metrics
    "MetricType",
    "MetricEvent",
    "Alert",
    "AlertSeverity",
    "MarketplaceMetrics",
    "safe_emit",
    # Interfaces
    "RecordStore",
    "LinkStore",
    "RemoteCaller",
    "MetricsSink",
    "IdentityProvider",
    "Clock",
    "ArbitratorDirectory",
    # Implementations
    "SystemClock",
    "ManualClock",
    "InMemoryRecordStore",
    "InMemoryLinkStore",
    "StaticIdentity",
    "StaticArbitratorDirectory",
    "ServiceRegistry",
]
