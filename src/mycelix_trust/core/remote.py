# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mycelix Contributors

"""Remote call routing.

``ServiceRegistry`` is an in-process ``RemoteCaller``: handlers are
registered per ``(service, method)`` and dispatched synchronously. Every
failure on the far side surfaces as ``InternalError``.

Example:
    registry = ServiceRegistry()

    @registry.register("transactions", "get_transaction")
    def get_transaction(ref: str) -> dict | None:
        return ledger.get(ref)

    registry.call("transactions", "get_transaction", "tx-1")
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from .exceptions import InternalError

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """Dispatch remote calls to registered handlers."""

    def __init__(self):
        self._handlers: dict[tuple[str, str], Callable[[Any], Any]] = {}

    def register(self, service: str, method: str):
        """Decorator registering a handler for ``service.method``."""

        def decorator(func: Callable[[Any], Any]) -> Callable[[Any], Any]:
            self._handlers[(service, method)] = func
            return func

        return decorator

    def add_handler(self, service: str, method: str, func: Callable[[Any], Any]) -> None:
        self._handlers[(service, method)] = func

    def has_handler(self, service: str, method: str) -> bool:
        return (service, method) in self._handlers

    def call(self, service: str, method: str, payload: Any) -> Any:
        handler = self._handlers.get((service, method))
        if handler is None:
            raise InternalError(f"No handler for {service}.{method}", service, method)
        try:
            return handler(payload)
        except Exception as e:
            logger.error(f"Remote call {service}.{method} failed: {e}")
            raise InternalError(f"Remote call to {service}.{method} failed: {e}", service, method) from e
