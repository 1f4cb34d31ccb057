"""Tests for mycelix_trust.core.remote.ServiceRegistry."""

from __future__ import annotations

import pytest

from mycelix_trust.core import RemoteCaller
from mycelix_trust.core.exceptions import InternalError
from mycelix_trust.core.remote import ServiceRegistry


class TestServiceRegistry:
    """Dispatching remote calls to registered handlers."""

    def test_is_remote_caller(self):
        assert isinstance(ServiceRegistry(), RemoteCaller)

    def test_register_decorator(self):
        registry = ServiceRegistry()

        @registry.register("transactions", "get_transaction")
        def get_transaction(ref):
            return {"ref": ref}

        assert registry.has_handler("transactions", "get_transaction")
        assert registry.call("transactions", "get_transaction", "tx-1") == {"ref": "tx-1"}
        # The decorator returns the function unchanged
        assert get_transaction("x") == {"ref": "x"}

    def test_add_handler(self):
        registry = ServiceRegistry()
        registry.add_handler("listings", "get", lambda ref: ref.upper())
        assert registry.call("listings", "get", "abc") == "ABC"

    def test_missing_handler(self):
        with pytest.raises(InternalError) as exc_info:
            ServiceRegistry().call("transactions", "get_transaction", "tx-1")
        assert exc_info.value.service == "transactions"
        assert exc_info.value.method == "get_transaction"

    def test_handler_failure_wrapped(self):
        registry = ServiceRegistry()

        def broken(_):
            raise ConnectionError("peer unreachable")

        registry.add_handler("transactions", "get_transaction", broken)

        with pytest.raises(InternalError) as exc_info:
            registry.call("transactions", "get_transaction", "tx-1")
        assert "peer unreachable" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_none_result_passes_through(self):
        """A handler may legitimately find nothing."""
        registry = ServiceRegistry()
        registry.add_handler("transactions", "get_transaction", lambda _: None)
        assert registry.call("transactions", "get_transaction", "tx-1") is None
