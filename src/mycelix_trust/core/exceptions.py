# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mycelix Contributors

"""Exception hierarchy for the trust-weighted consensus engine.

Every error is raised synchronously to the caller. Nothing in the engine
retries; retry policy belongs to whoever invoked the operation.
"""

from __future__ import annotations

from typing import Any


class MycelixException(Exception):  # noqa: N818
    """Base exception for all engine errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(MycelixException):
    """A referenced dispute, transaction or record is absent.

    Always fatal to the operation. A missing trust score is *not* reported
    this way; it is treated as the neutral default.
    """

    def __init__(self, resource_type: str, resource_id: str):
        message = f"{resource_type} not found: {resource_id}"
        details = {
            "resource_type": resource_type,
            "resource_id": resource_id,
        }
        super().__init__(message, details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class UnauthorizedError(MycelixException):
    """The caller is not the party an operation requires.

    Raised when:
    - A dispute is filed by someone other than the buyer or seller
    - A vote comes from a peer not assigned to the dispute
    - A withdrawal is attempted by someone other than the filer
    """

    def __init__(self, message: str, peer_id: str | None = None, action: str | None = None):
        details = {}
        if peer_id:
            details["peer_id"] = peer_id
        if action:
            details["action"] = action
        super().__init__(message, details)
        self.peer_id = peer_id
        self.action = action


class ValidationException(MycelixException):
    """Malformed input or a violated state-machine precondition.

    Raised when:
    - A reason, reasoning, rating or comment is out of bounds
    - A dispute is finalized outside the Voting state
    - An arbitrator votes twice
    """

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class ConflictError(ValidationException):
    """A compare-and-swap transition observed a state it did not expect.

    Another caller changed the record between our read and our write. The
    operation fails cleanly and nothing is committed.
    """

    def __init__(self, message: str, existing_id: str | None = None):
        super().__init__(message)
        if existing_id:
            self.details["existing_id"] = existing_id
        self.existing_id = existing_id


class InsufficientTrustError(MycelixException):
    """A trust score is below the threshold an operation needs."""

    def __init__(
        self,
        message: str,
        have: float | None = None,
        need: float | None = None,
        details: dict | None = None,
    ):
        merged = dict(details or {})
        if have is not None:
            merged["have"] = have
        if need is not None:
            merged["need"] = need
        super().__init__(message, merged)
        self.have = have
        self.need = need


class InternalError(MycelixException):
    """A remote call or persistence operation failed."""

    def __init__(self, message: str, service: str | None = None, method: str | None = None):
        details = {}
        if service:
            details["service"] = service
        if method:
            details["method"] = method
        super().__init__(message, details)
        self.service = service
        self.method = method


class ConfigException(MycelixException):
    """Configuration is missing or invalid."""

    def __init__(self, message: str, missing_vars: list[str] | None = None):
        details = {}
        if missing_vars:
            details["missing_vars"] = missing_vars
        super().__init__(message, details)
        self.missing_vars = missing_vars or []
