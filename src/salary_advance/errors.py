"""Domain error taxonomy for advance operations."""

from __future__ import annotations

from decimal import Decimal


class AdvanceError(Exception):
    """Base class for all advance domain errors."""


class ValidationError(AdvanceError):
    """Malformed or out-of-range request input. Raised before any state change."""


class PolicyDenied(AdvanceError):
    """The eligibility engine refused the request.

    Not a system fault; `reason` is meant to be shown to the employee.
    """

    def __init__(self, reason: str, available_balance: Decimal | None = None):
        self.reason = reason
        self.available_balance = available_balance
        super().__init__(reason)


class NotFoundError(AdvanceError):
    """Referenced employee, employer or advance does not exist."""

    def __init__(self, entity: str, key: object):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key} not found")


class InvalidTransitionError(AdvanceError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class GatewayError(AdvanceError):
    """Disbursement authentication or submission failed.

    The message is the provider's error text, kept verbatim so it can be
    recorded as the advance's failure reason.
    """


class ReconciliationMiss(AdvanceError):
    """A provider callback referenced an unknown correlation id."""

    def __init__(self, correlation_id: str | None):
        self.correlation_id = correlation_id
        super().__init__(f"No advance matches correlation id {correlation_id!r}")
