"""Advance state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from salary_advance.errors import InvalidTransitionError


class AdvanceStatus(str, Enum):
    """Advance status values."""

    PENDING = "pending"
    APPROVED = "approved"
    DISBURSED = "disbursed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REPAID = "repaid"


class AdvanceStateMachine:
    """State machine for advance status transitions.

    Allowed transitions:
    - pending → approved (employer approval)
    - pending → cancelled (employer rejection)
    - pending → failed
    - approved → disbursed (provider success callback)
    - approved → failed (initiation error, failure or timeout callback)
    - disbursed → repaid (payroll close)
    """

    VALID_TRANSITIONS: dict[AdvanceStatus, frozenset[AdvanceStatus]] = {
        AdvanceStatus.PENDING: frozenset(
            {AdvanceStatus.APPROVED, AdvanceStatus.CANCELLED, AdvanceStatus.FAILED}
        ),
        AdvanceStatus.APPROVED: frozenset(
            {AdvanceStatus.DISBURSED, AdvanceStatus.FAILED}
        ),
        AdvanceStatus.DISBURSED: frozenset({AdvanceStatus.REPAID}),
        AdvanceStatus.FAILED: frozenset(),
        AdvanceStatus.CANCELLED: frozenset(),
        AdvanceStatus.REPAID: frozenset(),
    }

    # Column stamped when the status is entered
    TIMESTAMP_FIELDS: dict[AdvanceStatus, str] = {
        AdvanceStatus.APPROVED: "approved_at",
        AdvanceStatus.DISBURSED: "disbursed_at",
        AdvanceStatus.FAILED: "failed_at",
        AdvanceStatus.REPAID: "repaid_at",
    }

    # Advances in these statuses release their capacity back to the month
    RELEASED = frozenset({AdvanceStatus.FAILED, AdvanceStatus.CANCELLED})

    @classmethod
    def coerce(cls, status: str | AdvanceStatus) -> AdvanceStatus:
        try:
            return AdvanceStatus(status)
        except ValueError:
            raise InvalidTransitionError(str(status), "?", "unknown status") from None

    @classmethod
    def initial_status(cls, auto_approve: bool) -> AdvanceStatus:
        """Status a new advance is created in."""
        return AdvanceStatus.APPROVED if auto_approve else AdvanceStatus.PENDING

    @classmethod
    def can_transition(
        cls, from_status: str | AdvanceStatus, to_status: str | AdvanceStatus
    ) -> bool:
        """Check if a transition is valid."""
        try:
            source = AdvanceStatus(from_status)
            target = AdvanceStatus(to_status)
        except ValueError:
            return False
        return target in cls.VALID_TRANSITIONS[source]

    @classmethod
    def validate_transition(
        cls,
        from_status: str | AdvanceStatus,
        to_status: str | AdvanceStatus,
        *,
        failure_reason: str | None = None,
    ) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        source = cls.coerce(from_status)
        target = cls.coerce(to_status)
        if target not in cls.VALID_TRANSITIONS[source]:
            raise InvalidTransitionError(source.value, target.value)
        if target is AdvanceStatus.FAILED and not failure_reason:
            raise InvalidTransitionError(
                source.value, target.value, "failure_reason is required"
            )

    @classmethod
    def is_final(cls, status: str | AdvanceStatus) -> bool:
        """No further transitions are possible from this status."""
        return not cls.VALID_TRANSITIONS[cls.coerce(status)]

    @classmethod
    def counts_toward_limits(cls, status: str | AdvanceStatus) -> bool:
        """Whether an advance in this status uses monthly capacity."""
        return cls.coerce(status) not in cls.RELEASED

    @classmethod
    def get_next_statuses(cls, current_status: str | AdvanceStatus) -> list[AdvanceStatus]:
        """Get list of valid next statuses from current status."""
        return sorted(cls.VALID_TRANSITIONS[cls.coerce(current_status)], key=lambda s: s.value)
