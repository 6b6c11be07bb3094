"""Domain event types for the advance lifecycle.

All events are immutable and serializable. One event is published for
each status transition that actually happens; no-op callbacks publish
nothing, so notification subscribers never see duplicates.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class EventCategory(str, Enum):
    """Event categories for routing and filtering."""

    LIFECYCLE = "lifecycle"
    DISBURSEMENT = "disbursement"
    RECONCILIATION = "reconciliation"


@dataclass(frozen=True)
class AdvanceEvent:
    """Base class for advance events."""

    advance_id: UUID
    employee_id: UUID
    occurred_at: datetime

    @property
    def event_type(self) -> str:
        """Event type name for routing."""
        return self.__class__.__name__

    @property
    def category(self) -> EventCategory:
        return EventCategory.LIFECYCLE

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to dictionary."""
        data = _serialize(asdict(self))
        data["event_type"] = self.event_type
        data["category"] = self.category.value
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def _serialize(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return obj


@dataclass(frozen=True)
class AdvanceRequested(AdvanceEvent):
    """An advance was admitted and created."""

    amount: Decimal
    fee: Decimal
    total_amount: Decimal
    status: str


@dataclass(frozen=True)
class AdvanceApproved(AdvanceEvent):
    """An advance was approved (by policy or by the employer)."""

    auto_approved: bool = False


@dataclass(frozen=True)
class DisbursementInitiated(AdvanceEvent):
    """The provider accepted a payout request."""

    correlation_id: str = ""

    @property
    def category(self) -> EventCategory:
        return EventCategory.DISBURSEMENT


@dataclass(frozen=True)
class AdvanceDisbursed(AdvanceEvent):
    """Funds reached the employee's mobile-money wallet."""

    external_transaction_id: str | None = None

    @property
    def category(self) -> EventCategory:
        return EventCategory.DISBURSEMENT


@dataclass(frozen=True)
class AdvanceFailed(AdvanceEvent):
    """The advance could not be paid out."""

    failure_reason: str = ""

    @property
    def category(self) -> EventCategory:
        return EventCategory.DISBURSEMENT


@dataclass(frozen=True)
class AdvanceCancelled(AdvanceEvent):
    """The employer rejected a pending advance."""

    reason: str = ""


@dataclass(frozen=True)
class AdvanceRepaid(AdvanceEvent):
    """Payroll recovered the advance total."""

    total_amount: Decimal = Decimal("0")


@dataclass(frozen=True)
class CallbackAnomaly(AdvanceEvent):
    """A callback contradicted an already-final advance and was discarded."""

    correlation_id: str = ""
    current_status: str = ""
    attempted_status: str = ""

    @property
    def category(self) -> EventCategory:
        return EventCategory.RECONCILIATION
