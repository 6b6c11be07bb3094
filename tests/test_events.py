"""Tests for advance domain events and the emitter."""

import json
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from salary_advance.events import (
    AdvanceDisbursed,
    AdvanceFailed,
    AdvanceRequested,
    CallbackAnomaly,
    EventCategory,
    EventEmitter,
)

NOW = datetime(2026, 9, 15, 9, 30, tzinfo=timezone.utc)


def _requested() -> AdvanceRequested:
    return AdvanceRequested(
        advance_id=uuid4(),
        employee_id=uuid4(),
        occurred_at=NOW,
        amount=Decimal("10000.00"),
        fee=Decimal("400.00"),
        total_amount=Decimal("10400.00"),
        status="approved",
    )


def _disbursed() -> AdvanceDisbursed:
    return AdvanceDisbursed(
        advance_id=uuid4(),
        employee_id=uuid4(),
        occurred_at=NOW,
        external_transaction_id="SIX1234ABC",
    )


class TestEventTypes:
    def test_serialization(self):
        event = _requested()
        data = event.to_dict()

        assert data["event_type"] == "AdvanceRequested"
        assert data["category"] == "lifecycle"
        assert data["total_amount"] == "10400.00"
        assert data["advance_id"] == str(event.advance_id)
        assert json.loads(event.to_json())["occurred_at"] == NOW.isoformat()

    def test_categories(self):
        assert _requested().category is EventCategory.LIFECYCLE
        assert _disbursed().category is EventCategory.DISBURSEMENT
        anomaly = CallbackAnomaly(advance_id=uuid4(), employee_id=uuid4(), occurred_at=NOW)
        assert anomaly.category is EventCategory.RECONCILIATION


class TestEventEmitter:
    def test_type_subscription(self):
        emitter = EventEmitter()
        received = []
        emitter.on(AdvanceDisbursed, received.append)

        emitter.emit(_requested())
        emitter.emit(_disbursed())

        assert [e.event_type for e in received] == ["AdvanceDisbursed"]

    def test_multiple_types(self):
        emitter = EventEmitter()
        received = []
        emitter.on([AdvanceDisbursed, AdvanceFailed], received.append)

        emitter.emit(_requested())
        emitter.emit(_disbursed())
        emitter.emit(
            AdvanceFailed(
                advance_id=uuid4(), employee_id=uuid4(), occurred_at=NOW, failure_reason="x"
            )
        )

        assert len(received) == 2

    def test_category_subscription(self):
        emitter = EventEmitter()
        received = []
        emitter.on_category(EventCategory.DISBURSEMENT, received.append)

        emitter.emit(_requested())
        emitter.emit(_disbursed())

        assert len(received) == 1

    def test_failing_handler_is_isolated(self):
        """One broken subscriber does not stop the others."""
        emitter = EventEmitter()
        received = []

        def broken(event):
            raise RuntimeError("notification service down")

        emitter.on_all(broken)
        emitter.on_all(received.append)

        errors = emitter.emit(_requested())

        assert len(received) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], RuntimeError)

    def test_off(self):
        emitter = EventEmitter()
        received = []

        def handler(event):
            received.append(event)

        emitter.on_all(handler)
        emitter.off(handler)
        emitter.emit(_requested())

        assert received == []
