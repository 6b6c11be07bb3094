"""Tests for provider callback reconciliation."""

import asyncio
from decimal import Decimal

from salary_advance.database import make_session_factory
from salary_advance.services import AdvanceService, CallbackReconciler
from salary_advance.services.advance_store import AdvanceStore
from salary_advance.services.reconciler import (
    DEFAULT_FAILURE_REASON,
    TIMEOUT_REASON,
    ReconciliationOutcome,
)


def _count(events, event_type):
    return sum(1 for e in events if e.event_type == event_type)


async def _disbursing(service, employee):
    """An approved advance waiting for its result callback."""
    outcome = await service.request_advance(employee.employee_id, Decimal("10000"))
    return outcome.advance


class TestResultCallback:
    async def test_success(self, reconciler, service, employee, make_callback, events):
        advance = await _disbursing(service, employee)

        result = await reconciler.handle_result(make_callback(advance.correlation_id))

        assert result.outcome is ReconciliationOutcome.DISBURSED
        assert result.applied is True
        assert result.advance_id == advance.advance_id
        stored = await service.store.get(advance.advance_id)
        assert stored.status == "disbursed"
        assert stored.disbursed_at is not None
        assert stored.external_transaction_id == "SIX1234ABC"
        assert _count(events, "AdvanceDisbursed") == 1

    async def test_duplicate_success_is_noop(
        self, reconciler, service, employee, make_callback, events
    ):
        """The same success delivered twice transitions and notifies once."""
        advance = await _disbursing(service, employee)
        body = make_callback(advance.correlation_id)

        first = await reconciler.handle_result(body)
        second = await reconciler.handle_result(body)

        assert first.outcome is ReconciliationOutcome.DISBURSED
        assert second.outcome is ReconciliationOutcome.DUPLICATE
        assert second.applied is False
        assert _count(events, "AdvanceDisbursed") == 1
        entries = await service.store.transactions(advance.advance_id)
        assert [e.transaction_type for e in entries].count("advance_disbursement") == 1

    async def test_failure(self, reconciler, service, employee, make_callback, events):
        advance = await _disbursing(service, employee)

        result = await reconciler.handle_result(
            make_callback(
                advance.correlation_id,
                result_code=2001,
                result_desc="The initiator information is invalid.",
            )
        )

        assert result.outcome is ReconciliationOutcome.FAILED
        stored = await service.store.get(advance.advance_id)
        assert stored.status == "failed"
        assert stored.failure_reason == "The initiator information is invalid."
        assert _count(events, "AdvanceFailed") == 1

    async def test_failure_without_description(self, reconciler, service, employee, make_callback):
        advance = await _disbursing(service, employee)

        await reconciler.handle_result(
            make_callback(advance.correlation_id, result_code=1, result_desc="")
        )

        stored = await service.store.get(advance.advance_id)
        assert stored.failure_reason == DEFAULT_FAILURE_REASON

    async def test_failure_after_success_is_discarded(
        self, reconciler, service, employee, make_callback, events
    ):
        advance = await _disbursing(service, employee)
        await reconciler.handle_result(make_callback(advance.correlation_id))

        result = await reconciler.handle_result(
            make_callback(advance.correlation_id, result_code=2001, result_desc="Late failure")
        )

        assert result.outcome is ReconciliationOutcome.ANOMALY
        stored = await service.store.get(advance.advance_id)
        assert stored.status == "disbursed"
        assert stored.failure_reason is None
        assert _count(events, "AdvanceFailed") == 0
        assert _count(events, "CallbackAnomaly") == 1

    async def test_success_after_timeout_is_anomaly(
        self, reconciler, service, employee, make_callback, events
    ):
        """A late payout after a timeout is flagged, not applied."""
        advance = await _disbursing(service, employee)
        await reconciler.handle_timeout(make_callback(advance.correlation_id, result_code=1))

        result = await reconciler.handle_result(make_callback(advance.correlation_id))

        assert result.outcome is ReconciliationOutcome.ANOMALY
        assert (await service.store.get(advance.advance_id)).status == "failed"
        anomaly = [e for e in events if e.event_type == "CallbackAnomaly"][0]
        assert anomaly.current_status == "failed"
        assert anomaly.attempted_status == "disbursed"

    async def test_falls_back_to_conversation_id(self, reconciler, service, session, employee):
        """An advance keyed by ConversationID still matches."""
        service.disbursement_enabled = False
        outcome = await service.request_advance(employee.employee_id, Decimal("1000"))
        await service.store.attach_correlation_id(outcome.advance.advance_id, "AG_20260915_0001")
        await session.commit()
        body = {
            "Result": {
                "ResultCode": 0,
                "OriginatorConversationID": "unknown-originator",
                "ConversationID": "AG_20260915_0001",
                "TransactionID": "SIX9999ZZZ",
            }
        }

        result = await reconciler.handle_result(body)

        assert result.outcome is ReconciliationOutcome.DISBURSED
        stored = await service.store.get(outcome.advance.advance_id)
        assert stored.external_transaction_id == "SIX9999ZZZ"

    async def test_unknown_correlation_id(self, reconciler, service, employee, make_callback, events):
        advance = await _disbursing(service, employee)
        before = len(events)

        result = await reconciler.handle_result(make_callback("no-such-conversation"))

        assert result.outcome is ReconciliationOutcome.UNMATCHED
        assert result.correlation_id == "no-such-conversation"
        assert (await service.store.get(advance.advance_id)).status == "approved"
        assert len(events) == before

    async def test_empty_body(self, reconciler):
        result = await reconciler.handle_result({})
        assert result.outcome is ReconciliationOutcome.UNMATCHED


class TestTimeoutCallback:
    async def test_timeout_fails_advance(self, reconciler, service, employee, make_callback):
        advance = await _disbursing(service, employee)

        result = await reconciler.handle_timeout(
            make_callback(advance.correlation_id, result_code=1)
        )

        assert result.outcome is ReconciliationOutcome.FAILED
        stored = await service.store.get(advance.advance_id)
        assert stored.status == "failed"
        assert stored.failure_reason == TIMEOUT_REASON

    async def test_repeated_timeout(self, reconciler, service, employee, make_callback, events):
        advance = await _disbursing(service, employee)
        body = make_callback(advance.correlation_id, result_code=1)

        await reconciler.handle_timeout(body)
        result = await reconciler.handle_timeout(body)

        assert result.outcome is ReconciliationOutcome.DUPLICATE
        assert _count(events, "AdvanceFailed") == 1

    async def test_timeout_after_success(self, reconciler, service, employee, make_callback):
        advance = await _disbursing(service, employee)
        await reconciler.handle_result(make_callback(advance.correlation_id))

        result = await reconciler.handle_timeout(make_callback(advance.correlation_id))

        assert result.outcome is ReconciliationOutcome.ANOMALY
        assert (await service.store.get(advance.advance_id)).status == "disbursed"

    async def test_failed_advance_releases_capacity(
        self, reconciler, service, employee, make_callback
    ):
        advance = await _disbursing(service, employee)
        await reconciler.handle_timeout(make_callback(advance.correlation_id, result_code=1))

        balance = await service.balance(employee.employee_id)
        assert balance.total_advanced == Decimal("0")


async def _deliver_together(engine, emitter, clock, *deliveries):
    """Run each delivery on its own session at the same time."""
    factory = make_session_factory(engine)
    async with factory() as first, factory() as second:
        reconcilers = [
            CallbackReconciler(AdvanceService(session, emitter=emitter, clock=clock))
            for session in (first, second)
        ]
        return await asyncio.gather(
            *(deliver(reconciler) for deliver, reconciler in zip(deliveries, reconcilers))
        )


async def _stored(engine, advance_id):
    async with make_session_factory(engine)() as session:
        store = AdvanceStore(session)
        advance = await store.get(advance_id)
        entries = await store.transactions(advance_id)
    return advance, [e.transaction_type for e in entries]


class TestConcurrentDelivery:
    """Callbacks for one advance arriving at once on separate connections."""

    async def test_simultaneous_duplicate_success(
        self, file_engine, file_advance, emitter, clock, events, make_callback
    ):
        body = make_callback(file_advance.correlation_id)

        results = await _deliver_together(
            file_engine,
            emitter,
            clock,
            lambda r: r.handle_result(body),
            lambda r: r.handle_result(body),
        )

        assert sorted(r.outcome.value for r in results) == ["disbursed", "duplicate"]
        advance, types = await _stored(file_engine, file_advance.advance_id)
        assert advance.status == "disbursed"
        assert advance.external_transaction_id == "SIX1234ABC"
        assert types.count("advance_disbursement") == 1
        assert types.count("fee") == 1
        assert _count(events, "AdvanceDisbursed") == 1
        assert _count(events, "CallbackAnomaly") == 0

    async def test_simultaneous_timeouts(
        self, file_engine, file_advance, emitter, clock, events, make_callback
    ):
        body = make_callback(file_advance.correlation_id, result_code=1)

        results = await _deliver_together(
            file_engine,
            emitter,
            clock,
            lambda r: r.handle_timeout(body),
            lambda r: r.handle_timeout(body),
        )

        assert sorted(r.outcome.value for r in results) == ["duplicate", "failed"]
        advance, _ = await _stored(file_engine, file_advance.advance_id)
        assert advance.status == "failed"
        assert advance.failure_reason == TIMEOUT_REASON
        assert _count(events, "AdvanceFailed") == 1

    async def test_timeout_racing_success(
        self, file_engine, file_advance, emitter, clock, events, make_callback
    ):
        """Whichever lands first wins; the other is reported, never applied."""
        success = make_callback(file_advance.correlation_id)
        timeout = make_callback(file_advance.correlation_id, result_code=1)

        results = await _deliver_together(
            file_engine,
            emitter,
            clock,
            lambda r: r.handle_result(success),
            lambda r: r.handle_timeout(timeout),
        )

        applied = [r for r in results if r.applied]
        assert len(applied) == 1
        assert [r.outcome for r in results if not r.applied] == [ReconciliationOutcome.ANOMALY]
        advance, types = await _stored(file_engine, file_advance.advance_id)
        assert advance.status == applied[0].outcome.value
        assert ("advance_disbursement" in types) == (advance.status == "disbursed")
        assert _count(events, "AdvanceDisbursed") + _count(events, "AdvanceFailed") == 1
        assert _count(events, "CallbackAnomaly") == 1
