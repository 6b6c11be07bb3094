"""Provider callback reconciliation.

Matches asynchronous B2C result and timeout notifications to advances
by correlation id and drives the matching transition. Unknown ids,
repeated deliveries and callbacks that contradict a settled advance are
logged and reported, never raised: the provider is always acknowledged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from salary_advance.errors import InvalidTransitionError, ReconciliationMiss
from salary_advance.events import CallbackAnomaly
from salary_advance.gateway.callbacks import ProviderCallback, parse_callback
from salary_advance.models import Advance
from salary_advance.services.advance_service import AdvanceService
from salary_advance.services.state_machine import AdvanceStateMachine, AdvanceStatus

logger = logging.getLogger(__name__)

TIMEOUT_REASON = "Transaction timed out"
DEFAULT_FAILURE_REASON = "M-Pesa transaction failed"


class ReconciliationOutcome(str, Enum):
    """What a callback did."""

    DISBURSED = "disbursed"
    FAILED = "failed"
    DUPLICATE = "duplicate"
    ANOMALY = "anomaly"
    UNMATCHED = "unmatched"


@dataclass(frozen=True)
class ReconciliationResult:
    """Result of reconciling one callback."""

    outcome: ReconciliationOutcome
    correlation_id: str | None = None
    advance_id: UUID | None = None
    detail: str = ""

    @property
    def applied(self) -> bool:
        """Whether the callback changed an advance."""
        return self.outcome in (ReconciliationOutcome.DISBURSED, ReconciliationOutcome.FAILED)


class CallbackReconciler:
    """Applies provider callbacks through the advance service."""

    def __init__(self, advances: AdvanceService):
        self.advances = advances

    async def handle_result(self, body: Any) -> ReconciliationResult:
        """B2C result callback: ResultCode 0 is success, anything else failure."""
        callback = parse_callback(body)
        if callback.succeeded:
            return await self._reconcile(callback, AdvanceStatus.DISBURSED, None)
        reason = callback.result_desc or DEFAULT_FAILURE_REASON
        return await self._reconcile(callback, AdvanceStatus.FAILED, reason)

    async def handle_timeout(self, body: Any) -> ReconciliationResult:
        """Queue timeout callback: the payout did not go through."""
        callback = parse_callback(body)
        return await self._reconcile(callback, AdvanceStatus.FAILED, TIMEOUT_REASON)

    async def _match(self, callback: ProviderCallback) -> Advance:
        advance = await self.advances.store.get_by_correlation_id(*callback.correlation_ids)
        if advance is None:
            raise ReconciliationMiss(
                callback.originator_conversation_id or callback.conversation_id
            )
        return advance

    async def _reconcile(
        self,
        callback: ProviderCallback,
        target: AdvanceStatus,
        reason: str | None,
    ) -> ReconciliationResult:
        try:
            advance = await self._match(callback)
        except ReconciliationMiss as miss:
            logger.warning("Callback not reconciled: %s", miss)
            return ReconciliationResult(
                ReconciliationOutcome.UNMATCHED,
                correlation_id=miss.correlation_id,
                detail=str(miss),
            )

        advance_id = advance.advance_id
        correlation_id = advance.correlation_id
        current = AdvanceStatus(advance.status)
        if current is target:
            return self._duplicate(advance, target)
        if not AdvanceStateMachine.can_transition(current, target):
            return self._anomaly(advance, current, target)

        try:
            if target is AdvanceStatus.DISBURSED:
                await self.advances.confirm_disbursement(advance, callback.transaction_id)
                outcome = ReconciliationOutcome.DISBURSED
            else:
                await self.advances.fail(advance, current, reason or DEFAULT_FAILURE_REASON)
                outcome = ReconciliationOutcome.FAILED
        except InvalidTransitionError:
            # A concurrent delivery moved the advance first
            await self.advances.session.rollback()
            advance = await self.advances.store.get(advance_id)
            current = AdvanceStatus(advance.status)
            if current is target:
                return self._duplicate(advance, target)
            return self._anomaly(advance, current, target)

        return ReconciliationResult(
            outcome, correlation_id=correlation_id, advance_id=advance_id
        )

    def _duplicate(self, advance: Advance, target: AdvanceStatus) -> ReconciliationResult:
        logger.info(
            "Duplicate %s callback for advance %s ignored", target.value, advance.advance_id
        )
        return ReconciliationResult(
            ReconciliationOutcome.DUPLICATE,
            correlation_id=advance.correlation_id,
            advance_id=advance.advance_id,
            detail=f"already {target.value}",
        )

    def _anomaly(
        self, advance: Advance, current: AdvanceStatus, target: AdvanceStatus
    ) -> ReconciliationResult:
        detail = f"{target.value} callback discarded, advance is {current.value}"
        if target is AdvanceStatus.DISBURSED:
            # Provider paid out an advance we already gave up on
            logger.error("Advance %s: %s; needs manual review", advance.advance_id, detail)
        else:
            logger.warning("Advance %s: %s", advance.advance_id, detail)
        self.advances.emitter.emit(
            CallbackAnomaly(
                advance_id=advance.advance_id,
                employee_id=advance.employee_id,
                occurred_at=self.advances.clock(),
                correlation_id=advance.correlation_id or "",
                current_status=current.value,
                attempted_status=target.value,
            )
        )
        return ReconciliationResult(
            ReconciliationOutcome.ANOMALY,
            correlation_id=advance.correlation_id,
            advance_id=advance.advance_id,
            detail=detail,
        )
