"""Advance lifecycle service.

Coordinates a request from eligibility through disbursement:
1. Validate the amount and evaluate eligibility
2. Create the advance (pending, or approved under auto-approval)
3. On approval, submit the payout and store the provider's correlation id
4. Apply provider outcomes and payroll repayment as guarded transitions

Every transition is committed before its event is published.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from salary_advance.calculators.money import (
    MAX_AMOUNT,
    advance_fee,
    as_decimal,
    earned_to_date_on,
    floor_cents,
    has_at_most_cents,
    max_advance,
    month_start,
    period_key,
    to_cents,
)
from salary_advance.errors import (
    GatewayError,
    NotFoundError,
    PolicyDenied,
    ValidationError,
)
from salary_advance.events import (
    AdvanceApproved,
    AdvanceCancelled,
    AdvanceDisbursed,
    AdvanceEvent,
    AdvanceFailed,
    AdvanceRepaid,
    AdvanceRequested,
    DisbursementInitiated,
    EventEmitter,
)
from salary_advance.gateway.base import DisbursementGateway, DisbursementRequest
from salary_advance.models import Advance, Employee, utcnow
from salary_advance.services.advance_store import AdvanceStore
from salary_advance.services.eligibility import evaluate, summarize_month
from salary_advance.services.sources import PolicySource, WageSource
from salary_advance.services.state_machine import AdvanceStateMachine, AdvanceStatus

logger = logging.getLogger(__name__)

APPROVED_MESSAGE = "Advance approved! Money will be sent to your M-Pesa shortly."
PENDING_MESSAGE = "Advance request submitted for approval."
PAYMENT_FAILED_MESSAGE = "Payment failed, try later."
DISBURSEMENT_DISABLED_MESSAGE = "Advance approved (disbursement disabled)."
DEFAULT_REJECTION_REASON = "Rejected by employer"


@dataclass(frozen=True)
class AdvanceOutcome:
    """Result of a request or approval."""

    advance: Advance
    message: str
    disbursement_failed: bool = False


@dataclass(frozen=True)
class BalanceSnapshot:
    """An employee's advance capacity for the current month."""

    monthly_salary: Decimal
    earned_to_date: Decimal
    max_advance: Decimal
    total_advanced: Decimal
    available_balance: Decimal
    active_count: int
    max_advances_per_month: int


class AdvanceService:
    """Owns advance status transitions."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        gateway: DisbursementGateway | None = None,
        emitter: EventEmitter | None = None,
        disbursement_enabled: bool = True,
        disbursement_timeout: float = 60.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.store = AdvanceStore(session)
        self.wages = WageSource(session)
        self.policies = PolicySource(session)
        self.gateway = gateway
        self.emitter = emitter or EventEmitter()
        self.disbursement_enabled = disbursement_enabled
        self.disbursement_timeout = disbursement_timeout
        self.clock = clock

    def _publish(self, event: AdvanceEvent) -> None:
        self.emitter.emit(event)

    @staticmethod
    def validate_amount(amount: Decimal | int | str) -> Decimal:
        """Parse a requested amount; positive, whole cents."""
        try:
            value = as_decimal(amount)
        except (TypeError, InvalidOperation) as exc:
            raise ValidationError(f"Invalid amount: {amount!r}") from exc
        if not value.is_finite() or value <= 0:
            raise ValidationError("Amount must be positive")
        if value > MAX_AMOUNT:
            raise ValidationError(f"Amount cannot exceed {MAX_AMOUNT}")
        if not has_at_most_cents(value):
            raise ValidationError("Amount cannot have fractional cents")
        return value

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_for_employee(self, employee_id: UUID, advance_id: UUID) -> Advance:
        advance = await self.store.get(advance_id)
        if advance.employee_id != employee_id:
            raise NotFoundError("Advance", advance_id)
        return advance

    async def get_for_employer(self, employer_id: UUID, advance_id: UUID) -> Advance:
        advance = await self.store.get(advance_id)
        if advance.employer_id != employer_id:
            raise NotFoundError("Advance", advance_id)
        return advance

    async def balance(self, employee_id: UUID) -> BalanceSnapshot:
        """Current-month capacity, as shown on the employee dashboard."""
        employee = await self.wages.get_employee(employee_id)
        policy = await self.policies.get_employer_policy(employee.employer_id)
        now = self.clock()
        earned = earned_to_date_on(as_decimal(employee.monthly_salary), now.date())
        cap = max_advance(earned, policy.max_percentage)
        activity = summarize_month(
            await self.store.requested_since(employee_id, month_start(now))
        )
        available = cap - activity.total_advanced
        return BalanceSnapshot(
            monthly_salary=as_decimal(employee.monthly_salary),
            earned_to_date=to_cents(earned),
            max_advance=floor_cents(cap),
            total_advanced=activity.total_advanced,
            available_balance=floor_cents(available) if available > 0 else Decimal("0.00"),
            active_count=activity.active_count,
            max_advances_per_month=policy.max_advances_per_month,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def request_advance(
        self, employee_id: UUID, amount: Decimal | int | str
    ) -> AdvanceOutcome:
        """Admit and create an advance; disburse at once under auto-approval.

        Raises:
            ValidationError: amount is not a positive whole-cent value.
            NotFoundError: employee or employer missing or inactive.
            PolicyDenied: eligibility rules refused the request.
        """
        value = self.validate_amount(amount)
        employee = await self.wages.get_employee(employee_id)
        policy = await self.policies.get_employer_policy(employee.employer_id)

        now = self.clock()
        earned = earned_to_date_on(as_decimal(employee.monthly_salary), now.date())
        activity = summarize_month(
            await self.store.requested_since(employee_id, month_start(now))
        )
        decision = evaluate(
            active_count=activity.active_count,
            max_advances_per_month=policy.max_advances_per_month,
            earned=earned,
            total_advanced=activity.total_advanced,
            max_percentage=policy.max_percentage,
            requested_amount=value,
        )
        if not decision.admit:
            logger.info(
                "Advance denied for employee %s (%s): %s",
                employee_id,
                decision.code,
                decision.reason,
            )
            raise PolicyDenied(decision.reason or "Advance denied", decision.available_balance)

        fee = to_cents(advance_fee(value, policy.fee_percentage, policy.flat_fee))
        status = AdvanceStateMachine.initial_status(policy.auto_approve)
        advance = Advance(
            employee_id=employee.employee_id,
            employer_id=employee.employer_id,
            payroll_period=period_key(now.date()),
            amount=value,
            fee=fee,
            total_amount=value + fee,
            status=status.value,
            requested_at=now,
            approved_at=now if status is AdvanceStatus.APPROVED else None,
        )
        await self.store.create(advance)
        await self.session.commit()
        logger.info(
            "Advance %s created for employee %s: amount=%s fee=%s status=%s",
            advance.advance_id,
            employee_id,
            value,
            fee,
            status.value,
        )

        self._publish(
            AdvanceRequested(
                advance_id=advance.advance_id,
                employee_id=advance.employee_id,
                occurred_at=now,
                amount=advance.amount,
                fee=advance.fee,
                total_amount=advance.total_amount,
                status=advance.status,
            )
        )
        if status is not AdvanceStatus.APPROVED:
            return AdvanceOutcome(advance, PENDING_MESSAGE)

        self._publish(
            AdvanceApproved(
                advance_id=advance.advance_id,
                employee_id=advance.employee_id,
                occurred_at=now,
                auto_approved=True,
            )
        )
        return await self._disburse(advance, employee)

    async def approve(self, employer_id: UUID, advance_id: UUID) -> AdvanceOutcome:
        """Employer approval of a pending advance, followed by disbursement."""
        advance = await self.get_for_employer(employer_id, advance_id)
        advance = await self.store.update_status(
            advance.advance_id, AdvanceStatus.PENDING, AdvanceStatus.APPROVED
        )
        await self.session.commit()
        logger.info("Advance %s approved by employer %s", advance_id, employer_id)
        self._publish(
            AdvanceApproved(
                advance_id=advance.advance_id,
                employee_id=advance.employee_id,
                occurred_at=self.clock(),
            )
        )
        employee = await self.wages.get_employee(advance.employee_id, active_only=False)
        return await self._disburse(advance, employee)

    async def reject(
        self, employer_id: UUID, advance_id: UUID, reason: str | None = None
    ) -> AdvanceOutcome:
        """Employer rejection; only legal while pending."""
        advance = await self.get_for_employer(employer_id, advance_id)
        text = reason or DEFAULT_REJECTION_REASON
        advance = await self.store.update_status(
            advance.advance_id,
            AdvanceStatus.PENDING,
            AdvanceStatus.CANCELLED,
            failure_reason=text,
        )
        await self.session.commit()
        logger.info("Advance %s rejected: %s", advance_id, text)
        self._publish(
            AdvanceCancelled(
                advance_id=advance.advance_id,
                employee_id=advance.employee_id,
                occurred_at=self.clock(),
                reason=text,
            )
        )
        return AdvanceOutcome(advance, "Advance rejected")

    async def mark_repaid(self, employer_id: UUID, advance_id: UUID) -> Advance:
        """Payroll recovered the advance total from the employee's pay."""
        advance = await self.get_for_employer(employer_id, advance_id)
        advance = await self.store.update_status(
            advance.advance_id, AdvanceStatus.DISBURSED, AdvanceStatus.REPAID
        )
        await self.store.record_transaction(
            advance.advance_id,
            "advance_repayment",
            advance.total_amount,
            metadata={"payroll_period": advance.payroll_period},
        )
        await self.session.commit()
        logger.info("Advance %s repaid", advance_id)
        self._publish(
            AdvanceRepaid(
                advance_id=advance.advance_id,
                employee_id=advance.employee_id,
                occurred_at=self.clock(),
                total_amount=advance.total_amount,
            )
        )
        return advance

    async def confirm_disbursement(
        self, advance: Advance, external_transaction_id: str | None
    ) -> Advance:
        """approved → disbursed, recording the payout and fee."""
        advance = await self.store.update_status(
            advance.advance_id,
            AdvanceStatus.APPROVED,
            AdvanceStatus.DISBURSED,
            external_transaction_id=external_transaction_id,
        )
        metadata = {"external_transaction_id": external_transaction_id}
        await self.store.record_transaction(
            advance.advance_id, "advance_disbursement", advance.amount, metadata=metadata
        )
        if advance.fee > 0:
            await self.store.record_transaction(
                advance.advance_id, "fee", advance.fee, metadata=metadata
            )
        await self.session.commit()
        logger.info(
            "Advance %s disbursed, provider transaction %s",
            advance.advance_id,
            external_transaction_id,
        )
        self._publish(
            AdvanceDisbursed(
                advance_id=advance.advance_id,
                employee_id=advance.employee_id,
                occurred_at=self.clock(),
                external_transaction_id=external_transaction_id,
            )
        )
        return advance

    async def fail(
        self, advance: Advance, from_status: AdvanceStatus, reason: str
    ) -> Advance:
        """pending/approved → failed with a mandatory reason."""
        advance = await self.store.update_status(
            advance.advance_id,
            from_status,
            AdvanceStatus.FAILED,
            failure_reason=reason,
        )
        await self.session.commit()
        logger.warning("Advance %s failed: %s", advance.advance_id, reason)
        self._publish(
            AdvanceFailed(
                advance_id=advance.advance_id,
                employee_id=advance.employee_id,
                occurred_at=self.clock(),
                failure_reason=reason,
            )
        )
        return advance

    async def _disburse(self, advance: Advance, employee: Employee) -> AdvanceOutcome:
        """Submit the payout for an approved advance.

        Any gateway failure marks the advance failed before returning, so
        an approved advance is never left without either a correlation id
        or a failure marker.
        """
        if not self.disbursement_enabled or self.gateway is None:
            return AdvanceOutcome(advance, DISBURSEMENT_DISABLED_MESSAGE)

        request = DisbursementRequest(
            amount=advance.amount,
            phone_number=employee.mpesa_number,
            remarks=f"Salary advance for {employee.full_name}",
            occasion=str(advance.advance_id),
        )
        try:
            receipt = await asyncio.wait_for(
                self.gateway.disburse(request), timeout=self.disbursement_timeout
            )
        except GatewayError as exc:
            reason = str(exc) or "Disbursement failed"
        except asyncio.TimeoutError:
            reason = "Disbursement request timed out"
        else:
            advance = await self.store.attach_correlation_id(
                advance.advance_id, receipt.correlation_id
            )
            await self.session.commit()
            logger.info(
                "Disbursement initiated for advance %s: %s",
                advance.advance_id,
                receipt.correlation_id,
            )
            self._publish(
                DisbursementInitiated(
                    advance_id=advance.advance_id,
                    employee_id=advance.employee_id,
                    occurred_at=self.clock(),
                    correlation_id=receipt.correlation_id,
                )
            )
            return AdvanceOutcome(advance, APPROVED_MESSAGE)

        logger.error("Disbursement failed for advance %s: %s", advance.advance_id, reason)
        advance = await self.fail(advance, AdvanceStatus.APPROVED, reason)
        return AdvanceOutcome(advance, PAYMENT_FAILED_MESSAGE, disbursement_failed=True)
