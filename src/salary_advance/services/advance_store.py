"""Advance persistence with guarded status transitions.

Every status change is a single UPDATE conditioned on the status the
caller expects. Zero updated rows means another flow got there first,
and the change is refused rather than overwriting.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from salary_advance.errors import InvalidTransitionError, NotFoundError
from salary_advance.models import Advance, AdvanceTransaction, utcnow
from salary_advance.services.state_machine import AdvanceStateMachine, AdvanceStatus


class AdvanceStore:
    """Create/read/update access to advance rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, advance: Advance) -> Advance:
        self.session.add(advance)
        await self.session.flush()
        return advance

    async def find(self, advance_id: UUID) -> Advance | None:
        return await self.session.get(Advance, advance_id, populate_existing=True)

    async def get(self, advance_id: UUID) -> Advance:
        advance = await self.find(advance_id)
        if advance is None:
            raise NotFoundError("Advance", advance_id)
        return advance

    async def get_by_correlation_id(self, *correlation_ids: str) -> Advance | None:
        """First advance matching any of the ids, tried in order."""
        for correlation_id in correlation_ids:
            if not correlation_id:
                continue
            result = await self.session.execute(
                select(Advance)
                .where(Advance.correlation_id == correlation_id)
                .execution_options(populate_existing=True)
            )
            advance = result.scalar_one_or_none()
            if advance is not None:
                return advance
        return None

    async def list_for_employee(
        self, employee_id: UUID, *, limit: int | None = None
    ) -> list[Advance]:
        query = (
            select(Advance)
            .where(Advance.employee_id == employee_id)
            .order_by(Advance.requested_at.desc())
        )
        if limit:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_for_employer(
        self, employer_id: UUID, *, status: str | None = None
    ) -> list[Advance]:
        query = select(Advance).where(Advance.employer_id == employer_id)
        if status:
            query = query.where(Advance.status == status)
        result = await self.session.execute(query.order_by(Advance.requested_at.desc()))
        return list(result.scalars().all())

    async def requested_since(self, employee_id: UUID, since: datetime) -> list[Advance]:
        """All of an employee's advances requested at or after `since`."""
        result = await self.session.execute(
            select(Advance).where(
                Advance.employee_id == employee_id,
                Advance.requested_at >= since,
            )
        )
        return list(result.scalars().all())

    async def _current_status(self, advance_id: UUID) -> str | None:
        return await self.session.scalar(
            select(Advance.status).where(Advance.advance_id == advance_id)
        )

    async def update_status(
        self,
        advance_id: UUID,
        from_status: AdvanceStatus,
        to_status: AdvanceStatus,
        **fields: Any,
    ) -> Advance:
        """Move an advance from `from_status` to `to_status`.

        Stamps the timestamp column for the target status and writes any
        extra `fields` in the same statement.
        """
        AdvanceStateMachine.validate_transition(
            from_status, to_status, failure_reason=fields.get("failure_reason")
        )

        values: dict[str, Any] = {"status": to_status.value, **fields}
        stamp = AdvanceStateMachine.TIMESTAMP_FIELDS.get(to_status)
        if stamp and stamp not in values:
            values[stamp] = utcnow()

        result = await self.session.execute(
            update(Advance)
            .where(
                Advance.advance_id == advance_id,
                Advance.status == from_status.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current = await self._current_status(advance_id)
            if current is None:
                raise NotFoundError("Advance", advance_id)
            raise InvalidTransitionError(
                current, to_status.value, f"expected status '{from_status.value}'"
            )
        return await self.get(advance_id)

    async def attach_correlation_id(self, advance_id: UUID, correlation_id: str) -> Advance:
        """Store the provider's conversation id on an approved advance.

        Refused once an id is set or the advance has left `approved`.
        """
        result = await self.session.execute(
            update(Advance)
            .where(
                Advance.advance_id == advance_id,
                Advance.status == AdvanceStatus.APPROVED.value,
                Advance.correlation_id.is_(None),
            )
            .values(correlation_id=correlation_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current = await self._current_status(advance_id)
            if current is None:
                raise NotFoundError("Advance", advance_id)
            raise InvalidTransitionError(
                current, current, "correlation id can only be set once while approved"
            )
        return await self.get(advance_id)

    async def record_transaction(
        self,
        advance_id: UUID,
        transaction_type: str,
        amount: Decimal,
        *,
        status: str = "completed",
        metadata: dict[str, Any] | None = None,
    ) -> AdvanceTransaction:
        """Append a money movement to the advance's history."""
        entry = AdvanceTransaction(
            advance_id=advance_id,
            transaction_type=transaction_type,
            amount=amount,
            status=status,
            metadata_json=metadata or {},
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def transactions(self, advance_id: UUID) -> list[AdvanceTransaction]:
        result = await self.session.execute(
            select(AdvanceTransaction)
            .where(AdvanceTransaction.advance_id == advance_id)
            .order_by(AdvanceTransaction.created_at)
        )
        return list(result.scalars().all())
