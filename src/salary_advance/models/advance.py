"""Advance and advance transaction models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from salary_advance.models.base import Base, TimestampMixin, utcnow

if TYPE_CHECKING:
    from salary_advance.models.employer import Employee


class Advance(Base, TimestampMixin):
    """A draw against earned but unpaid wages.

    Rows are never deleted. Status changes go through
    AdvanceStore.update_status, which guards on the current status.
    """

    __tablename__ = "advance"

    advance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    employer_id: Mapped[UUID] = mapped_column(
        ForeignKey("employer.employer_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    payroll_period: Mapped[str] = mapped_column(String(7), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")

    requested_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    disbursed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    repaid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    correlation_id: Mapped[str | None] = mapped_column(
        String, nullable=True, unique=True
    )
    external_transaction_id: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'disbursed', 'failed', 'cancelled', 'repaid')",
            name="advance_status_check",
        ),
        CheckConstraint("amount > 0", name="advance_amount_positive"),
        CheckConstraint("fee >= 0", name="advance_fee_non_negative"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="advances")
    transactions: Mapped[list[AdvanceTransaction]] = relationship(
        back_populates="advance", order_by="AdvanceTransaction.created_at"
    )


class AdvanceTransaction(Base, TimestampMixin):
    """Append-only money movement record for an advance."""

    __tablename__ = "advance_transaction"

    advance_transaction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    advance_id: Mapped[UUID] = mapped_column(
        ForeignKey("advance.advance_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    transaction_type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="completed")
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "transaction_type IN ('advance_disbursement', 'advance_repayment', 'fee')",
            name="advance_transaction_type_check",
        ),
        CheckConstraint(
            "status IN ('pending', 'completed', 'failed')",
            name="advance_transaction_status_check",
        ),
    )

    # Relationships
    advance: Mapped[Advance] = relationship(back_populates="transactions")
