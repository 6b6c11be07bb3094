"""Employer and employee models.

Record management for these lives outside the advance engine; the engine
only reads salary, payout number and the employer's advance policy.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from salary_advance.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from salary_advance.models.advance import Advance


class Employer(Base, TimestampMixin):
    """Employing company and its advance policy."""

    __tablename__ = "employer"

    employer_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_name: Mapped[str] = mapped_column(String, nullable=False)
    company_email: Mapped[str | None] = mapped_column(String, nullable=True)
    company_phone: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Advance policy
    auto_approve_advances: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    max_advance_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("50")
    )
    max_advances_per_month: Mapped[int] = mapped_column(
        Integer, nullable=False, default=4
    )
    fee_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("4")
    )
    flat_fee: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        CheckConstraint(
            "max_advance_percentage >= 0 AND max_advance_percentage <= 100",
            name="employer_max_advance_percentage_check",
        ),
        CheckConstraint(
            "max_advances_per_month > 0",
            name="employer_max_advances_per_month_check",
        ),
        CheckConstraint(
            "fee_percentage >= 0 AND flat_fee >= 0",
            name="employer_fee_check",
        ),
    )

    # Relationships
    employees: Mapped[list[Employee]] = relationship(back_populates="employer")


class Employee(Base, TimestampMixin):
    """Salaried employee eligible for advances."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employer_id: Mapped[UUID] = mapped_column(
        ForeignKey("employer.employer_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_number: Mapped[str] = mapped_column(String, nullable=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    phone_number: Mapped[str] = mapped_column(String, nullable=False)
    mpesa_number: Mapped[str] = mapped_column(String, nullable=False)
    monthly_salary: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("monthly_salary >= 0", name="employee_salary_check"),
    )

    # Relationships
    employer: Mapped[Employer] = relationship(back_populates="employees")
    advances: Mapped[list[Advance]] = relationship(back_populates="employee")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
