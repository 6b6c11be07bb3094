"""Read-only collaborator data: wages and employer policy."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from salary_advance.calculators.money import as_decimal, earned_to_date_on
from salary_advance.errors import NotFoundError
from salary_advance.models import Employee, Employer


@dataclass(frozen=True)
class EmployerPolicy:
    """Employer advance policy snapshot."""

    auto_approve: bool = True
    max_percentage: Decimal = Decimal("50")
    max_advances_per_month: int = 4
    fee_percentage: Decimal = Decimal("4")
    flat_fee: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        if not Decimal("0") <= self.max_percentage <= Decimal("100"):
            raise ValueError("max_percentage must be between 0 and 100")
        if self.max_advances_per_month < 1:
            raise ValueError("max_advances_per_month must be positive")
        if self.fee_percentage < 0 or self.flat_fee < 0:
            raise ValueError("fees cannot be negative")

    @classmethod
    def from_employer(cls, employer: Employer) -> EmployerPolicy:
        return cls(
            auto_approve=employer.auto_approve_advances,
            max_percentage=as_decimal(employer.max_advance_percentage),
            max_advances_per_month=employer.max_advances_per_month,
            fee_percentage=as_decimal(employer.fee_percentage),
            flat_fee=as_decimal(employer.flat_fee),
        )


class PolicySource:
    """Employer policy lookup."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_employer(self, employer_id: UUID) -> Employer:
        employer = await self.session.get(Employer, employer_id)
        if employer is None or not employer.is_active:
            raise NotFoundError("Employer", employer_id)
        return employer

    async def get_employer_policy(self, employer_id: UUID) -> EmployerPolicy:
        return EmployerPolicy.from_employer(await self.get_employer(employer_id))


class WageSource:
    """Employee wage lookup under the linear accrual model."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_employee(self, employee_id: UUID, *, active_only: bool = True) -> Employee:
        employee = await self.session.get(Employee, employee_id)
        if employee is None or (active_only and not employee.is_active):
            raise NotFoundError("Employee", employee_id)
        return employee

    async def earned_to_date(self, employee_id: UUID, on: date) -> Decimal:
        employee = await self.get_employee(employee_id)
        return earned_to_date_on(as_decimal(employee.monthly_salary), on)
