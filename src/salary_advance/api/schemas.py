"""Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


# ============================================================================
# Advance schemas
# ============================================================================


class AdvanceCreate(BaseModel):
    """Schema for requesting an advance."""

    amount: Decimal


class AdvanceResponse(BaseModel):
    """Public fields of an advance."""

    model_config = ConfigDict(from_attributes=True)

    advance_id: UUID
    employee_id: UUID
    employer_id: UUID
    payroll_period: str
    amount: Decimal
    fee: Decimal
    total_amount: Decimal
    status: str
    requested_at: datetime
    approved_at: datetime | None = None
    disbursed_at: datetime | None = None
    failed_at: datetime | None = None
    repaid_at: datetime | None = None
    failure_reason: str | None = None
    correlation_id: str | None = None
    external_transaction_id: str | None = None


class AdvanceActionResponse(BaseModel):
    """Advance plus the message shown to the user."""

    advance: AdvanceResponse
    message: str
    disbursement_failed: bool = False


class AdvanceListResponse(BaseModel):
    """Schema for listing advances."""

    items: list[AdvanceResponse]
    total: int


class RejectRequest(BaseModel):
    """Employer rejection of a pending advance."""

    reason: str | None = None


# ============================================================================
# Balance schemas
# ============================================================================


class BalanceResponse(BaseModel):
    """Employee dashboard figures for the current month."""

    model_config = ConfigDict(from_attributes=True)

    monthly_salary: Decimal
    earned_to_date: Decimal
    max_advance: Decimal
    total_advanced: Decimal
    available_balance: Decimal
    active_count: int
    max_advances_per_month: int


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    code: str | None = None
