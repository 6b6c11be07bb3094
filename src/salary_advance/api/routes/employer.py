"""Employer-facing advance endpoints: review, approval and repayment."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from salary_advance.api.dependencies import Advances, EmployerId
from salary_advance.api.schemas import (
    AdvanceActionResponse,
    AdvanceListResponse,
    AdvanceResponse,
    ErrorResponse,
    RejectRequest,
)
from salary_advance.services.advance_service import AdvanceOutcome

router = APIRouter(prefix="/employer", tags=["employer"])

_ERRORS = {404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}}


def _action_response(outcome: AdvanceOutcome) -> AdvanceActionResponse:
    return AdvanceActionResponse(
        advance=AdvanceResponse.model_validate(outcome.advance),
        message=outcome.message,
        disbursement_failed=outcome.disbursement_failed,
    )


@router.get("/advances", response_model=AdvanceListResponse)
async def list_employer_advances(
    service: Advances,
    employer_id: EmployerId,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> AdvanceListResponse:
    """All advances of the employer's staff, optionally by status."""
    advances = await service.store.list_for_employer(employer_id, status=status_filter)
    return AdvanceListResponse(
        items=[AdvanceResponse.model_validate(a) for a in advances],
        total=len(advances),
    )


@router.post(
    "/advances/{advance_id}/approve",
    response_model=AdvanceActionResponse,
    responses=_ERRORS,
)
async def approve_advance(
    service: Advances,
    employer_id: EmployerId,
    advance_id: Annotated[UUID, Path()],
) -> AdvanceActionResponse:
    """Approve a pending advance and start the payout."""
    return _action_response(await service.approve(employer_id, advance_id))


@router.post(
    "/advances/{advance_id}/reject",
    response_model=AdvanceActionResponse,
    responses=_ERRORS,
)
async def reject_advance(
    service: Advances,
    employer_id: EmployerId,
    advance_id: Annotated[UUID, Path()],
    payload: RejectRequest | None = None,
) -> AdvanceActionResponse:
    """Reject a pending advance."""
    reason = payload.reason if payload else None
    return _action_response(await service.reject(employer_id, advance_id, reason))


@router.post(
    "/advances/{advance_id}/repay",
    response_model=AdvanceResponse,
    responses=_ERRORS,
)
async def repay_advance(
    service: Advances,
    employer_id: EmployerId,
    advance_id: Annotated[UUID, Path()],
) -> AdvanceResponse:
    """Record payroll recovery of a disbursed advance."""
    return AdvanceResponse.model_validate(await service.mark_repaid(employer_id, advance_id))
