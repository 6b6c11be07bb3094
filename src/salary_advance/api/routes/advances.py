"""Employee-facing advance endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from salary_advance.api.dependencies import Advances, EmployeeId
from salary_advance.api.schemas import (
    AdvanceActionResponse,
    AdvanceCreate,
    AdvanceListResponse,
    AdvanceResponse,
    BalanceResponse,
    ErrorResponse,
)

router = APIRouter(tags=["advances"])


@router.post(
    "/advances",
    response_model=AdvanceActionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def request_advance(
    service: Advances,
    employee_id: EmployeeId,
    payload: AdvanceCreate,
) -> AdvanceActionResponse:
    """Request an advance against earned wages."""
    outcome = await service.request_advance(employee_id, payload.amount)
    return AdvanceActionResponse(
        advance=AdvanceResponse.model_validate(outcome.advance),
        message=outcome.message,
        disbursement_failed=outcome.disbursement_failed,
    )


@router.get("/advances", response_model=AdvanceListResponse)
async def list_advances(
    service: Advances,
    employee_id: EmployeeId,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> AdvanceListResponse:
    """The employee's advance history, newest first."""
    advances = await service.store.list_for_employee(employee_id, limit=limit)
    return AdvanceListResponse(
        items=[AdvanceResponse.model_validate(a) for a in advances],
        total=len(advances),
    )


@router.get(
    "/advances/{advance_id}",
    response_model=AdvanceResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_advance(
    service: Advances,
    employee_id: EmployeeId,
    advance_id: Annotated[UUID, Path()],
) -> AdvanceResponse:
    """One of the employee's own advances."""
    advance = await service.get_for_employee(employee_id, advance_id)
    return AdvanceResponse.model_validate(advance)


@router.get(
    "/employees/me/balance",
    response_model=BalanceResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_balance(service: Advances, employee_id: EmployeeId) -> BalanceResponse:
    """Earned-to-date and remaining advance capacity for this month."""
    return BalanceResponse.model_validate(await service.balance(employee_id))
