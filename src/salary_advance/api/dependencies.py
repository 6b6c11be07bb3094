"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from salary_advance.database import init_db
from salary_advance.services.advance_service import AdvanceService
from salary_advance.services.reconciler import CallbackReconciler


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


def _parse_uuid(value: str | None, header: str) -> UUID:
    if not value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{header} header is required",
        )
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header} format",
        )


async def get_employee_id(
    x_employee_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract the calling employee's id from header."""
    return _parse_uuid(x_employee_id, "X-Employee-ID")


async def get_employer_id(
    x_employer_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract the calling employer's id from header."""
    return _parse_uuid(x_employer_id, "X-Employer-ID")


DbSession = Annotated[AsyncSession, Depends(get_db_session)]


async def get_advance_service(request: Request, db: DbSession) -> AdvanceService:
    """Advance service wired to the process-wide gateway and emitter."""
    state = request.app.state
    return AdvanceService(
        db,
        gateway=state.gateway,
        emitter=state.emitter,
        disbursement_enabled=state.settings.disbursement_enabled,
        disbursement_timeout=state.settings.gateway.timeout_seconds * 2,
    )


async def get_reconciler(
    service: Annotated[AdvanceService, Depends(get_advance_service)]
) -> CallbackReconciler:
    return CallbackReconciler(service)


# Type aliases for cleaner dependency injection
EmployeeId = Annotated[UUID, Depends(get_employee_id)]
EmployerId = Annotated[UUID, Depends(get_employer_id)]
Advances = Annotated[AdvanceService, Depends(get_advance_service)]
Reconciler = Annotated[CallbackReconciler, Depends(get_reconciler)]
