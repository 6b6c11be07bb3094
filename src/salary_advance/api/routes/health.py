"""Service status endpoints.

`/health` reports the database and the disbursement channel, `/ready`
answers 503 until the database accepts queries, `/live` only confirms
the process is serving requests.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from salary_advance import __version__
from salary_advance.api.dependencies import DbSession

router = APIRouter(tags=["health"])


class DisbursementStatus(BaseModel):
    """Whether approvals trigger payouts, and through which provider."""

    enabled: bool
    provider: str | None = None


class HealthResponse(BaseModel):
    """Service status."""

    status: str
    version: str
    timestamp: datetime
    database: str
    disbursement: DisbursementStatus


class ReadinessResponse(BaseModel):
    ready: bool
    database: str


async def _database_status(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        return "unreachable"
    return "ok"


def _disbursement_status(request: Request) -> DisbursementStatus:
    gateway = request.app.state.gateway
    enabled = request.app.state.settings.disbursement_enabled and gateway is not None
    return DisbursementStatus(
        enabled=enabled,
        provider=gateway.provider_name if gateway is not None else None,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request, db: DbSession) -> HealthResponse:
    """Database reachability and disbursement channel."""
    database = await _database_status(db)
    return HealthResponse(
        status="ok" if database == "ok" else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        database=database,
        disbursement=_disbursement_status(request),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(db: DbSession, response: Response) -> ReadinessResponse:
    """Ready to take advance requests once the database answers."""
    database = await _database_status(db)
    if database != "ok":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(ready=database == "ok", database=database)


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive", "version": __version__}
