"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from salary_advance.api.routes import (
    advances_router,
    employer_router,
    health_router,
    mpesa_router,
)
from salary_advance.config import Settings, configure_logging, get_settings
from salary_advance.database import dispose_db
from salary_advance.errors import (
    GatewayError,
    InvalidTransitionError,
    NotFoundError,
    PolicyDenied,
    ValidationError,
)
from salary_advance.events import EventEmitter, log_event
from salary_advance.gateway import DisbursementGateway, MpesaB2CClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    yield
    gateway = app.state.gateway
    if isinstance(gateway, MpesaB2CClient):
        await gateway.aclose()
    await dispose_db()


def _error(status_code: int, detail: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, "code": code})


def create_app(
    settings: Settings | None = None,
    *,
    gateway: DisbursementGateway | None = None,
    emitter: EventEmitter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The gateway client is built once here and shared by every request so
    its token cache is process-wide.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if gateway is None and settings.disbursement_enabled:
        gateway = MpesaB2CClient(settings.gateway)
    if emitter is None:
        emitter = EventEmitter()
        emitter.on_all(log_event)

    app = FastAPI(
        title="Salary Advance API",
        description="Earned-wage advances with mobile-money disbursement",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.emitter = emitter

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc), "VALIDATION_ERROR")

    @app.exception_handler(PolicyDenied)
    async def policy_denied_handler(request: Request, exc: PolicyDenied) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, exc.reason, "POLICY_DENIED")

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, f"{exc.entity} not found", "NOT_FOUND")

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition_handler(
        request: Request, exc: InvalidTransitionError
    ) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc), "INVALID_TRANSITION")

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        return _error(status.HTTP_502_BAD_GATEWAY, str(exc), "GATEWAY_ERROR")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred",
            "INTERNAL_ERROR",
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(advances_router, prefix="/api/v1")
    app.include_router(employer_router, prefix="/api/v1")
    app.include_router(mpesa_router, prefix="/api/v1")

    return app
