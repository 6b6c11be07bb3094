"""API routes."""

from salary_advance.api.routes.advances import router as advances_router
from salary_advance.api.routes.employer import router as employer_router
from salary_advance.api.routes.health import router as health_router
from salary_advance.api.routes.mpesa import router as mpesa_router

__all__ = ["advances_router", "employer_router", "health_router", "mpesa_router"]
