"""M-Pesa callback endpoints.

Every endpoint answers with the provider's acceptance body, whatever
happened during reconciliation; the provider retries anything else.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Request

from salary_advance.api.dependencies import Reconciler
from salary_advance.gateway.callbacks import ACCEPTED

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mpesa", tags=["mpesa"])


async def _read_body(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Unparseable M-Pesa callback body on %s", request.url.path)
        return {}


@router.post("/result")
async def b2c_result(request: Request, reconciler: Reconciler) -> dict[str, Any]:
    """B2C result callback."""
    body = await _read_body(request)
    try:
        result = await reconciler.handle_result(body)
        logger.info("M-Pesa result callback: %s %s", result.outcome.value, result.correlation_id)
    except Exception:
        logger.exception("Error processing M-Pesa result callback")
    return dict(ACCEPTED)


@router.post("/timeout")
async def b2c_timeout(request: Request, reconciler: Reconciler) -> dict[str, Any]:
    """B2C queue timeout callback."""
    body = await _read_body(request)
    try:
        result = await reconciler.handle_timeout(body)
        logger.info("M-Pesa timeout callback: %s %s", result.outcome.value, result.correlation_id)
    except Exception:
        logger.exception("Error processing M-Pesa timeout callback")
    return dict(ACCEPTED)


@router.post("/query-result")
async def query_result(request: Request) -> dict[str, Any]:
    """Transaction status query result. Logged only."""
    logger.info("M-Pesa query result: %s", await _read_body(request))
    return dict(ACCEPTED)


@router.post("/query-timeout")
async def query_timeout(request: Request) -> dict[str, Any]:
    """Transaction status query timeout. Logged only."""
    logger.info("M-Pesa query timeout: %s", await _read_body(request))
    return dict(ACCEPTED)


@router.get("/health")
async def callbacks_health() -> dict[str, str]:
    return {"status": "ok", "message": "M-Pesa webhook endpoints active"}
