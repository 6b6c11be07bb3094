"""M-Pesa B2C disbursement client.

Construct one instance at process start and share it. The bearer token
is cached on the instance and refreshed lazily when it expires; a lock
ensures only one refresh is in flight at a time.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from salary_advance.config import GatewayConfig
from salary_advance.errors import GatewayError
from salary_advance.gateway.base import (
    DisbursementReceipt,
    DisbursementRequest,
    normalize_msisdn,
    whole_units,
)

logger = logging.getLogger(__name__)

# Tokens are valid for an hour; treat them as stale after 50 minutes
TOKEN_TTL_SECONDS = 50 * 60


def _error_text(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return response.text or None
    if isinstance(data, dict):
        return data.get("errorMessage") or data.get("ResponseDescription")
    return None


class MpesaB2CClient:
    """Business-to-customer payment client for the M-Pesa API."""

    provider_name = "mpesa"

    def __init__(
        self,
        config: GatewayConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout_seconds)
        self._owns_http = http_client is None
        self._clock = clock
        self._token: str | None = None
        self._token_expiry = 0.0
        self._token_lock = asyncio.Lock()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def _cached_token(self) -> str | None:
        if self._token and self._clock() < self._token_expiry:
            return self._token
        return None

    async def get_access_token(self) -> str:
        """Return a valid bearer token, fetching one if the cache is stale."""
        token = self._cached_token()
        if token:
            return token

        async with self._token_lock:
            # Another caller may have refreshed while we waited
            token = self._cached_token()
            if token:
                return token

            try:
                response = await self._http.get(
                    f"{self.config.base_url}/oauth/v1/generate",
                    params={"grant_type": "client_credentials"},
                    auth=(self.config.consumer_key, self.config.consumer_secret),
                    timeout=self.config.timeout_seconds,
                )
                response.raise_for_status()
                token = response.json()["access_token"]
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "M-Pesa auth error: %s %s",
                    exc.response.status_code,
                    _error_text(exc.response),
                )
                raise GatewayError("Failed to authenticate with M-Pesa") from exc
            except (httpx.HTTPError, KeyError, ValueError) as exc:
                logger.error("M-Pesa auth error: %s", exc)
                raise GatewayError("Failed to authenticate with M-Pesa") from exc

            self._token = token
            self._token_expiry = self._clock() + TOKEN_TTL_SECONDS
            return token

    def invalidate_token(self) -> None:
        self._token = None
        self._token_expiry = 0.0

    async def _post(self, path: str, payload: dict[str, Any], default_error: str) -> dict[str, Any]:
        token = await self.get_access_token()
        try:
            response = await self._http.post(
                f"{self.config.base_url}{path}",
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.config.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            logger.error("M-Pesa request to %s timed out", path)
            raise GatewayError("M-Pesa request timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("M-Pesa request to %s failed: %s", path, exc)
            raise GatewayError(default_error) from exc

        if response.status_code == 401:
            self.invalidate_token()
        if response.is_error:
            message = _error_text(response) or default_error
            logger.error("M-Pesa %s error %s: %s", path, response.status_code, message)
            raise GatewayError(message)

        try:
            data = response.json()
        except ValueError as exc:
            raise GatewayError(default_error) from exc
        if not isinstance(data, dict):
            raise GatewayError(default_error)
        return data

    async def disburse(self, request: DisbursementRequest) -> DisbursementReceipt:
        """Submit a B2C payment. Never retried here."""
        payload = {
            "InitiatorName": self.config.initiator_name,
            "SecurityCredential": self.config.security_credential,
            "CommandID": "BusinessPayment",
            "Amount": whole_units(request.amount),
            "PartyA": self.config.shortcode,
            "PartyB": normalize_msisdn(request.phone_number, self.config.country_code),
            "Remarks": request.remarks,
            "QueueTimeOutURL": self.config.timeout_url,
            "ResultURL": self.config.result_url,
            "Occasion": request.occasion,
        }
        data = await self._post(
            "/mpesa/b2c/v1/paymentrequest", payload, "Failed to send M-Pesa payment"
        )

        response_code = str(data.get("ResponseCode", ""))
        if response_code != "0":
            raise GatewayError(
                data.get("ResponseDescription") or "Failed to send M-Pesa payment"
            )
        conversation_id = data.get("ConversationID") or ""
        originator_id = data.get("OriginatorConversationID") or ""
        if not (conversation_id or originator_id):
            raise GatewayError("M-Pesa response carried no conversation id")

        logger.info(
            "M-Pesa B2C accepted for occasion %s: %s", request.occasion, originator_id
        )
        return DisbursementReceipt(
            conversation_id=conversation_id,
            originator_conversation_id=originator_id,
            response_code=response_code,
            response_description=data.get("ResponseDescription", ""),
            raw=data,
        )

    async def query_transaction_status(self, transaction_id: str) -> dict[str, Any]:
        """Ask the provider to report a transaction's status.

        The answer arrives asynchronously on the query-result callback.
        """
        payload = {
            "Initiator": self.config.initiator_name,
            "SecurityCredential": self.config.security_credential,
            "CommandID": "TransactionStatusQuery",
            "TransactionID": transaction_id,
            "PartyA": self.config.shortcode,
            "IdentifierType": "4",
            "ResultURL": f"{self.config.callback_url.rstrip('/')}/query-result",
            "QueueTimeOutURL": f"{self.config.callback_url.rstrip('/')}/query-timeout",
            "Remarks": "Transaction status query",
            "Occasion": "Status check",
        }
        return await self._post(
            "/mpesa/transactionstatus/v1/query",
            payload,
            "Failed to query transaction status",
        )
