"""In-process gateway for development and testing.

Records submissions instead of moving money. Can be told to fail the
next submission to exercise failure handling.
"""

from __future__ import annotations

import uuid

from salary_advance.errors import GatewayError
from salary_advance.gateway.base import (
    DisbursementReceipt,
    DisbursementRequest,
    whole_units,
)


class StubGateway:
    """Stub disbursement gateway."""

    provider_name = "stub"

    def __init__(self) -> None:
        self.submitted: list[DisbursementRequest] = []
        self.receipts: list[DisbursementReceipt] = []
        self._fail_with: str | None = None

    def fail_next(self, message: str = "Stub gateway failure") -> None:
        """Make the next disburse() call raise GatewayError(message)."""
        self._fail_with = message

    async def disburse(self, request: DisbursementRequest) -> DisbursementReceipt:
        if self._fail_with is not None:
            message, self._fail_with = self._fail_with, None
            raise GatewayError(message)

        whole_units(request.amount)
        self.submitted.append(request)
        token = uuid.uuid4().hex[:12]
        receipt = DisbursementReceipt(
            conversation_id=f"AG_{token}",
            originator_conversation_id=f"STUB-{token}",
            response_code="0",
            response_description="Accept the service request successfully.",
        )
        self.receipts.append(receipt)
        return receipt

