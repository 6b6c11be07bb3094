"""Base protocol and types for disbursement gateways.

All gateway adapters must implement the DisbursementGateway protocol.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Protocol

from salary_advance.errors import GatewayError

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class DisbursementRequest:
    """A single business-to-customer payout."""

    amount: Decimal
    phone_number: str
    remarks: str
    occasion: str  # advance id, echoed back by the provider


@dataclass(frozen=True)
class DisbursementReceipt:
    """Synchronous acknowledgement of a submitted payout."""

    conversation_id: str
    originator_conversation_id: str
    response_code: str = "0"
    response_description: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def correlation_id(self) -> str:
        """Key the result callback will be matched on."""
        return self.originator_conversation_id or self.conversation_id


class DisbursementGateway(Protocol):
    """Protocol for mobile-money payout adapters.

    Implementations must not retry internally: a blind retry can pay the
    same advance twice. Failures surface as GatewayError.
    """

    provider_name: str

    async def disburse(self, request: DisbursementRequest) -> DisbursementReceipt:
        """Submit a payout and return the provider's conversation ids."""
        ...


def whole_units(amount: Decimal) -> int:
    """Round an amount to whole currency units, half up.

    The provider rejects fractional amounts.
    """
    units = int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if units < 1:
        raise GatewayError(f"Amount {amount} is below one whole currency unit")
    return units


def normalize_msisdn(phone_number: str, country_code: str = "254") -> str:
    """Wire form of a phone number: digits only, country code first.

    '+254712345678' -> '254712345678'
    '0712345678'    -> '254712345678'
    '712345678'     -> '254712345678'
    """
    digits = _NON_DIGITS.sub("", phone_number)
    if not digits:
        raise GatewayError(f"Invalid phone number: {phone_number!r}")
    if digits.startswith(country_code):
        return digits
    if digits.startswith("0"):
        return country_code + digits[1:]
    return country_code + digits


def format_phone_number(phone_number: str, country_code: str = "254") -> str:
    """Display form of a phone number, e.g. '+254712345678'."""
    return "+" + normalize_msisdn(phone_number, country_code)
