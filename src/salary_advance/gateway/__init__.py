"""Disbursement gateway adapters."""

from salary_advance.gateway.base import (
    DisbursementGateway,
    DisbursementReceipt,
    DisbursementRequest,
    format_phone_number,
    normalize_msisdn,
    whole_units,
)
from salary_advance.gateway.callbacks import ProviderCallback, parse_callback
from salary_advance.gateway.mpesa import MpesaB2CClient
from salary_advance.gateway.stub import StubGateway

__all__ = [
    "DisbursementGateway",
    "DisbursementReceipt",
    "DisbursementRequest",
    "format_phone_number",
    "normalize_msisdn",
    "whole_units",
    "ProviderCallback",
    "parse_callback",
    "MpesaB2CClient",
    "StubGateway",
]
