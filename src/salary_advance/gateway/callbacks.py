"""Parsing of asynchronous provider result/timeout callbacks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

SUCCESS_CODE = 0
ACCEPTED = {"ResultCode": 0, "ResultDesc": "Accepted"}


@dataclass(frozen=True)
class ProviderCallback:
    """Normalized B2C result or timeout notification."""

    result_code: int | None
    result_desc: str | None
    originator_conversation_id: str | None
    conversation_id: str | None
    transaction_id: str | None
    parameters: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.result_code == SUCCESS_CODE

    @property
    def correlation_ids(self) -> list[str]:
        """Candidate keys, most specific first."""
        return [
            cid
            for cid in (self.originator_conversation_id, self.conversation_id)
            if cid
        ]


def _parameters(result: dict[str, Any]) -> dict[str, Any]:
    container = result.get("ResultParameters") or {}
    entries = container.get("ResultParameter") or []
    # A single parameter arrives as an object, not a list
    if isinstance(entries, dict):
        entries = [entries]
    params: dict[str, Any] = {}
    for entry in entries:
        if isinstance(entry, dict) and "Key" in entry:
            params[str(entry["Key"])] = entry.get("Value")
    return params


def _code(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_callback(body: Any) -> ProviderCallback:
    """Extract the fields the reconciler needs from a callback body.

    Missing or malformed sections yield None fields rather than errors;
    the provider must always receive an acknowledgement.
    """
    result = body.get("Result") if isinstance(body, dict) else None
    if not isinstance(result, dict):
        result = {}
    params = _parameters(result)
    transaction_id = params.get("TransactionID") or result.get("TransactionID")
    return ProviderCallback(
        result_code=_code(result.get("ResultCode")),
        result_desc=result.get("ResultDesc"),
        originator_conversation_id=result.get("OriginatorConversationID"),
        conversation_id=result.get("ConversationID"),
        transaction_id=str(transaction_id) if transaction_id else None,
        parameters=params,
    )
