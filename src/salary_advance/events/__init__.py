"""Advance domain events."""

from salary_advance.events.emitter import EventEmitter, log_event
from salary_advance.events.types import (
    AdvanceApproved,
    AdvanceCancelled,
    AdvanceDisbursed,
    AdvanceEvent,
    AdvanceFailed,
    AdvanceRepaid,
    AdvanceRequested,
    CallbackAnomaly,
    DisbursementInitiated,
    EventCategory,
)

__all__ = [
    "EventEmitter",
    "log_event",
    "AdvanceApproved",
    "AdvanceCancelled",
    "AdvanceDisbursed",
    "AdvanceEvent",
    "AdvanceFailed",
    "AdvanceRepaid",
    "AdvanceRequested",
    "CallbackAnomaly",
    "DisbursementInitiated",
    "EventCategory",
]
