"""Salary advance services."""

from salary_advance.services.state_machine import AdvanceStateMachine, AdvanceStatus
from salary_advance.services.eligibility import (
    EligibilityDecision,
    MonthActivity,
    evaluate,
    summarize_month,
)
from salary_advance.services.advance_store import AdvanceStore
from salary_advance.services.sources import EmployerPolicy, PolicySource, WageSource
from salary_advance.services.advance_service import (
    AdvanceOutcome,
    AdvanceService,
    BalanceSnapshot,
)
from salary_advance.services.reconciler import (
    CallbackReconciler,
    ReconciliationOutcome,
    ReconciliationResult,
)

__all__ = [
    "AdvanceStateMachine",
    "AdvanceStatus",
    "EligibilityDecision",
    "MonthActivity",
    "evaluate",
    "summarize_month",
    "AdvanceStore",
    "EmployerPolicy",
    "PolicySource",
    "WageSource",
    "AdvanceOutcome",
    "AdvanceService",
    "BalanceSnapshot",
    "CallbackReconciler",
    "ReconciliationOutcome",
    "ReconciliationResult",
]
