"""Advance eligibility policy.

Decides whether a requested advance may be created. The rules are
evaluated in order and the first failing rule wins:

1. Monthly advance count limit
2. Percentage cap already reached
3. Requested amount larger than what remains under the cap

Evaluation is advisory; it never mutates state.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from salary_advance.calculators.money import as_decimal, floor_cents, max_advance
from salary_advance.services.state_machine import AdvanceStateMachine

ZERO = Decimal("0")


class DenialCode:
    COUNT_LIMIT = "ADVANCE_COUNT_LIMIT"
    PERCENTAGE_CAP = "PERCENTAGE_CAP_REACHED"
    EXCEEDS_AVAILABLE = "EXCEEDS_AVAILABLE_BALANCE"


@dataclass(frozen=True)
class EligibilityDecision:
    """Result of an eligibility evaluation."""

    admit: bool
    available_balance: Decimal
    reason: str | None = None
    code: str | None = None


@dataclass(frozen=True)
class MonthActivity:
    """Capacity used by an employee's advances in the current month."""

    active_count: int = 0
    total_advanced: Decimal = ZERO


class _HasStatusAndTotal(Protocol):
    status: str
    total_amount: Decimal


def summarize_month(advances: Iterable[_HasStatusAndTotal]) -> MonthActivity:
    """Count and sum the month's advances, skipping failed and cancelled ones.

    The sum is over total_amount (principal plus fee), the amount that
    will be recovered from payroll.
    """
    count = 0
    total = ZERO
    for advance in advances:
        if not AdvanceStateMachine.counts_toward_limits(advance.status):
            continue
        count += 1
        total += as_decimal(advance.total_amount)
    return MonthActivity(active_count=count, total_advanced=total)


def _fmt_percent(value: Decimal) -> str:
    return format(as_decimal(value).normalize(), "f")


def evaluate(
    *,
    active_count: int,
    max_advances_per_month: int,
    earned: Decimal,
    total_advanced: Decimal,
    max_percentage: Decimal,
    requested_amount: Decimal,
) -> EligibilityDecision:
    """Evaluate an advance request against the employer's limits."""
    cap = max_advance(earned, max_percentage)
    remaining = cap - as_decimal(total_advanced)
    available = remaining if remaining > ZERO else ZERO

    if active_count >= max_advances_per_month:
        return EligibilityDecision(
            admit=False,
            available_balance=available,
            reason=f"You've reached the maximum of {max_advances_per_month} advances per month",
            code=DenialCode.COUNT_LIMIT,
        )

    if as_decimal(total_advanced) >= cap:
        return EligibilityDecision(
            admit=False,
            available_balance=available,
            reason=(
                "You've already advanced the maximum amount "
                f"({_fmt_percent(max_percentage)}% of earned wages)"
            ),
            code=DenialCode.PERCENTAGE_CAP,
        )

    if as_decimal(requested_amount) > remaining:
        return EligibilityDecision(
            admit=False,
            available_balance=available,
            reason=(
                "Amount exceeds available balance. "
                f"You can withdraw up to {floor_cents(available)}"
            ),
            code=DenialCode.EXCEEDS_AVAILABLE,
        )

    return EligibilityDecision(admit=True, available_balance=available)
