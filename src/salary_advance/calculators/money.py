"""Money and fee arithmetic for advances.

All functions are pure and operate on Decimal. Floats are rejected so
that repeated sums reconcile to the cent.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ONE_HUNDRED = Decimal("100")
# Largest value a Numeric(12, 2) money column holds
MAX_AMOUNT = Decimal("9999999999.99")


def as_decimal(value: Decimal | int | str) -> Decimal:
    """Coerce an int/str/Decimal to Decimal, refusing binary floats."""
    if isinstance(value, float):
        raise TypeError("float amounts are not accepted; use Decimal or str")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_cents(amount: Decimal) -> Decimal:
    """Round to whole cents, half up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def floor_cents(amount: Decimal) -> Decimal:
    """Truncate to whole cents. Used for balances shown to employees."""
    return amount.quantize(CENT, rounding=ROUND_DOWN)


def has_at_most_cents(amount: Decimal) -> bool:
    """True when the amount has no fractional cents."""
    return amount == amount.quantize(CENT)


def earned_to_date(
    monthly_salary: Decimal, day_of_month: int, days_in_month: int
) -> Decimal:
    """Pro-rata salary for the elapsed calendar days of the month.

    Linear accrual: every calendar day earns salary / days_in_month.
    """
    if days_in_month <= 0:
        raise ValueError("days_in_month must be positive")
    if not 0 <= day_of_month <= days_in_month:
        raise ValueError("day_of_month must be between 0 and days_in_month")
    salary = as_decimal(monthly_salary)
    return salary * Decimal(day_of_month) / Decimal(days_in_month)


def max_advance(earned: Decimal, max_percentage: Decimal = Decimal("50")) -> Decimal:
    """Largest amount that may be advanced against earned wages."""
    return as_decimal(earned) * as_decimal(max_percentage) / ONE_HUNDRED


def advance_fee(
    amount: Decimal, fee_percentage: Decimal, flat_fee: Decimal = Decimal("0")
) -> Decimal:
    """Percentage fee plus flat fee. The two parts are independent."""
    percentage_fee = as_decimal(amount) * as_decimal(fee_percentage) / ONE_HUNDRED
    return percentage_fee + as_decimal(flat_fee)


def net_pay(gross_pay: Decimal, deductions: Decimal) -> Decimal:
    """Gross minus deductions. Negative results are returned as-is."""
    return as_decimal(gross_pay) - as_decimal(deductions)


def days_in_month(on: date) -> int:
    return calendar.monthrange(on.year, on.month)[1]


def month_start(on: date) -> datetime:
    """Midnight UTC on the first day of the month containing `on`."""
    return datetime(on.year, on.month, 1, tzinfo=timezone.utc)


def period_key(on: date) -> str:
    """Calendar-month payroll period key, e.g. '2026-10'."""
    return f"{on.year:04d}-{on.month:02d}"


def earned_to_date_on(monthly_salary: Decimal, on: date) -> Decimal:
    """earned_to_date for a calendar date."""
    return earned_to_date(monthly_salary, on.day, days_in_month(on))
