"""Pure money calculators."""

from salary_advance.calculators.money import (
    MAX_AMOUNT,
    advance_fee,
    as_decimal,
    days_in_month,
    earned_to_date,
    earned_to_date_on,
    floor_cents,
    has_at_most_cents,
    max_advance,
    month_start,
    net_pay,
    period_key,
    to_cents,
)

__all__ = [
    "MAX_AMOUNT",
    "advance_fee",
    "as_decimal",
    "days_in_month",
    "earned_to_date",
    "earned_to_date_on",
    "floor_cents",
    "has_at_most_cents",
    "max_advance",
    "month_start",
    "net_pay",
    "period_key",
    "to_cents",
]
