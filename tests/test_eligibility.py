"""Tests for advance eligibility rules."""

from dataclasses import dataclass
from decimal import Decimal

from salary_advance.services.eligibility import (
    DenialCode,
    MonthActivity,
    evaluate,
    summarize_month,
)


def _evaluate(**overrides):
    params = {
        "active_count": 0,
        "max_advances_per_month": 4,
        "earned": Decimal("20000"),
        "total_advanced": Decimal("0"),
        "max_percentage": Decimal("50"),
        "requested_amount": Decimal("1000"),
    }
    params.update(overrides)
    return evaluate(**params)


@dataclass
class _Row:
    status: str
    total_amount: Decimal


class TestEvaluate:
    """Rule order and denial reasons."""

    def test_admits_within_limits(self):
        decision = _evaluate()
        assert decision.admit is True
        assert decision.reason is None
        assert decision.available_balance == Decimal("10000")

    def test_count_limit(self):
        """Fifth advance in a month with a limit of 4 is denied naming the limit."""
        decision = _evaluate(active_count=4)
        assert decision.admit is False
        assert decision.code == DenialCode.COUNT_LIMIT
        assert "4" in decision.reason
        assert decision.reason == "You've reached the maximum of 4 advances per month"

    def test_exactly_at_cap(self):
        """Any request is denied once the total equals the cap."""
        decision = _evaluate(total_advanced=Decimal("10000"), requested_amount=Decimal("0.01"))
        assert decision.admit is False
        assert decision.code == DenialCode.PERCENTAGE_CAP
        assert "50%" in decision.reason
        assert decision.available_balance == Decimal("0")

    def test_exceeds_remaining(self):
        """1500 against 1000 remaining is denied, stating the 1000."""
        decision = _evaluate(
            total_advanced=Decimal("9000"), requested_amount=Decimal("1500")
        )
        assert decision.admit is False
        assert decision.code == DenialCode.EXCEEDS_AVAILABLE
        assert "1000" in decision.reason
        assert decision.available_balance == Decimal("1000")

    def test_exactly_remaining_is_admitted(self):
        decision = _evaluate(
            total_advanced=Decimal("9000"), requested_amount=Decimal("1000")
        )
        assert decision.admit is True

    def test_count_rule_wins_over_cap(self):
        """First failing rule is reported."""
        decision = _evaluate(active_count=4, total_advanced=Decimal("10000"))
        assert decision.code == DenialCode.COUNT_LIMIT

    def test_fractional_percentage_in_reason(self):
        decision = _evaluate(
            max_percentage=Decimal("33.5"), total_advanced=Decimal("6700")
        )
        assert decision.code == DenialCode.PERCENTAGE_CAP
        assert "33.5%" in decision.reason

    def test_end_to_end_figures(self):
        """30000 earned at 50% leaves room for a 10000 request."""
        decision = _evaluate(earned=Decimal("30000"), requested_amount=Decimal("10000"))
        assert decision.admit is True
        assert decision.available_balance == Decimal("15000")

    def test_over_cap_total_reports_zero_available(self):
        decision = _evaluate(total_advanced=Decimal("12000"))
        assert decision.admit is False
        assert decision.available_balance == Decimal("0")


class TestSummarizeMonth:
    """Released advances do not use capacity."""

    def test_failed_and_cancelled_excluded(self):
        rows = [
            _Row("approved", Decimal("5200")),
            _Row("disbursed", Decimal("1040")),
            _Row("repaid", Decimal("520")),
            _Row("failed", Decimal("10400")),
            _Row("cancelled", Decimal("2080")),
            _Row("pending", Decimal("104")),
        ]
        activity = summarize_month(rows)
        assert activity == MonthActivity(active_count=4, total_advanced=Decimal("6864"))

    def test_empty(self):
        assert summarize_month([]) == MonthActivity()

    def test_released_capacity_admits_again(self):
        """A failed advance at the cap does not block the next request."""
        activity = summarize_month([_Row("failed", Decimal("10000"))])
        decision = _evaluate(
            active_count=activity.active_count, total_advanced=activity.total_advanced
        )
        assert decision.admit is True
