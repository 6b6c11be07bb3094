"""Tests for the command line interface."""

import json

import pytest

from salary_advance.cli import SalaryAdvanceCli


def _quote(capsys, *args):
    code = SalaryAdvanceCli().run(["quote", *args])
    return code, capsys.readouterr()


class TestQuote:
    def test_admitted(self, capsys):
        code, captured = _quote(
            capsys, "--salary", "60000", "--day", "15", "--days-in-month", "30", "--amount", "10000"
        )

        assert code == 0
        result = json.loads(captured.out)
        assert result == {
            "earned_to_date": "30000.00",
            "max_advance": "15000.00",
            "available_balance": "15000.00",
            "amount": "10000",
            "fee": "400.00",
            "total_amount": "10400.00",
            "admit": True,
            "reason": None,
        }

    def test_denied_states_remaining(self, capsys):
        code, captured = _quote(
            capsys,
            "--salary", "40000",
            "--day", "15",
            "--days-in-month", "30",
            "--amount", "1500",
            "--advanced", "9000",
        )

        assert code == 2
        result = json.loads(captured.out)
        assert result["admit"] is False
        assert "1000" in result["reason"]

    def test_flat_fee(self, capsys):
        code, captured = _quote(
            capsys,
            "--salary", "60000",
            "--day", "15",
            "--days-in-month", "30",
            "--amount", "1000",
            "--fee-percentage", "0",
            "--flat-fee", "50",
        )

        assert code == 0
        assert json.loads(captured.out)["fee"] == "50.00"

    def test_invalid_day(self, capsys):
        code, captured = _quote(
            capsys, "--salary", "60000", "--day", "31", "--days-in-month", "30", "--amount", "1"
        )

        assert code == 1
        assert "ERROR" in captured.err

    def test_bad_decimal(self):
        with pytest.raises(SystemExit):
            SalaryAdvanceCli().run(
                ["quote", "--salary", "lots", "--day", "1", "--days-in-month", "30", "--amount", "1"]
            )


def test_no_command(capsys):
    assert SalaryAdvanceCli().run([]) == 1
    assert "salary-advance" in capsys.readouterr().out
