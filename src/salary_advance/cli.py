"""Salary advance command line interface.

Usage:
    salary-advance serve
    salary-advance init-db
    salary-advance quote --salary 60000 --day 15 --days-in-month 30 --amount 10000
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from decimal import Decimal, InvalidOperation

from salary_advance.calculators.money import (
    advance_fee,
    earned_to_date,
    floor_cents,
    max_advance,
    to_cents,
)
from salary_advance.config import configure_logging, get_settings
from salary_advance.services.eligibility import evaluate

logger = logging.getLogger(__name__)


def parse_decimal(s: str) -> Decimal:
    """Parse a decimal argument without going through float."""
    try:
        return Decimal(s)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a decimal number: {s!r}") from None


class SalaryAdvanceCli:
    """Salary advance operational tools."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="salary-advance",
            description="Salary advance engine tools",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("serve", help="Run the HTTP API")
        subparsers.add_parser("init-db", help="Create database tables")

        quote = subparsers.add_parser(
            "quote",
            help="Compute earned wages, fee and eligibility for a request",
        )
        quote.add_argument("--salary", type=parse_decimal, required=True, help="Monthly salary")
        quote.add_argument("--day", type=int, required=True, help="Day of month")
        quote.add_argument("--days-in-month", type=int, required=True)
        quote.add_argument("--amount", type=parse_decimal, required=True, help="Requested amount")
        quote.add_argument("--fee-percentage", type=parse_decimal, default=Decimal("4"))
        quote.add_argument("--flat-fee", type=parse_decimal, default=Decimal("0"))
        quote.add_argument("--max-percentage", type=parse_decimal, default=Decimal("50"))
        quote.add_argument(
            "--advanced",
            type=parse_decimal,
            default=Decimal("0"),
            help="Total already advanced this month",
        )
        quote.add_argument("--count", type=int, default=0, help="Active advances this month")
        quote.add_argument("--max-per-month", type=int, default=4)

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        handlers = {
            "serve": self._cmd_serve,
            "init-db": self._cmd_init_db,
            "quote": self._cmd_quote,
        }
        return handlers[parsed.command](parsed)

    def _cmd_serve(self, args: argparse.Namespace) -> int:
        from salary_advance.__main__ import main as serve

        serve()
        return 0

    def _cmd_init_db(self, args: argparse.Namespace) -> int:
        from salary_advance.database import create_tables, dispose_db, init_db

        configure_logging(get_settings().log_level)

        async def _create() -> None:
            engine, _ = init_db()
            try:
                await create_tables(engine)
            finally:
                await dispose_db()

        asyncio.run(_create())
        logger.info("Database tables created")
        return 0

    def _cmd_quote(self, args: argparse.Namespace) -> int:
        try:
            earned = earned_to_date(args.salary, args.day, args.days_in_month)
        except ValueError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

        decision = evaluate(
            active_count=args.count,
            max_advances_per_month=args.max_per_month,
            earned=earned,
            total_advanced=args.advanced,
            max_percentage=args.max_percentage,
            requested_amount=args.amount,
        )
        fee = to_cents(advance_fee(args.amount, args.fee_percentage, args.flat_fee))
        print(
            json.dumps(
                {
                    "earned_to_date": str(to_cents(earned)),
                    "max_advance": str(floor_cents(max_advance(earned, args.max_percentage))),
                    "available_balance": str(floor_cents(decision.available_balance)),
                    "amount": str(args.amount),
                    "fee": str(fee),
                    "total_amount": str(args.amount + fee),
                    "admit": decision.admit,
                    "reason": decision.reason,
                },
                indent=2,
            )
        )
        return 0 if decision.admit else 2


def main() -> int:
    """CLI entry point."""
    cli = SalaryAdvanceCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
