"""Payroll desk command line interface.

Provides the payroll view's actions from a terminal:
- Show a period's payroll table
- List deduction types
- Edit a DRAFT entry, or preview its net salary
- Pay or approve one entry
- Pay every unpaid entry in a period

Usage:
    hrms-payroll show --month 3 --year 2025
    hrms-payroll edit --assignment-id 12 --gross 4400 --hour-variance -4 --deduction 2:150:Advance
    hrms-payroll edit --assignment-id 12 --bonus 300 --dry-run
    hrms-payroll pay --assignment-id 12
    hrms-payroll pay-all --month 3 --year 2025 --yes
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Callable, Coroutine
from dataclasses import replace
from decimal import Decimal
from typing import Any

from hrms_payroll.api.client import BackendError, PayrollBackendClient
from hrms_payroll.calculators.amounts import round_to_cents, to_decimal
from hrms_payroll.calculators.types import Deduction, PayPeriod, PayrollEntry
from hrms_payroll.config import Settings, get_settings
from hrms_payroll.services.payroll_service import (
    EntryValidationError,
    PayOutcome,
    PayrollService,
)
from hrms_payroll.services.state_machine import InvalidTransitionError

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Settings], PayrollBackendClient]


def parse_deduction(value: str) -> Deduction:
    """Parse TYPE_ID:AMOUNT[:REASON]."""
    parts = value.split(":", 2)
    if len(parts) < 2:
        raise argparse.ArgumentTypeError(
            f"Deduction must look like TYPE_ID:AMOUNT[:REASON], got '{value}'"
        )
    try:
        type_id = int(parts[0])
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid deduction type id '{parts[0]}'") from None
    return Deduction(
        deduction_type_id=type_id,
        amount=to_decimal(parts[1]),
        reason=parts[2] if len(parts) > 2 else "",
    )


def format_money(amount: Decimal) -> str:
    return f"{round_to_cents(amount):,.2f}"


class PayrollCli:
    """Payroll desk command line interface."""

    def __init__(
        self,
        settings: Settings | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client_factory = client_factory or PayrollBackendClient.from_settings
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="hrms-payroll",
            description="Payroll desk for the HR backend",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        period_args = argparse.ArgumentParser(add_help=False)
        current = PayPeriod.current()
        period_args.add_argument(
            "--month",
            type=int,
            default=current.month,
            help="Payroll month 1-12 (default: current month)",
        )
        period_args.add_argument(
            "--year",
            type=int,
            default=current.year,
            help="Payroll year (default: current year)",
        )

        subparsers.add_parser(
            "show",
            parents=[period_args],
            help="Show the payroll table for a period",
        )

        subparsers.add_parser(
            "deduction-types",
            help="List deduction types",
        )

        edit = subparsers.add_parser(
            "edit",
            parents=[period_args],
            help="Edit and save a DRAFT payroll entry",
        )
        edit.add_argument("--assignment-id", type=int, required=True)
        edit.add_argument("--gross", type=str, help="Gross salary")
        edit.add_argument("--bonus", type=str, help="Bonus amount")
        edit.add_argument(
            "--hour-variance",
            type=str,
            help="Signed hour variance; negative is a shortfall",
        )
        edit.add_argument("--remarks", type=str)
        edit.add_argument(
            "--deduction",
            type=parse_deduction,
            action="append",
            help="TYPE_ID:AMOUNT[:REASON]; repeatable, replaces existing deductions",
        )
        edit.add_argument(
            "--clear-deductions",
            action="store_true",
            help="Remove all deductions",
        )
        edit.add_argument(
            "--dry-run",
            action="store_true",
            help="Show the net salary the entry would be saved with, without saving",
        )

        pay = subparsers.add_parser(
            "pay",
            parents=[period_args],
            help="Save and mark one entry as paid",
        )
        pay.add_argument("--assignment-id", type=int, required=True)

        approve = subparsers.add_parser(
            "approve",
            parents=[period_args],
            help="Approve and mark one entry as paid",
        )
        approve.add_argument("--assignment-id", type=int, required=True)

        pay_all = subparsers.add_parser(
            "pay-all",
            parents=[period_args],
            help="Save and mark every unpaid entry as paid",
        )
        pay_all.add_argument(
            "--yes",
            action="store_true",
            help="Confirm paying all unpaid entries",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        handlers: dict[str, Callable[..., Coroutine[Any, Any, int]]] = {
            "show": self._cmd_show,
            "deduction-types": self._cmd_deduction_types,
            "edit": self._cmd_edit,
            "pay": self._cmd_pay,
            "approve": self._cmd_approve,
            "pay-all": self._cmd_pay_all,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return asyncio.run(self._with_service(handler, parsed))
        except (
            EntryValidationError,
            InvalidTransitionError,
            BackendError,
            KeyError,
            ValueError,
        ) as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

    async def _with_service(
        self,
        handler: Callable[..., Coroutine[Any, Any, int]],
        args: argparse.Namespace,
    ) -> int:
        async with self.client_factory(self.settings) as client:
            service = PayrollService(client, settings=self.settings)
            return await handler(service, args)

    @staticmethod
    def _period(args: argparse.Namespace) -> PayPeriod:
        return PayPeriod(month=args.month, year=args.year)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _cmd_show(self, service: PayrollService, args: argparse.Namespace) -> int:
        """Show the payroll table."""
        roster = await service.load_period(self._period(args))
        if not len(roster):
            print(f"No payroll data available for {roster.period}.")
            return 0

        print(f"Payroll {roster.period}")
        print("=" * 96)
        print(
            f"{'Assign':>6}  {'Employee':<24}{'Base':>12}{'Bonus':>11}"
            f"{'Var(h)':>8}{'Deds':>6}{'Net':>13}  Status"
        )
        for entry in roster:
            print(self._format_row(entry))

        summary = roster.summary()
        print("-" * 96)
        print(
            f"{'Total':>67}{format_money(summary.total_net_salary):>13}  "
            f"{summary.paid_count} paid / {summary.unpaid_count} unpaid"
        )
        return 0

    @staticmethod
    def _format_row(entry: PayrollEntry) -> str:
        status = entry.run_status.value
        if entry.is_paid and entry.pay_date:
            status += f" ({entry.pay_date.isoformat()})"
        return (
            f"{entry.assignment_id:>6}  {entry.employee_name[:23]:<24}"
            f"{format_money(entry.gross_salary):>12}"
            f"{format_money(entry.bonus_amount):>11}"
            f"{entry.hour_variance:>8}"
            f"{len(entry.deductions):>6}"
            f"{format_money(entry.net_salary):>13}  {status}"
        )

    async def _cmd_deduction_types(
        self, service: PayrollService, args: argparse.Namespace
    ) -> int:
        """List deduction types."""
        for deduction_type in await service.client.get_deduction_types():
            print(f"{deduction_type.deduction_type_id:>4}  {deduction_type.name}")
        return 0

    async def _cmd_edit(self, service: PayrollService, args: argparse.Namespace) -> int:
        """Edit and save one entry."""
        await service.load_period(self._period(args))
        draft = service.begin_edit(args.assignment_id)

        changes: dict[str, Any] = {}
        if args.gross is not None:
            changes["gross_salary"] = args.gross
        if args.bonus is not None:
            changes["bonus_amount"] = args.bonus
        if args.hour_variance is not None:
            changes["hour_variance"] = args.hour_variance
        if args.remarks is not None:
            changes["remarks"] = args.remarks
        if args.clear_deductions:
            changes["deductions"] = []
        elif args.deduction:
            changes["deductions"] = [
                replace(d, deduction_type_name=service.deduction_type_name(d.deduction_type_id))
                for d in args.deduction
            ]
        draft = draft.copy(**changes)

        if args.dry_run:
            breakdown = service.preview(draft)
            print(f"Gross salary:            {format_money(breakdown.gross_salary):>12}")
            print(f"Bonus:                   {format_money(breakdown.bonus_amount):>12}")
            print(f"Deductions:              {format_money(breakdown.total_deductions):>12}")
            print(f"Hour variance deduction: {format_money(breakdown.hour_variance_deduction):>12}")
            print(f"Net salary:              {format_money(breakdown.net_salary):>12}")
            if breakdown.was_floored:
                print("Deductions exceed earnings; net salary is floored at 0.")
            print("Dry run: nothing was saved.")
            return 0

        saved = await service.save_entry(draft)
        print("Payroll updated successfully!")
        print(self._format_row(saved))
        return 0

    async def _cmd_pay(self, service: PayrollService, args: argparse.Namespace) -> int:
        """Pay one entry."""
        await service.load_period(self._period(args))
        outcome = await service.pay_individual(args.assignment_id)
        return self._report_outcome(outcome)

    async def _cmd_approve(self, service: PayrollService, args: argparse.Namespace) -> int:
        """Approve one entry."""
        await service.load_period(self._period(args))
        outcome = await service.approve(args.assignment_id)
        return self._report_outcome(outcome)

    async def _cmd_pay_all(self, service: PayrollService, args: argparse.Namespace) -> int:
        """Pay all unpaid entries."""
        roster = await service.load_period(self._period(args))
        unpaid = roster.unpaid()
        if not unpaid:
            print("All employees are already marked as paid.")
            return 0
        if not args.yes:
            print(
                f"Refusing to mark {len(unpaid)} unpaid employee(s) as paid without --yes",
                file=sys.stderr,
            )
            return 1

        outcome = await service.pay_all()
        return self._report_outcome(outcome)

    @staticmethod
    def _report_outcome(outcome: PayOutcome) -> int:
        for entry in outcome.paid:
            name = entry.employee_name or f"Assignment {entry.assignment_id}"
            print(f"{name} marked as paid on {entry.pay_date} (net {format_money(entry.net_salary)})")
        if not outcome.reconciled:
            print(
                "WARNING: could not re-read payroll from the server; showing local paid status",
                file=sys.stderr,
            )
        return 0


def main() -> int:
    """CLI entry point."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cli = PayrollCli(settings=settings)
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
