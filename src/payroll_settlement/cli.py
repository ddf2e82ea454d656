"""Settlement engine command line interface.

Usage:
    payroll-settlement init-db
    payroll-settlement run-monthly [--date 2024-03-01]
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import date
from typing import Awaitable, Callable

from payroll_settlement.config import Settings, configure_logging, get_settings
from payroll_settlement.database import Database
from payroll_settlement.jobs.monthly_payroll import MonthlyPayrollJob


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


class SettlementCli:
    """Operational commands for the settlement engine."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="payroll-settlement",
            description="Payroll period and invoice settlement tools",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Override DATABASE_URL",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser(
            "init-db",
            help="Create all tables (development databases only)",
        )

        monthly = subparsers.add_parser(
            "run-monthly",
            help="Ensure pay periods and generate last month's invoices",
        )
        monthly.add_argument(
            "--date",
            type=parse_date,
            help="Run as if today were this date (ISO format)",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Parse arguments and dispatch to a command handler."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        handlers: dict[str, Callable[[Database, argparse.Namespace], Awaitable[int]]] = {
            "init-db": self._cmd_init_db,
            "run-monthly": self._cmd_run_monthly,
        }
        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        database = Database(parsed.database_url or self.settings.database_url)
        return asyncio.run(handler(database, parsed))

    async def _cmd_init_db(self, database: Database, args: argparse.Namespace) -> int:
        database.open()
        try:
            await database.create_all()
        finally:
            await database.close()
        print("Tables created.")
        return 0

    async def _cmd_run_monthly(self, database: Database, args: argparse.Namespace) -> int:
        database.open()
        try:
            report = await MonthlyPayrollJob(database, self.settings).run(args.date)
        finally:
            await database.close()

        print(f"Monthly payroll run for {report.run_date.isoformat()}")
        for company in report.companies:
            status = "ok" if company.success else f"FAILED: {company.error}"
            print(f"  {company.company_id}: {company.invoices_generated} invoices ({status})")
        return 1 if report.failed else 0


def main() -> int:
    """CLI entry point."""
    configure_logging()
    cli = SettlementCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
