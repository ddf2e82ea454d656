"""Monthly payroll job.

Run once at the start of each month (cron, or ``payroll-settlement
run-monthly``). For every active company it makes sure last month's pay
period exists and has invoices, then opens the current month's period.
Running it twice is harmless: every step is idempotent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from sqlalchemy import select

from payroll_settlement.config import Settings, get_settings
from payroll_settlement.database import Database
from payroll_settlement.models import Company
from payroll_settlement.services.invoice_service import InvoiceService
from payroll_settlement.services.pay_period_service import PayPeriodService
from payroll_settlement.services.state_machine import PayPeriodStateMachine

logger = logging.getLogger(__name__)


def previous_month(year: int, month: int) -> tuple[int, int]:
    """Return (year, month) of the month before the given one."""
    if month == 1:
        return year - 1, 12
    return year, month - 1


@dataclass
class CompanyRunReport:
    """What the job did for one company."""

    company_id: UUID
    previous_period_id: UUID | None = None
    current_period_id: UUID | None = None
    invoices_generated: int = 0
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class MonthlyRunReport:
    """Summary of one job run."""

    run_date: date
    skipped: bool = False
    companies: list[CompanyRunReport] = field(default_factory=list)

    @property
    def failed(self) -> list[CompanyRunReport]:
        return [c for c in self.companies if not c.success]


class MonthlyPayrollJob:
    """Creates pay periods and invoices for every active company.

    A run that starts while another run of the same job is in progress
    returns immediately with ``skipped=True``.
    """

    def __init__(self, database: Database, settings: Settings | None = None):
        self.database = database
        self.settings = settings or get_settings()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def run(self, today: date | None = None) -> MonthlyRunReport:
        today = today or date.today()
        report = MonthlyRunReport(run_date=today)

        if self._running:
            logger.warning("Monthly payroll job already running; skipping run for %s", today)
            report.skipped = True
            return report

        self._running = True
        try:
            logger.info("Monthly payroll job started for %s", today)
            for company_id in await self._active_company_ids():
                report.companies.append(await self._run_company(company_id, today))
        finally:
            self._running = False

        logger.info(
            "Monthly payroll job finished: %d companies, %d failed",
            len(report.companies),
            len(report.failed),
        )
        return report

    async def _active_company_ids(self) -> list[UUID]:
        async with self.database.session() as session:
            result = await session.execute(
                select(Company.company_id)
                .where(Company.is_active.is_(True))
                .order_by(Company.company_id)
            )
            return list(result.scalars().all())

    async def _run_company(self, company_id: UUID, today: date) -> CompanyRunReport:
        company_report = CompanyRunReport(company_id=company_id)
        prev_year, prev_month = previous_month(today.year, today.month)

        try:
            async with self.database.session() as session:
                periods = PayPeriodService(session)
                previous = await periods.ensure_pay_period(company_id, prev_year, prev_month)
                company_report.previous_period_id = previous.pay_period_id

                if PayPeriodStateMachine.can_generate_invoices(previous.state):
                    invoices = InvoiceService.from_settings(session, self.settings)
                    generated = await invoices.generate_invoices(previous.pay_period_id)
                    company_report.invoices_generated = len(generated.invoices)

                current = await periods.ensure_pay_period(company_id, today.year, today.month)
                company_report.current_period_id = current.pay_period_id
        except Exception as exc:
            logger.exception("Monthly payroll failed for company %s", company_id)
            company_report.error = str(exc)

        return company_report


async def run_monthly_payroll(
    database: Database,
    settings: Settings | None = None,
    today: date | None = None,
) -> MonthlyRunReport:
    """Run the monthly payroll job once."""
    return await MonthlyPayrollJob(database, settings).run(today)
