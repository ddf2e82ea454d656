"""Invoice service - generation of per-employee invoices for a pay period."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_settlement.calculators import EarningsBreakdown, calculate_earnings
from payroll_settlement.config import Settings
from payroll_settlement.database import dialect_insert
from payroll_settlement.errors import NotFound, PeriodNotOpen
from payroll_settlement.models import Invoice, PayPeriod
from payroll_settlement.models.base import utcnow
from payroll_settlement.providers import (
    AttendanceProvider,
    DeductionProvider,
    EmployeeDirectory,
    EmployeeRecord,
    SalaryProvider,
    SqlAttendanceProvider,
    SqlEmployeeDirectory,
    SqlSalaryProvider,
    ZeroDeductionProvider,
)
from payroll_settlement.services.pay_period_service import PayPeriodService, month_bounds
from payroll_settlement.services.state_machine import (
    InvoiceState,
    InvoiceStateMachine,
    PayPeriodStateMachine,
)

logger = logging.getLogger(__name__)

# Columns recomputed when a DRAFT invoice is regenerated
RECOMPUTED_COLUMNS = (
    "gross_amount",
    "regular_amount",
    "leave_amount",
    "overtime_amount",
    "deductions",
    "net_amount",
    "currency",
    "salary_type",
    "hourly_rate",
    "overtime_rate",
    "worked_hours",
    "overtime_hours",
    "worked_days",
    "leave_days",
    "leave_hours",
    "calculation_hash",
    "updated_at",
)


@dataclass(frozen=True)
class InvoiceGenerationError:
    """A per-employee failure captured during generation."""

    user_id: UUID
    error: str


@dataclass
class InvoiceGenerationResult:
    """Outcome of generating invoices for one period."""

    period: PayPeriod
    invoices: list[Invoice] = field(default_factory=list)
    skipped: list[UUID] = field(default_factory=list)
    errors: list[InvoiceGenerationError] = field(default_factory=list)


@dataclass(frozen=True)
class InvoiceView:
    """An invoice with the identity of the employee it pays."""

    invoice: Invoice
    employee: EmployeeRecord | None


class InvoiceService:
    """Service for generating and reading invoices.

    Generation is idempotent per (pay period, employee): re-running it
    rewrites DRAFT invoices with fresh numbers and leaves APPROVED and PAID
    invoices exactly as they were.
    """

    def __init__(
        self,
        session: AsyncSession,
        attendance: AttendanceProvider | None = None,
        salaries: SalaryProvider | None = None,
        deductions: DeductionProvider | None = None,
        directory: EmployeeDirectory | None = None,
    ):
        self.session = session
        self.attendance = attendance or SqlAttendanceProvider(session)
        self.salaries = salaries or SqlSalaryProvider(session)
        self.deductions = deductions or ZeroDeductionProvider()
        self.directory = directory or SqlEmployeeDirectory(session)
        self.periods = PayPeriodService(session)

    @classmethod
    def from_settings(cls, session: AsyncSession, settings: Settings) -> InvoiceService:
        """Build a service whose salary lookups fall back on configured defaults."""
        return cls(
            session,
            salaries=SqlSalaryProvider(
                session,
                default_overtime_rate=settings.default_overtime_rate,
                standard_working_days=settings.standard_working_days,
            ),
        )

    async def generate_invoices(self, pay_period_id: UUID) -> InvoiceGenerationResult:
        """Create or refresh the invoices of an OPEN pay period.

        Raises:
            NotFound: If the period does not exist
            PeriodNotOpen: If the period is LOCKED or SETTLED
        """
        result = await self.session.execute(
            select(PayPeriod)
            .where(PayPeriod.pay_period_id == pay_period_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        period = result.scalar_one_or_none()
        if period is None:
            raise NotFound("pay_period", pay_period_id)
        if not PayPeriodStateMachine.can_generate_invoices(period.state):
            raise PeriodNotOpen(period.pay_period_id, period.state)

        outcome = InvoiceGenerationResult(period=period)
        employees = await self.directory.list_active_employees(
            period.company_id, period.start_date, period.end_date
        )

        for employee in employees:
            try:
                async with self.session.begin_nested():
                    written = await self._generate_one(period, employee)
            except Exception as exc:
                logger.exception(
                    "Invoice generation failed for user %s in period %s",
                    employee.user_id,
                    period.pay_period_id,
                )
                outcome.errors.append(
                    InvoiceGenerationError(user_id=employee.user_id, error=str(exc))
                )
                continue
            if not written:
                outcome.skipped.append(employee.user_id)

        await self.periods.refresh_total(period.pay_period_id)
        outcome.period = await self.periods.get_pay_period(period.pay_period_id)
        outcome.invoices = await self._select_period_invoices(period.pay_period_id)

        logger.info(
            "Generated invoices for period %s: %d invoices, %d skipped, %d errors",
            period.pay_period_id,
            len(outcome.invoices),
            len(outcome.skipped),
            len(outcome.errors),
        )
        return outcome

    async def _generate_one(self, period: PayPeriod, employee: EmployeeRecord) -> bool:
        """Compute and upsert one employee's invoice. Returns False if skipped."""
        existing = await self._select_invoice(period.pay_period_id, employee.user_id)
        if existing is not None and not InvoiceStateMachine.are_amounts_mutable(existing.state):
            return True

        profile = await self.salaries.get_salary_profile(employee.user_id)
        if profile is None:
            logger.debug("No salary config for user %s; skipping", employee.user_id)
            return False

        facts = await self.attendance.get_attendance_facts(
            period.company_id, employee.user_id, period.start_date, period.end_date
        )
        deductions = await self.deductions.get_deductions(
            employee.user_id, period.start_date, period.end_date
        )
        breakdown = calculate_earnings(
            profile, facts, period.start_date, period.end_date, deductions=deductions
        )

        if not breakdown.has_work and existing is None:
            return False

        await self._upsert_invoice(period, employee.user_id, breakdown)
        return True

    async def _upsert_invoice(
        self, period: PayPeriod, user_id: UUID, breakdown: EarningsBreakdown
    ) -> None:
        now = utcnow()
        stmt = dialect_insert(self.session, Invoice).values(
            invoice_id=uuid4(),
            pay_period_id=period.pay_period_id,
            company_id=period.company_id,
            user_id=user_id,
            state=InvoiceState.DRAFT.value,
            gross_amount=breakdown.gross_amount,
            regular_amount=breakdown.regular_amount,
            leave_amount=breakdown.leave_amount,
            overtime_amount=breakdown.overtime_amount,
            deductions=breakdown.deductions,
            net_amount=breakdown.net_amount,
            currency=breakdown.currency,
            salary_type=breakdown.salary_type.value,
            hourly_rate=breakdown.effective_hourly_rate,
            overtime_rate=breakdown.overtime_rate,
            worked_hours=breakdown.worked_hours,
            overtime_hours=breakdown.overtime_hours,
            worked_days=breakdown.worked_days,
            leave_days=breakdown.leave_days,
            leave_hours=breakdown.leave_hours,
            calculation_hash=breakdown.fingerprint,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["pay_period_id", "user_id"],
            set_={column: stmt.excluded[column] for column in RECOMPUTED_COLUMNS},
            where=Invoice.state == InvoiceState.DRAFT.value,
        )
        await self.session.execute(stmt)

    async def get_invoice(self, invoice_id: UUID) -> Invoice:
        """Load an invoice.

        Raises:
            NotFound: If no such invoice exists
        """
        result = await self.session.execute(
            select(Invoice)
            .where(Invoice.invoice_id == invoice_id)
            .execution_options(populate_existing=True)
        )
        invoice = result.scalar_one_or_none()
        if invoice is None:
            raise NotFound("invoice", invoice_id)
        return invoice

    async def list_invoices(
        self, pay_period_id: UUID, company_id: UUID | None = None
    ) -> list[InvoiceView]:
        """List a period's invoices with employee name and email."""
        period = await self.periods.get_pay_period(pay_period_id)
        if company_id is not None and period.company_id != company_id:
            raise NotFound("pay_period", pay_period_id)

        invoices = await self._select_period_invoices(pay_period_id)
        users = await self.directory.get_users(inv.user_id for inv in invoices)
        return [InvoiceView(invoice=inv, employee=users.get(inv.user_id)) for inv in invoices]

    async def list_my_invoices(self, user_id: UUID, limit: int = 50) -> list[Invoice]:
        """List a user's invoices, newest first."""
        result = await self.session.execute(
            select(Invoice)
            .where(Invoice.user_id == user_id)
            .order_by(Invoice.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def preview_earnings(
        self, user_id: UUID, today: date | None = None
    ) -> EarningsBreakdown:
        """Calculate the user's earnings for the current month so far.

        Nothing is persisted.

        Raises:
            NotFound: If the user or their salary config does not exist
        """
        today = today or date.today()
        users = await self.directory.get_users([user_id])
        employee = users.get(user_id)
        if employee is None:
            raise NotFound("employee", user_id)

        profile = await self.salaries.get_salary_profile(user_id)
        if profile is None:
            raise NotFound("salary_config", user_id)

        start_date, month_end = month_bounds(today.year, today.month)
        end_date = min(today, month_end)
        facts = await self.attendance.get_attendance_facts(
            employee.company_id, user_id, start_date, end_date
        )
        deductions = await self.deductions.get_deductions(user_id, start_date, end_date)
        return calculate_earnings(profile, facts, start_date, end_date, deductions=deductions)

    async def _select_invoice(self, pay_period_id: UUID, user_id: UUID) -> Invoice | None:
        result = await self.session.execute(
            select(Invoice).where(
                Invoice.pay_period_id == pay_period_id,
                Invoice.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def _select_period_invoices(self, pay_period_id: UUID) -> list[Invoice]:
        result = await self.session.execute(
            select(Invoice)
            .where(Invoice.pay_period_id == pay_period_id)
            .order_by(Invoice.created_at, Invoice.invoice_id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
