"""Pay period service - creation, locking, listing and settlement of periods."""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_settlement.database import dialect_insert
from payroll_settlement.errors import NotFound, StorageConflict
from payroll_settlement.models import Company, Invoice, PayPeriod
from payroll_settlement.models.base import utcnow
from payroll_settlement.services.state_machine import (
    InvoiceState,
    InvoiceStateMachine,
    PayPeriodState,
    PayPeriodStateMachine,
)

logger = logging.getLogger(__name__)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Return the first and last calendar day of a month.

    Raises:
        ValueError: If month is outside 1..12
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


@dataclass
class PayPeriodSummary:
    """A pay period with its invoice counts by state."""

    period: PayPeriod
    invoice_count: int = 0
    draft_count: int = 0
    approved_count: int = 0
    paid_count: int = 0


class PayPeriodService:
    """Service for the pay period lifecycle.

    Operations:
    - ensure_pay_period: Idempotently create the period for a month
    - lock_pay_period: OPEN → LOCKED, stopping invoice (re)generation
    - settle_if_complete: LOCKED → SETTLED once every invoice is PAID (checked
      after each payment and on lock)
    - list_pay_periods / get_pay_period: Reads
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def ensure_pay_period(self, company_id: UUID, year: int, month: int) -> PayPeriod:
        """Return the company's period for the month, creating it if absent.

        Concurrent callers converge on one row: the insert is a no-op when
        the (company, start, end) key already exists.
        """
        start_date, end_date = month_bounds(year, month)

        company = await self.session.get(Company, company_id)
        if company is None:
            raise NotFound("company", company_id)

        stmt = (
            dialect_insert(self.session, PayPeriod)
            .values(
                pay_period_id=uuid4(),
                company_id=company_id,
                start_date=start_date,
                end_date=end_date,
                state=PayPeriodState.OPEN.value,
                currency=company.currency,
                total_amount=Decimal("0"),
                created_at=utcnow(),
            )
            .on_conflict_do_nothing(index_elements=["company_id", "start_date", "end_date"])
        )
        result = await self.session.execute(stmt)
        if result.rowcount:
            logger.info(
                "Created pay period %s..%s for company %s", start_date, end_date, company_id
            )

        period = await self._select_by_window(company_id, start_date, end_date)
        if period is None:
            raise StorageConflict(
                f"pay period {start_date}..{end_date} for company {company_id} "
                "could not be read back"
            )
        return period

    async def get_pay_period(self, pay_period_id: UUID) -> PayPeriod:
        """Load a pay period.

        Raises:
            NotFound: If no such period exists
        """
        result = await self.session.execute(
            select(PayPeriod)
            .where(PayPeriod.pay_period_id == pay_period_id)
            .execution_options(populate_existing=True)
        )
        period = result.scalar_one_or_none()
        if period is None:
            raise NotFound("pay_period", pay_period_id)
        return period

    async def list_pay_periods(
        self, company_id: UUID, year: int | None = None
    ) -> list[PayPeriodSummary]:
        """List a company's periods, most recent first, with invoice counts."""
        query = select(PayPeriod).where(PayPeriod.company_id == company_id)
        if year is not None:
            query = query.where(
                PayPeriod.start_date >= date(year, 1, 1),
                PayPeriod.start_date <= date(year, 12, 31),
            )
        result = await self.session.execute(query.order_by(PayPeriod.start_date.desc()))
        periods = list(result.scalars().all())
        if not periods:
            return []

        summaries = {p.pay_period_id: PayPeriodSummary(period=p) for p in periods}
        counts = await self.session.execute(
            select(Invoice.pay_period_id, Invoice.state, func.count())
            .where(Invoice.pay_period_id.in_(list(summaries)))
            .group_by(Invoice.pay_period_id, Invoice.state)
        )
        for period_id, state, count in counts.all():
            summary = summaries[period_id]
            summary.invoice_count += count
            if state == InvoiceState.DRAFT:
                summary.draft_count = count
            elif state == InvoiceState.APPROVED:
                summary.approved_count = count
            elif state == InvoiceState.PAID:
                summary.paid_count = count

        return [summaries[p.pay_period_id] for p in periods]

    async def count_invoices(self, pay_period_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Invoice)
            .where(Invoice.pay_period_id == pay_period_id)
        )
        return result.scalar_one()

    async def lock_pay_period(self, pay_period_id: UUID) -> PayPeriod:
        """Lock an OPEN period.

        Raises:
            NotFound: If no such period exists
            InvalidStateTransition: If the period is not OPEN
        """
        result = await self.session.execute(
            update(PayPeriod)
            .where(
                PayPeriod.pay_period_id == pay_period_id,
                PayPeriod.state == PayPeriodState.OPEN.value,
            )
            .values(state=PayPeriodState.LOCKED.value, locked_at=utcnow())
            .execution_options(synchronize_session=False)
        )

        period = await self.get_pay_period(pay_period_id)
        if result.rowcount == 0:
            PayPeriodStateMachine.validate_transition(
                period.state, PayPeriodState.LOCKED, "pay period is not OPEN"
            )
        logger.info("Locked pay period %s", pay_period_id)

        # Invoices may all have been paid while the period was still OPEN
        if await self.settle_if_complete(pay_period_id):
            period = await self.get_pay_period(pay_period_id)
        return period

    async def settle_if_complete(self, pay_period_id: UUID) -> bool:
        """Settle a LOCKED period whose invoices are all PAID.

        Returns:
            True if this call moved the period to SETTLED
        """
        result = await self.session.execute(
            select(Invoice.state, func.count())
            .where(Invoice.pay_period_id == pay_period_id)
            .group_by(Invoice.state)
        )
        counts = dict(result.all())
        if not counts or not all(InvoiceStateMachine.is_settled(state) for state in counts):
            return False

        result = await self.session.execute(
            update(PayPeriod)
            .where(
                PayPeriod.pay_period_id == pay_period_id,
                PayPeriod.state == PayPeriodState.LOCKED.value,
            )
            .values(state=PayPeriodState.SETTLED.value, settled_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info("Settled pay period %s", pay_period_id)
            return True
        return False

    async def refresh_total(self, pay_period_id: UUID) -> Decimal:
        """Recompute the period's total from its invoices' net amounts."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(Invoice.net_amount), 0)).where(
                Invoice.pay_period_id == pay_period_id
            )
        )
        total = Decimal(str(result.scalar_one())).quantize(Decimal("0.01"))
        await self.session.execute(
            update(PayPeriod)
            .where(PayPeriod.pay_period_id == pay_period_id)
            .values(total_amount=total)
            .execution_options(synchronize_session=False)
        )
        return total

    async def _select_by_window(
        self, company_id: UUID, start_date: date, end_date: date
    ) -> PayPeriod | None:
        result = await self.session.execute(
            select(PayPeriod)
            .where(
                PayPeriod.company_id == company_id,
                PayPeriod.start_date == start_date,
                PayPeriod.end_date == end_date,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
