"""Tests for pay period creation, locking, listing and settlement."""

import asyncio
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from payroll_settlement.errors import InvalidStateTransition, NotFound
from payroll_settlement.models import PayPeriod
from payroll_settlement.services import PayPeriodService, SettlementService, month_bounds


class TestMonthBounds:
    """Test calendar month windows."""

    def test_month_bounds(self):
        assert month_bounds(2024, 3) == (date(2024, 3, 1), date(2024, 3, 31))
        assert month_bounds(2024, 4) == (date(2024, 4, 1), date(2024, 4, 30))

    def test_leap_february(self):
        assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
        assert month_bounds(2023, 2) == (date(2023, 2, 1), date(2023, 2, 28))

    @pytest.mark.parametrize("month", [0, 13, -1])
    def test_invalid_month_rejected(self, month):
        with pytest.raises(ValueError):
            month_bounds(2024, month)


class TestEnsurePayPeriod:
    """Test idempotent period creation."""

    async def test_creates_open_period_for_month(self, data):
        period = await data.create_period(2024, 3)

        assert period.company_id == data.company_id
        assert period.start_date == date(2024, 3, 1)
        assert period.end_date == date(2024, 3, 31)
        assert period.state == "OPEN"
        assert period.currency == "BDT"
        assert period.total_amount == Decimal("0")

    async def test_second_call_returns_same_period(self, data):
        first = await data.create_period(2024, 3)
        second = await data.create_period(2024, 3)

        assert first.pay_period_id == second.pay_period_id
        assert await data.count_rows(PayPeriod) == 1

    async def test_concurrent_calls_converge_on_one_row(self, data, database):
        """Racing creators all see the single winning row."""

        async def ensure():
            async with database.session() as session:
                period = await PayPeriodService(session).ensure_pay_period(
                    data.company_id, 2024, 3
                )
                return period.pay_period_id

        ids = await asyncio.gather(*(ensure() for _ in range(5)))

        assert len(set(ids)) == 1
        assert await data.count_rows(PayPeriod) == 1

    async def test_invalid_month_rejected(self, data, database):
        async with database.session() as session:
            with pytest.raises(ValueError):
                await PayPeriodService(session).ensure_pay_period(data.company_id, 2024, 13)

    async def test_unknown_company(self, database):
        async with database.session() as session:
            with pytest.raises(NotFound):
                await PayPeriodService(session).ensure_pay_period(uuid4(), 2024, 3)


class TestLockPayPeriod:
    """Test OPEN → LOCKED."""

    async def test_lock_open_period(self, data):
        period = await data.create_period()

        locked = await data.lock(period.pay_period_id)

        assert locked.state == "LOCKED"
        assert locked.locked_at is not None

    async def test_lock_twice_rejected(self, data):
        period = await data.create_period()
        await data.lock(period.pay_period_id)

        with pytest.raises(InvalidStateTransition) as exc_info:
            await data.lock(period.pay_period_id)

        assert exc_info.value.from_state == "LOCKED"
        assert exc_info.value.to_state == "LOCKED"

    async def test_lock_unknown_period(self, data):
        with pytest.raises(NotFound):
            await data.lock(uuid4())


class TestListPayPeriods:
    """Test listing with invoice counts."""

    async def test_most_recent_first_with_counts(self, data, database):
        user_a = await data.create_employee()
        user_b = await data.create_employee()
        await data.add_attendance(user_a)
        await data.add_attendance(user_b)

        await data.create_period(2024, 2)
        march = await data.create_period(2024, 3)
        result = await data.generate(march.pay_period_id)
        await data.approve(result.invoices[0].invoice_id)

        async with database.session() as session:
            summaries = await PayPeriodService(session).list_pay_periods(data.company_id)

        assert [s.period.start_date for s in summaries] == [date(2024, 3, 1), date(2024, 2, 1)]
        assert summaries[0].invoice_count == 2
        assert summaries[0].draft_count == 1
        assert summaries[0].approved_count == 1
        assert summaries[0].paid_count == 0
        assert summaries[1].invoice_count == 0

    async def test_year_filter(self, data, database):
        await data.create_period(2023, 12)
        await data.create_period(2024, 1)

        async with database.session() as session:
            summaries = await PayPeriodService(session).list_pay_periods(data.company_id, 2024)

        assert [s.period.start_date for s in summaries] == [date(2024, 1, 1)]


class TestSettlePeriod:
    """Test LOCKED → SETTLED once every invoice is PAID."""

    async def test_locked_period_settles_when_last_invoice_paid(self, data, database):
        period, invoices = await data.approved_invoices(2)
        await data.lock(period.pay_period_id)

        async with database.session() as session:
            await SettlementService(session).pay_invoice(invoices[0].invoice_id)
        assert (await data.get_period(period.pay_period_id)).state == "LOCKED"

        async with database.session() as session:
            await SettlementService(session).pay_invoice(invoices[1].invoice_id)

        settled = await data.get_period(period.pay_period_id)
        assert settled.state == "SETTLED"
        assert settled.settled_at is not None

    async def test_open_period_does_not_settle(self, data, database):
        period, invoices = await data.approved_invoices(1)

        async with database.session() as session:
            await SettlementService(session).pay_invoice(invoices[0].invoice_id)

        assert (await data.get_period(period.pay_period_id)).state == "OPEN"

    async def test_locked_period_without_invoices_does_not_settle(self, data, database):
        period = await data.create_period()
        await data.lock(period.pay_period_id)

        async with database.session() as session:
            settled = await PayPeriodService(session).settle_if_complete(period.pay_period_id)

        assert settled is False

    async def test_lock_after_full_payment_settles(self, data, database):
        period, _ = await data.approved_invoices(2)
        async with database.session() as session:
            await SettlementService(session).pay_all_invoices(period.pay_period_id)
        assert (await data.get_period(period.pay_period_id)).state == "OPEN"

        locked = await data.lock(period.pay_period_id)

        assert locked.state == "SETTLED"
        assert locked.locked_at is not None
        assert locked.settled_at is not None
        assert (await data.get_period(period.pay_period_id)).state == "SETTLED"

    async def test_lock_with_unpaid_invoices_stays_locked(self, data, database):
        period, invoices = await data.approved_invoices(2)
        async with database.session() as session:
            await SettlementService(session).pay_invoice(invoices[0].invoice_id)

        locked = await data.lock(period.pay_period_id)

        assert locked.state == "LOCKED"
        assert locked.settled_at is None
