"""Pytest fixtures for settlement engine tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from payroll_settlement.api.app import create_app
from payroll_settlement.config import Settings
from payroll_settlement.database import Database
from payroll_settlement.models import (
    Company,
    DailyAttendance,
    Employee,
    Invoice,
    PayPeriod,
    SalaryConfig,
    Wallet,
    WalletTransaction,
)
from payroll_settlement.services import (
    InvoiceGenerationResult,
    InvoiceService,
    PayPeriodService,
    SettlementService,
)

# March 2024: 31 days, fully inside one pay period
PERIOD_YEAR = 2024
PERIOD_MONTH = 3
WORK_DAY = date(2024, 3, 4)

EIGHT_HOURS = 8 * 3600
ONE_HOUR = 3600


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a per-test SQLite file."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'settlement.db'}",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        operation_timeout_seconds=10.0,
        default_overtime_rate=Decimal("1.5"),
        standard_working_days=22,
        default_currency="BDT",
    )


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    """Open a fresh file-backed database with all tables created.

    A file is used rather than :memory: so that separate sessions (and the
    concurrency tests) see the same data.
    """
    db = Database(settings.database_url).open()
    await db.create_all()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def data(database: Database) -> SettlementTestData:
    """Test data generator with one company already created."""
    test_data = SettlementTestData(database)
    await test_data.create_company()
    return test_data


@pytest_asyncio.fixture
async def client(settings: Settings, database: Database) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to an app that shares the test database."""
    app = create_app(settings=settings, database=database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class SettlementTestData:
    """Test data generator.

    Every helper commits in its own session so no test holds a write
    transaction open between steps.
    """

    def __init__(self, database: Database):
        self.database = database
        self.company_id = uuid4()

    async def create_company(
        self,
        company_id: UUID | None = None,
        name: str = "Acme Ltd",
        overtime_rate: Decimal = Decimal("1.5"),
        is_active: bool = True,
    ) -> UUID:
        company_id = company_id or self.company_id
        async with self.database.session() as session:
            session.add(
                Company(
                    company_id=company_id,
                    name=name,
                    overtime_rate=overtime_rate,
                    working_days_per_month=22,
                    currency="BDT",
                    is_active=is_active,
                )
            )
        return company_id

    async def create_employee(
        self,
        *,
        company_id: UUID | None = None,
        name: str | None = None,
        role: str = "EMPLOYEE",
        salary_type: str = "HOURLY",
        hourly_rate: Decimal = Decimal("300"),
        monthly_salary: Decimal = Decimal("0"),
        expected_hours_per_day: Decimal = Decimal("8"),
        min_daily_hours: Decimal = Decimal("0"),
        override_overtime_rate: Decimal | None = None,
        with_salary: bool = True,
        hired_on: date | None = None,
        terminated_on: date | None = None,
        deleted: bool = False,
    ) -> UUID:
        user_id = uuid4()
        name = name or f"Employee {user_id.hex[:6]}"
        async with self.database.session() as session:
            session.add(
                Employee(
                    user_id=user_id,
                    company_id=company_id or self.company_id,
                    name=name,
                    email=f"{user_id.hex[:8]}@example.com",
                    role=role,
                    hired_on=hired_on,
                    terminated_on=terminated_on,
                    deleted_at=datetime(2024, 1, 1, tzinfo=timezone.utc) if deleted else None,
                )
            )
            await session.flush()
            if with_salary:
                session.add(
                    SalaryConfig(
                        user_id=user_id,
                        salary_type=salary_type,
                        hourly_rate=hourly_rate,
                        monthly_salary=monthly_salary,
                        expected_hours_per_day=expected_hours_per_day,
                        min_daily_hours=min_daily_hours,
                        override_overtime_rate=override_overtime_rate,
                    )
                )
        return user_id

    async def add_attendance(
        self,
        user_id: UUID,
        work_date: date = WORK_DAY,
        worked_seconds: int = EIGHT_HOURS,
        overtime_seconds: int = 0,
        status: str = "PRESENT",
        company_id: UUID | None = None,
        leave_type: str | None = None,
    ) -> None:
        async with self.database.session() as session:
            session.add(
                DailyAttendance(
                    user_id=user_id,
                    company_id=company_id or self.company_id,
                    work_date=work_date,
                    worked_seconds=worked_seconds,
                    overtime_seconds=overtime_seconds,
                    status=status,
                    leave_type=leave_type,
                )
            )

    async def create_period(
        self, year: int = PERIOD_YEAR, month: int = PERIOD_MONTH
    ) -> PayPeriod:
        async with self.database.session() as session:
            return await PayPeriodService(session).ensure_pay_period(
                self.company_id, year, month
            )

    async def generate(self, pay_period_id: UUID) -> InvoiceGenerationResult:
        async with self.database.session() as session:
            return await InvoiceService(session).generate_invoices(pay_period_id)

    async def approve(self, invoice_id: UUID) -> Invoice:
        async with self.database.session() as session:
            return await SettlementService(session).approve_invoice(invoice_id)

    async def lock(self, pay_period_id: UUID) -> PayPeriod:
        async with self.database.session() as session:
            return await PayPeriodService(session).lock_pay_period(pay_period_id)

    async def approved_invoices(self, count: int) -> tuple[PayPeriod, list[Invoice]]:
        """Create `count` employees with the 2850 hourly example day, approved."""
        for _ in range(count):
            user_id = await self.create_employee()
            await self.add_attendance(user_id, overtime_seconds=ONE_HOUR)
        period = await self.create_period()
        result = await self.generate(period.pay_period_id)
        invoices = [await self.approve(inv.invoice_id) for inv in result.invoices]
        return period, invoices

    async def get_invoice(self, invoice_id: UUID) -> Invoice:
        async with self.database.session() as session:
            return await InvoiceService(session).get_invoice(invoice_id)

    async def get_period(self, pay_period_id: UUID) -> PayPeriod:
        async with self.database.session() as session:
            return await PayPeriodService(session).get_pay_period(pay_period_id)

    async def get_wallet(self, user_id: UUID) -> Wallet | None:
        async with self.database.session() as session:
            result = await session.execute(select(Wallet).where(Wallet.user_id == user_id))
            return result.scalar_one_or_none()

    async def transactions_for(self, reference_id: UUID) -> list[WalletTransaction]:
        async with self.database.session() as session:
            result = await session.execute(
                select(WalletTransaction).where(
                    WalletTransaction.reference_id == str(reference_id)
                )
            )
            return list(result.scalars().all())

    async def count_rows(self, model: type) -> int:
        async with self.database.session() as session:
            result = await session.execute(select(model))
            return len(result.scalars().all())
