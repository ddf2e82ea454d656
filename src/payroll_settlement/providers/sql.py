"""SQLAlchemy-backed collaborator providers."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_settlement.calculators.types import (
    AttendanceFact,
    AttendanceStatus,
    LeaveType,
    SalaryProfile,
    SalaryType,
)
from payroll_settlement.models import Company, DailyAttendance, Employee, SalaryConfig
from payroll_settlement.providers.base import EmployeeRecord

# Roles that are paid through invoices
BILLABLE_ROLES = ("EMPLOYEE", "ADMIN", "FREELANCER")


class SqlAttendanceProvider:
    """Reads attendance facts from the daily_attendance table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_attendance_facts(
        self,
        company_id: UUID,
        user_id: UUID,
        start_date: date,
        end_date: date,
    ) -> list[AttendanceFact]:
        result = await self.session.execute(
            select(DailyAttendance)
            .where(
                DailyAttendance.company_id == company_id,
                DailyAttendance.user_id == user_id,
                DailyAttendance.work_date >= start_date,
                DailyAttendance.work_date <= end_date,
            )
            .order_by(DailyAttendance.work_date)
        )
        return [
            AttendanceFact(
                work_date=row.work_date,
                worked_seconds=row.worked_seconds,
                overtime_seconds=row.overtime_seconds,
                status=AttendanceStatus(row.status),
                leave_type=LeaveType(row.leave_type) if row.leave_type else None,
            )
            for row in result.scalars().all()
        ]


class SqlSalaryProvider:
    """Reads salary configuration joined with company payroll defaults.

    The configured defaults apply where a company row leaves them unset.
    """

    def __init__(
        self,
        session: AsyncSession,
        default_overtime_rate: Decimal = Decimal("1.5"),
        standard_working_days: int = 22,
    ):
        self.session = session
        self.default_overtime_rate = default_overtime_rate
        self.standard_working_days = standard_working_days

    async def get_salary_profile(self, user_id: UUID) -> SalaryProfile | None:
        result = await self.session.execute(
            select(SalaryConfig, Company)
            .join(Employee, Employee.user_id == SalaryConfig.user_id)
            .join(Company, Company.company_id == Employee.company_id)
            .where(SalaryConfig.user_id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            return None

        config, company = row
        return SalaryProfile(
            salary_type=SalaryType(config.salary_type),
            hourly_rate=config.hourly_rate or Decimal("0"),
            monthly_salary=config.monthly_salary or Decimal("0"),
            expected_hours_per_day=config.expected_hours_per_day or Decimal("8"),
            min_daily_hours=config.min_daily_hours or Decimal("0"),
            override_overtime_rate=config.override_overtime_rate,
            currency=config.currency or company.currency,
            company_overtime_rate=company.overtime_rate or self.default_overtime_rate,
            standard_working_days=company.working_days_per_month or self.standard_working_days,
        )


class SqlEmployeeDirectory:
    """Reads the company roster from the employee table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_active_employees(
        self, company_id: UUID, start_date: date, end_date: date
    ) -> list[EmployeeRecord]:
        result = await self.session.execute(
            select(Employee)
            .where(
                Employee.company_id == company_id,
                Employee.role.in_(BILLABLE_ROLES),
                Employee.deleted_at.is_(None),
                (Employee.hired_on.is_(None) | (Employee.hired_on <= end_date)),
                (Employee.terminated_on.is_(None) | (Employee.terminated_on >= start_date)),
            )
            .order_by(Employee.user_id)
        )
        return [_to_record(emp) for emp in result.scalars().all()]

    async def get_users(self, user_ids: Iterable[UUID]) -> dict[UUID, EmployeeRecord]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        result = await self.session.execute(select(Employee).where(Employee.user_id.in_(ids)))
        return {emp.user_id: _to_record(emp) for emp in result.scalars().all()}


def _to_record(emp: Employee) -> EmployeeRecord:
    return EmployeeRecord(
        user_id=emp.user_id,
        company_id=emp.company_id,
        email=emp.email,
        name=emp.name,
        role=emp.role,
    )
