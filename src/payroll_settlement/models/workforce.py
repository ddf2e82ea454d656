"""Company roster, salary configuration, and attendance models.

These tables are written by the surrounding product (company admin screens,
salary editor, attendance generator). The settlement engine only reads them
through the providers in ``payroll_settlement.providers``.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_settlement.models.base import Base, TimestampMixin


class Company(Base, TimestampMixin):
    """Tenant company with payroll defaults."""

    __tablename__ = "company"

    company_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    overtime_rate: Mapped[Decimal] = mapped_column(
        Numeric(6, 3), nullable=False, default=Decimal("1.5")
    )
    working_days_per_month: Mapped[int] = mapped_column(Integer, nullable=False, default=22)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="BDT")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("overtime_rate >= 1", name="company_overtime_rate_check"),
        CheckConstraint("working_days_per_month > 0", name="company_working_days_check"),
    )

    employees: Mapped[list[Employee]] = relationship(back_populates="company")


class Employee(Base, TimestampMixin):
    """A user belonging to a company."""

    __tablename__ = "employee"

    user_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    email: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False, default="EMPLOYEE")
    hired_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    terminated_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint(
            "role IN ('OWNER', 'ADMIN', 'EMPLOYEE', 'FREELANCER')",
            name="employee_role_check",
        ),
    )

    company: Mapped[Company] = relationship(back_populates="employees")
    salary_config: Mapped[SalaryConfig | None] = relationship(back_populates="employee")


class SalaryConfig(Base, TimestampMixin):
    """Per-employee salary and schedule configuration."""

    __tablename__ = "salary_config"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.user_id", ondelete="CASCADE"),
        primary_key=True,
    )
    salary_type: Mapped[str] = mapped_column(String, nullable=False, default="HOURLY")
    hourly_rate: Mapped[Decimal] = mapped_column(
        Numeric(14, 4), nullable=False, default=Decimal("0")
    )
    monthly_salary: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    expected_hours_per_day: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("8")
    )
    min_daily_hours: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0")
    )
    override_overtime_rate: Mapped[Decimal | None] = mapped_column(Numeric(6, 3), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "salary_type IN ('HOURLY', 'MONTHLY')",
            name="salary_config_type_check",
        ),
        CheckConstraint("hourly_rate >= 0", name="salary_config_hourly_rate_check"),
        CheckConstraint("monthly_salary >= 0", name="salary_config_monthly_salary_check"),
        CheckConstraint(
            "expected_hours_per_day > 0", name="salary_config_expected_hours_check"
        ),
    )

    employee: Mapped[Employee] = relationship(back_populates="salary_config")


class DailyAttendance(Base, TimestampMixin):
    """Closed attendance day for one employee."""

    __tablename__ = "daily_attendance"

    daily_attendance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    worked_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    overtime_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String, nullable=False, default="PRESENT")
    leave_type: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "work_date", name="daily_attendance_user_date_unique"),
        CheckConstraint(
            "status IN ('PRESENT', 'PARTIAL', 'ABSENT', 'ON_LEAVE', 'HOLIDAY')",
            name="daily_attendance_status_check",
        ),
        CheckConstraint(
            "leave_type IS NULL OR leave_type IN ('PAID', 'SICK', 'HALF_DAY', 'UNPAID')",
            name="daily_attendance_leave_type_check",
        ),
        CheckConstraint(
            "worked_seconds >= 0 AND overtime_seconds >= 0",
            name="daily_attendance_seconds_check",
        ),
    )
