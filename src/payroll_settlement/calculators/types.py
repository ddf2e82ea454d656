"""Type definitions for the earnings calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any


class SalaryType(str, Enum):
    """How an employee's pay is configured."""

    HOURLY = "HOURLY"
    MONTHLY = "MONTHLY"


class AttendanceStatus(str, Enum):
    """Closed-day attendance status."""

    PRESENT = "PRESENT"
    PARTIAL = "PARTIAL"
    ABSENT = "ABSENT"
    ON_LEAVE = "ON_LEAVE"
    HOLIDAY = "HOLIDAY"


class LeaveType(str, Enum):
    """Type of the approved leave behind an ON_LEAVE day."""

    PAID = "PAID"
    SICK = "SICK"
    HALF_DAY = "HALF_DAY"
    UNPAID = "UNPAID"


# Share of a standard day paid for each leave type
PAID_LEAVE_SHARE: dict[LeaveType, Decimal] = {
    LeaveType.PAID: Decimal("1"),
    LeaveType.SICK: Decimal("1"),
    LeaveType.HALF_DAY: Decimal("0.5"),
    LeaveType.UNPAID: Decimal("0"),
}


class LineType(str, Enum):
    """Earnings line types."""

    REGULAR = "REGULAR"
    LEAVE = "LEAVE"
    OVERTIME = "OVERTIME"
    DEDUCTION = "DEDUCTION"


@dataclass(frozen=True)
class AttendanceFact:
    """One employee's worked and overtime seconds for one calendar day."""

    work_date: date
    worked_seconds: int
    overtime_seconds: int = 0
    status: AttendanceStatus = AttendanceStatus.PRESENT
    leave_type: LeaveType | None = None

    @property
    def paid_leave_days(self) -> Decimal:
        """Paid share of the day when on leave. Leave of unknown type is paid in full."""
        if AttendanceStatus(self.status) != AttendanceStatus.ON_LEAVE:
            return Decimal("0")
        if self.leave_type is None:
            return Decimal("1")
        return PAID_LEAVE_SHARE[LeaveType(self.leave_type)]

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "work_date": self.work_date.isoformat(),
            "worked_seconds": self.worked_seconds,
            "overtime_seconds": self.overtime_seconds,
            "status": AttendanceStatus(self.status).value,
            "leave_type": LeaveType(self.leave_type).value if self.leave_type else None,
        }


@dataclass(frozen=True)
class SalaryProfile:
    """Salary configuration plus the company defaults it falls back on.

    Exactly one of ``hourly_rate``/``monthly_salary`` is authoritative,
    selected by ``salary_type``.
    """

    salary_type: SalaryType
    hourly_rate: Decimal = Decimal("0")
    monthly_salary: Decimal = Decimal("0")
    expected_hours_per_day: Decimal = Decimal("8")
    min_daily_hours: Decimal = Decimal("0")
    override_overtime_rate: Decimal | None = None
    currency: str = "BDT"
    company_overtime_rate: Decimal = Decimal("1.5")
    standard_working_days: int = 22

    @property
    def overtime_rate(self) -> Decimal:
        if self.override_overtime_rate is not None:
            return self.override_overtime_rate
        return self.company_overtime_rate

    @property
    def virtual_hourly_rate(self) -> Decimal:
        """Monthly salary expressed per hour of a standard month."""
        return self.monthly_salary / (
            Decimal(self.standard_working_days) * self.expected_hours_per_day
        )

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "salary_type": SalaryType(self.salary_type).value,
            "hourly_rate": str(self.hourly_rate),
            "monthly_salary": str(self.monthly_salary),
            "expected_hours_per_day": str(self.expected_hours_per_day),
            "min_daily_hours": str(self.min_daily_hours),
            "overtime_rate": str(self.overtime_rate),
            "currency": self.currency,
            "standard_working_days": self.standard_working_days,
        }


@dataclass(frozen=True)
class EarningsLine:
    """A single explained component of an earnings breakdown."""

    line_type: LineType
    amount: Decimal
    quantity: Decimal | None = None
    rate: Decimal | None = None
    explanation: str | None = None


@dataclass(frozen=True)
class EarningsBreakdown:
    """Result of calculating one employee's earnings for one window."""

    start_date: date
    end_date: date
    salary_type: SalaryType
    currency: str

    regular_amount: Decimal
    leave_amount: Decimal
    overtime_amount: Decimal
    gross_amount: Decimal
    deductions: Decimal
    net_amount: Decimal

    worked_hours: Decimal
    overtime_hours: Decimal
    worked_days: int
    leave_days: Decimal
    leave_hours: Decimal
    effective_hourly_rate: Decimal
    overtime_rate: Decimal

    fingerprint: str
    lines: tuple[EarningsLine, ...] = field(default_factory=tuple)

    @property
    def has_work(self) -> bool:
        return (
            self.worked_hours > 0
            or self.overtime_hours > 0
            or self.worked_days > 0
            or self.leave_days > 0
        )
