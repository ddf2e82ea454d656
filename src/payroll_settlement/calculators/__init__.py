"""Earnings calculation."""

from payroll_settlement.calculators.earnings import calculate_earnings, round_to_cents
from payroll_settlement.calculators.types import (
    AttendanceFact,
    AttendanceStatus,
    EarningsBreakdown,
    EarningsLine,
    LeaveType,
    LineType,
    SalaryProfile,
    SalaryType,
)

__all__ = [
    "calculate_earnings",
    "round_to_cents",
    "AttendanceFact",
    "AttendanceStatus",
    "EarningsBreakdown",
    "EarningsLine",
    "LeaveType",
    "LineType",
    "SalaryProfile",
    "SalaryType",
]
