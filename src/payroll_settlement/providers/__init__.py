"""Collaborator ports and their SQL implementations."""

from payroll_settlement.providers.base import (
    AttendanceProvider,
    DeductionProvider,
    EmployeeDirectory,
    EmployeeRecord,
    SalaryProvider,
    ZeroDeductionProvider,
)
from payroll_settlement.providers.sql import (
    SqlAttendanceProvider,
    SqlEmployeeDirectory,
    SqlSalaryProvider,
)

__all__ = [
    "AttendanceProvider",
    "DeductionProvider",
    "EmployeeDirectory",
    "EmployeeRecord",
    "SalaryProvider",
    "ZeroDeductionProvider",
    "SqlAttendanceProvider",
    "SqlEmployeeDirectory",
    "SqlSalaryProvider",
]
