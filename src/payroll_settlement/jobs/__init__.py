"""Scheduled jobs."""

from payroll_settlement.jobs.monthly_payroll import (
    CompanyRunReport,
    MonthlyPayrollJob,
    MonthlyRunReport,
    run_monthly_payroll,
)

__all__ = [
    "CompanyRunReport",
    "MonthlyPayrollJob",
    "MonthlyRunReport",
    "run_monthly_payroll",
]
