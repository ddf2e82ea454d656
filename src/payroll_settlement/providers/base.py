"""Protocols for the collaborators the settlement engine reads from.

Attendance capture, salary editing, penalty policy, and the company roster
are owned by other parts of the product. The engine only depends on these
narrow read interfaces.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Protocol
from uuid import UUID

from payroll_settlement.calculators.types import AttendanceFact, SalaryProfile


@dataclass(frozen=True)
class EmployeeRecord:
    """Identity fields used for invoice generation and enrichment."""

    user_id: UUID
    company_id: UUID
    email: str
    name: str | None = None
    role: str = "EMPLOYEE"


class AttendanceProvider(Protocol):
    """Source of closed-day attendance facts."""

    async def get_attendance_facts(
        self,
        company_id: UUID,
        user_id: UUID,
        start_date: date,
        end_date: date,
    ) -> list[AttendanceFact]:
        """Return the employee's facts within the window, ordered by date."""
        ...


class SalaryProvider(Protocol):
    """Source of salary configuration."""

    async def get_salary_profile(self, user_id: UUID) -> SalaryProfile | None:
        """Return the salary profile with company defaults, or None if unset."""
        ...


class DeductionProvider(Protocol):
    """Source of pre-computed deductions (penalty policy lives elsewhere)."""

    async def get_deductions(self, user_id: UUID, start_date: date, end_date: date) -> Decimal:
        """Return the total deduction for the window."""
        ...


class EmployeeDirectory(Protocol):
    """Company roster lookups."""

    async def list_active_employees(
        self, company_id: UUID, start_date: date, end_date: date
    ) -> list[EmployeeRecord]:
        """Return billable employees whose employment overlaps the window."""
        ...

    async def get_users(self, user_ids: Iterable[UUID]) -> dict[UUID, EmployeeRecord]:
        """Return records for the given ids; unknown ids are omitted."""
        ...


class ZeroDeductionProvider:
    """Deduction provider used when no penalty policy is configured."""

    async def get_deductions(self, user_id: UUID, start_date: date, end_date: date) -> Decimal:
        return Decimal("0")
