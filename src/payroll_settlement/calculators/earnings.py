"""Earnings calculator: salary configuration + attendance facts -> breakdown.

The calculator is a pure function. It reads no clock, touches no storage,
and runs its Decimal arithmetic in a private context, so identical inputs
always produce an identical breakdown (including its fingerprint). Invoice
regeneration relies on this to be auditable.

Pipeline (stable order):
1) Select facts inside [start_date, end_date], ordered by date
2) Sum worked and overtime seconds, count days present
3) Resolve the effective hourly rate (hourly rate, or the virtual hourly
   rate of a monthly salary)
4) Regular pay: hours x rate (HOURLY) or salary prorated by days present
   (MONTHLY)
5) Paid leave: leave days at the daily salary (MONTHLY) or leave days x
   expected hours x rate (HOURLY)
6) Overtime pay: overtime hours x rate x overtime multiplier
7) Net = gross - deductions, floored at zero
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import ROUND_HALF_UP, Context, Decimal, localcontext
from typing import Iterable

from payroll_settlement.calculators.types import (
    AttendanceFact,
    AttendanceStatus,
    EarningsBreakdown,
    EarningsLine,
    LineType,
    SalaryProfile,
    SalaryType,
)

CENTS = Decimal("0.01")
HOURS_PRECISION = Decimal("0.0001")
SECONDS_PER_HOUR = Decimal(3600)
ZERO = Decimal("0")

_PRESENT_STATUSES = {AttendanceStatus.PRESENT, AttendanceStatus.PARTIAL}


def round_to_cents(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_earnings(
    profile: SalaryProfile,
    facts: Iterable[AttendanceFact],
    start_date: date,
    end_date: date,
    deductions: Decimal = ZERO,
) -> EarningsBreakdown:
    """Calculate one employee's earnings for a window.

    Args:
        profile: Salary configuration with company defaults applied
        facts: Attendance facts; facts outside the window are ignored
        start_date: First day of the window (inclusive)
        end_date: Last day of the window (inclusive)
        deductions: Pre-computed deduction amount (penalties etc.)

    Raises:
        ValueError: On an inverted window, negative deductions, or an
            unusable salary profile
    """
    if end_date < start_date:
        raise ValueError(f"end_date {end_date} is before start_date {start_date}")
    if deductions < 0:
        raise ValueError("deductions must not be negative")
    if profile.expected_hours_per_day <= 0:
        raise ValueError("expected_hours_per_day must be positive")
    if profile.standard_working_days <= 0:
        raise ValueError("standard_working_days must be positive")

    salary_type = SalaryType(profile.salary_type)
    window = sorted(
        (f for f in facts if start_date <= f.work_date <= end_date),
        key=lambda f: f.work_date,
    )

    with localcontext(Context(prec=28, rounding=ROUND_HALF_UP)):
        worked_seconds = sum(f.worked_seconds for f in window)
        overtime_seconds = sum(f.overtime_seconds for f in window)
        worked_hours = Decimal(worked_seconds) / SECONDS_PER_HOUR
        overtime_hours = Decimal(overtime_seconds) / SECONDS_PER_HOUR
        present_days = sum(1 for f in window if _is_present(f, profile))
        leave_days = sum((f.paid_leave_days for f in window), ZERO)
        leave_hours = leave_days * profile.expected_hours_per_day
        overtime_rate = profile.overtime_rate

        if salary_type == SalaryType.MONTHLY:
            hourly_rate = profile.virtual_hourly_rate
            daily_rate = profile.monthly_salary / Decimal(profile.standard_working_days)
            leave = round_to_cents(leave_days * daily_rate)
            regular = round_to_cents(
                profile.monthly_salary * present_days / Decimal(profile.standard_working_days)
            )
            regular_line = EarningsLine(
                line_type=LineType.REGULAR,
                amount=regular,
                quantity=Decimal(present_days),
                rate=round_to_cents(daily_rate),
                explanation=(
                    f"Monthly salary {profile.monthly_salary} prorated: "
                    f"{present_days}/{profile.standard_working_days} days"
                ),
            )
        else:
            hourly_rate = profile.hourly_rate
            leave = round_to_cents(leave_hours * hourly_rate)
            regular = round_to_cents(worked_hours * hourly_rate)
            regular_line = EarningsLine(
                line_type=LineType.REGULAR,
                amount=regular,
                quantity=worked_hours.quantize(HOURS_PRECISION),
                rate=hourly_rate,
                explanation=f"Regular: {worked_hours.quantize(HOURS_PRECISION)}h @ {hourly_rate}",
            )

        overtime = round_to_cents(overtime_hours * hourly_rate * overtime_rate)
        gross = regular + leave + overtime
        deductions = round_to_cents(deductions)
        net = round_to_cents(max(ZERO, gross - deductions))

        lines = [regular_line]
        if leave_days:
            lines.append(
                EarningsLine(
                    line_type=LineType.LEAVE,
                    amount=leave,
                    quantity=leave_days,
                    explanation=(
                        f"Paid leave: {leave_days} days "
                        f"({leave_hours.quantize(HOURS_PRECISION)}h)"
                    ),
                )
            )
        if overtime_seconds:
            lines.append(
                EarningsLine(
                    line_type=LineType.OVERTIME,
                    amount=overtime,
                    quantity=overtime_hours.quantize(HOURS_PRECISION),
                    rate=(hourly_rate * overtime_rate).quantize(HOURS_PRECISION),
                    explanation=(
                        f"Overtime: {overtime_hours.quantize(HOURS_PRECISION)}h "
                        f"@ {hourly_rate.quantize(HOURS_PRECISION)} x {overtime_rate}"
                    ),
                )
            )
        if deductions:
            lines.append(
                EarningsLine(
                    line_type=LineType.DEDUCTION,
                    amount=-deductions,
                    explanation="Deductions",
                )
            )

        effective_rate = hourly_rate.quantize(HOURS_PRECISION)
        worked_hours = worked_hours.quantize(HOURS_PRECISION)
        overtime_hours = overtime_hours.quantize(HOURS_PRECISION)
        leave_hours = leave_hours.quantize(HOURS_PRECISION)

    fingerprint = compute_fingerprint(
        profile=profile,
        facts=window,
        start_date=start_date,
        end_date=end_date,
        deductions=deductions,
        amounts={
            "regular": regular,
            "leave": leave,
            "overtime": overtime,
            "gross": gross,
            "net": net,
        },
    )

    return EarningsBreakdown(
        start_date=start_date,
        end_date=end_date,
        salary_type=salary_type,
        currency=profile.currency,
        regular_amount=regular,
        leave_amount=leave,
        overtime_amount=overtime,
        gross_amount=gross,
        deductions=deductions,
        net_amount=net,
        worked_hours=worked_hours,
        overtime_hours=overtime_hours,
        worked_days=present_days,
        leave_days=leave_days,
        leave_hours=leave_hours,
        effective_hourly_rate=effective_rate,
        overtime_rate=overtime_rate,
        fingerprint=fingerprint,
        lines=tuple(lines),
    )


def _is_present(fact: AttendanceFact, profile: SalaryProfile) -> bool:
    """A PARTIAL day counts as present only once it reaches min_daily_hours."""
    status = AttendanceStatus(fact.status)
    if status not in _PRESENT_STATUSES:
        return False
    if status == AttendanceStatus.PARTIAL and profile.min_daily_hours > 0:
        return Decimal(fact.worked_seconds) >= profile.min_daily_hours * SECONDS_PER_HOUR
    return True


def compute_fingerprint(
    *,
    profile: SalaryProfile,
    facts: list[AttendanceFact],
    start_date: date,
    end_date: date,
    deductions: Decimal,
    amounts: dict[str, Decimal],
) -> str:
    """Compute a deterministic SHA-256 of everything that shaped a breakdown."""
    data = {
        "window": [start_date.isoformat(), end_date.isoformat()],
        "profile": profile.to_canonical_dict(),
        "facts": [f.to_canonical_dict() for f in facts],
        "deductions": str(deductions),
        "amounts": {k: str(v) for k, v in amounts.items()},
    }
    json_str = json.dumps(data, sort_keys=True)
    return hashlib.sha256(json_str.encode()).hexdigest()
