"""Unit tests for the earnings calculator."""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from hypothesis import given, settings, strategies as st

from payroll_settlement.calculators import (
    AttendanceFact,
    AttendanceStatus,
    LeaveType,
    LineType,
    SalaryProfile,
    SalaryType,
    calculate_earnings,
    round_to_cents,
)

START = date(2024, 3, 1)
END = date(2024, 3, 31)


def hourly_profile(**overrides) -> SalaryProfile:
    values = {"salary_type": SalaryType.HOURLY, "hourly_rate": Decimal("300")}
    values.update(overrides)
    return SalaryProfile(**values)


def monthly_profile(**overrides) -> SalaryProfile:
    values = {
        "salary_type": SalaryType.MONTHLY,
        "monthly_salary": Decimal("66000"),
        "expected_hours_per_day": Decimal("8"),
    }
    values.update(overrides)
    return SalaryProfile(**values)


def day(d: int, worked_hours: int = 8, overtime_hours: int = 0, **kwargs) -> AttendanceFact:
    return AttendanceFact(
        work_date=date(2024, 3, d),
        worked_seconds=worked_hours * 3600,
        overtime_seconds=overtime_hours * 3600,
        **kwargs,
    )


class TestRounding:
    """Test cent rounding."""

    def test_rounds_half_up(self):
        assert round_to_cents(Decimal("0.025")) == Decimal("0.03")
        assert round_to_cents(Decimal("0.024")) == Decimal("0.02")
        assert round_to_cents(Decimal("2.675")) == Decimal("2.68")


class TestHourlyEarnings:
    """Test hourly pay calculation."""

    def test_hourly_with_overtime(self):
        """8h worked and 1h overtime at 300/h with 1.5x overtime nets 2850."""
        breakdown = calculate_earnings(
            hourly_profile(), [day(4, worked_hours=8, overtime_hours=1)], START, END
        )

        assert breakdown.regular_amount == Decimal("2400.00")
        assert breakdown.overtime_amount == Decimal("450.00")
        assert breakdown.gross_amount == Decimal("2850.00")
        assert breakdown.net_amount == Decimal("2850.00")
        assert breakdown.worked_hours == Decimal("8.0000")
        assert breakdown.overtime_hours == Decimal("1.0000")
        assert breakdown.worked_days == 1
        assert breakdown.overtime_rate == Decimal("1.5")

    def test_override_overtime_rate_wins(self):
        breakdown = calculate_earnings(
            hourly_profile(override_overtime_rate=Decimal("2")),
            [day(4, worked_hours=0, overtime_hours=1)],
            START,
            END,
        )

        assert breakdown.overtime_amount == Decimal("600.00")
        assert breakdown.overtime_rate == Decimal("2")

    def test_company_overtime_rate_is_default(self):
        breakdown = calculate_earnings(
            hourly_profile(company_overtime_rate=Decimal("1.25")),
            [day(4, worked_hours=0, overtime_hours=2)],
            START,
            END,
        )

        assert breakdown.overtime_amount == Decimal("750.00")

    def test_sub_cent_amounts_round_half_up(self):
        """90 seconds at 1/h is exactly 0.025."""
        fact = AttendanceFact(work_date=date(2024, 3, 4), worked_seconds=90)
        breakdown = calculate_earnings(hourly_profile(hourly_rate=Decimal("1")), [fact], START, END)

        assert breakdown.regular_amount == Decimal("0.03")

    def test_no_facts_is_zero(self):
        breakdown = calculate_earnings(hourly_profile(), [], START, END)

        assert breakdown.gross_amount == Decimal("0.00")
        assert breakdown.net_amount == Decimal("0.00")
        assert breakdown.has_work is False


class TestMonthlyEarnings:
    """Test monthly salary proration."""

    def test_one_day_prorated(self):
        """66000 over 22 days of 8h gives a 375/h virtual rate; one day pays 3000."""
        profile = monthly_profile()
        breakdown = calculate_earnings(profile, [day(4)], START, END)

        assert profile.virtual_hourly_rate == Decimal("375")
        assert breakdown.regular_amount == Decimal("3000.00")
        assert breakdown.net_amount == Decimal("3000.00")
        assert breakdown.effective_hourly_rate == Decimal("375.0000")

    def test_overtime_uses_virtual_hourly_rate(self):
        breakdown = calculate_earnings(
            monthly_profile(), [day(4, worked_hours=8, overtime_hours=1)], START, END
        )

        assert breakdown.overtime_amount == Decimal("562.50")
        assert breakdown.gross_amount == Decimal("3562.50")

    def test_full_standard_month_pays_full_salary(self):
        facts = [day(d) for d in range(1, 23)]
        breakdown = calculate_earnings(monthly_profile(), facts, START, END)

        assert breakdown.worked_days == 22
        assert breakdown.regular_amount == Decimal("66000.00")

    def test_absent_and_holiday_days_are_unpaid(self):
        facts = [
            day(4),
            day(5, worked_hours=0, status=AttendanceStatus.ABSENT),
            day(7, worked_hours=0, status=AttendanceStatus.HOLIDAY),
        ]
        breakdown = calculate_earnings(monthly_profile(), facts, START, END)

        assert breakdown.worked_days == 1
        assert breakdown.regular_amount == Decimal("3000.00")
        assert breakdown.gross_amount == Decimal("3000.00")

    def test_partial_day_counts_once_minimum_reached(self):
        profile = monthly_profile(min_daily_hours=Decimal("4"))
        facts = [
            day(4, worked_hours=5, status=AttendanceStatus.PARTIAL),
            day(5, worked_hours=3, status=AttendanceStatus.PARTIAL),
        ]
        breakdown = calculate_earnings(profile, facts, START, END)

        assert breakdown.worked_days == 1
        assert breakdown.regular_amount == Decimal("3000.00")

    def test_partial_day_counts_without_minimum(self):
        facts = [day(4, worked_hours=2, status=AttendanceStatus.PARTIAL)]
        breakdown = calculate_earnings(monthly_profile(), facts, START, END)

        assert breakdown.worked_days == 1


class TestPaidLeave:
    """Test pay for ON_LEAVE days."""

    def leave(self, d: int, leave_type: LeaveType | None = None) -> AttendanceFact:
        return day(d, worked_hours=0, status=AttendanceStatus.ON_LEAVE, leave_type=leave_type)

    def test_monthly_leave_day_pays_daily_rate(self):
        """One paid leave day of a 66000 salary pays 66000 / 22."""
        breakdown = calculate_earnings(monthly_profile(), [self.leave(4)], START, END)

        assert breakdown.worked_days == 0
        assert breakdown.regular_amount == Decimal("0.00")
        assert breakdown.leave_days == Decimal("1")
        assert breakdown.leave_hours == Decimal("8.0000")
        assert breakdown.leave_amount == Decimal("3000.00")
        assert breakdown.net_amount == Decimal("3000.00")
        assert breakdown.has_work is True

    def test_hourly_leave_pays_expected_hours(self):
        facts = [day(4), self.leave(5, LeaveType.SICK)]
        breakdown = calculate_earnings(hourly_profile(), facts, START, END)

        assert breakdown.regular_amount == Decimal("2400.00")
        assert breakdown.leave_hours == Decimal("8.0000")
        assert breakdown.leave_amount == Decimal("2400.00")
        assert breakdown.gross_amount == Decimal("4800.00")

    def test_half_day_leave_pays_half(self):
        breakdown = calculate_earnings(
            hourly_profile(), [self.leave(4, LeaveType.HALF_DAY)], START, END
        )

        assert breakdown.leave_days == Decimal("0.5")
        assert breakdown.leave_hours == Decimal("4.0000")
        assert breakdown.leave_amount == Decimal("1200.00")

    def test_unpaid_leave_pays_nothing(self):
        breakdown = calculate_earnings(
            monthly_profile(), [self.leave(4, LeaveType.UNPAID)], START, END
        )

        assert breakdown.leave_days == Decimal("0")
        assert breakdown.leave_amount == Decimal("0.00")
        assert breakdown.net_amount == Decimal("0.00")
        assert breakdown.has_work is False

    def test_leave_line_is_explained(self):
        breakdown = calculate_earnings(
            monthly_profile(), [day(4), self.leave(5, LeaveType.PAID)], START, END
        )

        leave_lines = [line for line in breakdown.lines if line.line_type == LineType.LEAVE]
        assert len(leave_lines) == 1
        assert leave_lines[0].amount == Decimal("3000.00")
        assert leave_lines[0].quantity == Decimal("1")

    def test_leave_type_changes_fingerprint(self):
        paid = calculate_earnings(hourly_profile(), [self.leave(4, LeaveType.PAID)], START, END)
        half = calculate_earnings(
            hourly_profile(), [self.leave(4, LeaveType.HALF_DAY)], START, END
        )

        assert paid.fingerprint != half.fingerprint


class TestWindowAndDeductions:
    """Test window filtering, deductions and input validation."""

    def test_facts_outside_window_are_ignored(self):
        facts = [
            AttendanceFact(work_date=date(2024, 2, 29), worked_seconds=8 * 3600),
            day(4),
            AttendanceFact(work_date=date(2024, 4, 1), worked_seconds=8 * 3600),
        ]
        breakdown = calculate_earnings(hourly_profile(), facts, START, END)

        assert breakdown.worked_hours == Decimal("8.0000")
        assert breakdown.regular_amount == Decimal("2400.00")

    def test_window_bounds_are_inclusive(self):
        facts = [day(1), day(31)]
        breakdown = calculate_earnings(hourly_profile(), facts, START, END)

        assert breakdown.worked_days == 2

    def test_deductions_reduce_net(self):
        breakdown = calculate_earnings(
            hourly_profile(), [day(4)], START, END, deductions=Decimal("400")
        )

        assert breakdown.gross_amount == Decimal("2400.00")
        assert breakdown.deductions == Decimal("400.00")
        assert breakdown.net_amount == Decimal("2000.00")
        assert breakdown.lines[-1].line_type == LineType.DEDUCTION

    def test_net_is_floored_at_zero(self):
        breakdown = calculate_earnings(
            hourly_profile(), [day(4)], START, END, deductions=Decimal("5000")
        )

        assert breakdown.net_amount == Decimal("0.00")

    def test_negative_deductions_rejected(self):
        with pytest.raises(ValueError):
            calculate_earnings(hourly_profile(), [], START, END, deductions=Decimal("-1"))

    def test_inverted_window_rejected(self):
        with pytest.raises(ValueError):
            calculate_earnings(hourly_profile(), [], END, START)

    def test_zero_expected_hours_rejected(self):
        with pytest.raises(ValueError):
            calculate_earnings(
                monthly_profile(expected_hours_per_day=Decimal("0")), [day(4)], START, END
            )


class TestDeterminism:
    """Test that identical inputs produce identical breakdowns."""

    def test_same_inputs_same_fingerprint(self):
        facts = [day(4, overtime_hours=1), day(5)]
        first = calculate_earnings(hourly_profile(), facts, START, END)
        second = calculate_earnings(hourly_profile(), facts, START, END)

        assert first == second
        assert len(first.fingerprint) == 64

    def test_fact_order_does_not_matter(self):
        facts = [day(4, overtime_hours=1), day(5), day(6, worked_hours=3)]
        forward = calculate_earnings(hourly_profile(), facts, START, END)
        backward = calculate_earnings(hourly_profile(), list(reversed(facts)), START, END)

        assert forward == backward

    def test_different_inputs_different_fingerprint(self):
        first = calculate_earnings(hourly_profile(), [day(4)], START, END)
        second = calculate_earnings(hourly_profile(), [day(5)], START, END)

        assert first.fingerprint != second.fingerprint

    @settings(max_examples=50, deadline=None)
    @given(
        rate=st.decimals(min_value=0, max_value=5000, places=2),
        days=st.lists(
            st.tuples(
                st.integers(min_value=0, max_value=30),
                st.integers(min_value=0, max_value=12 * 3600),
                st.integers(min_value=0, max_value=4 * 3600),
            ),
            max_size=20,
        ),
        deductions=st.decimals(min_value=0, max_value=100000, places=2),
    )
    def test_amounts_are_consistent(self, rate, days, deductions):
        """Gross is regular + leave + overtime, net never negative, and results repeat."""
        facts = [
            AttendanceFact(
                work_date=START + timedelta(days=offset),
                worked_seconds=worked,
                overtime_seconds=overtime,
            )
            for offset, worked, overtime in days
        ]
        profile = hourly_profile(hourly_rate=rate)

        breakdown = calculate_earnings(profile, facts, START, END, deductions=deductions)

        assert breakdown.gross_amount == (
            breakdown.regular_amount + breakdown.leave_amount + breakdown.overtime_amount
        )
        assert breakdown.net_amount >= 0
        assert breakdown.net_amount == max(
            Decimal("0.00"), breakdown.gross_amount - breakdown.deductions
        )
        assert calculate_earnings(profile, facts, START, END, deductions=deductions) == breakdown
