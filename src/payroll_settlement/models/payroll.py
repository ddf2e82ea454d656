"""Pay period and invoice models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_settlement.models.base import Base, TimestampMixin, UpdatedAtMixin


class PayPeriod(Base, TimestampMixin):
    """Company-scoped billing window."""

    __tablename__ = "pay_period"

    pay_period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="RESTRICT"),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    state: Mapped[str] = mapped_column(String, nullable=False, default="OPEN")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="BDT")
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    locked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    settled_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "company_id",
            "start_date",
            "end_date",
            name="pay_period_company_dates_unique",
        ),
        CheckConstraint(
            "state IN ('OPEN', 'LOCKED', 'SETTLED')",
            name="pay_period_state_check",
        ),
        CheckConstraint("end_date >= start_date", name="pay_period_dates_check"),
    )

    invoices: Mapped[list[Invoice]] = relationship(back_populates="pay_period")


class Invoice(Base, TimestampMixin, UpdatedAtMixin):
    """Settlement record of one employee's earnings for one pay period."""

    __tablename__ = "invoice"

    invoice_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_period_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_period.pay_period_id", ondelete="RESTRICT"),
        nullable=False,
    )
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="RESTRICT"),
        nullable=False,
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.user_id", ondelete="RESTRICT"),
        nullable=False,
    )
    state: Mapped[str] = mapped_column(String, nullable=False, default="DRAFT")

    # Amounts (fixed at generation time)
    gross_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    regular_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    leave_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    overtime_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    deductions: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    net_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    # Breakdown
    salary_type: Mapped[str] = mapped_column(String, nullable=False, default="HOURLY")
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal("0"))
    overtime_rate: Mapped[Decimal] = mapped_column(Numeric(6, 3), nullable=False, default=Decimal("1.5"))
    worked_hours: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False, default=Decimal("0"))
    overtime_hours: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False, default=Decimal("0"))
    worked_days: Mapped[int] = mapped_column(nullable=False, default=0)
    leave_days: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    leave_hours: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False, default=Decimal("0"))
    calculation_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint("pay_period_id", "user_id", name="invoice_period_user_unique"),
        CheckConstraint(
            "state IN ('DRAFT', 'APPROVED', 'PAID')",
            name="invoice_state_check",
        ),
        CheckConstraint("net_amount >= 0", name="invoice_net_nonnegative"),
        CheckConstraint("deductions >= 0", name="invoice_deductions_nonnegative"),
        Index("invoice_user_created_idx", "user_id", "created_at"),
    )

    pay_period: Mapped[PayPeriod] = relationship(back_populates="invoices")
