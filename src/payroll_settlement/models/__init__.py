"""ORM models for the settlement engine."""

from payroll_settlement.models.base import Base, TimestampMixin, UpdatedAtMixin
from payroll_settlement.models.payroll import Invoice, PayPeriod
from payroll_settlement.models.wallet import TransactionType, Wallet, WalletTransaction
from payroll_settlement.models.workforce import (
    Company,
    DailyAttendance,
    Employee,
    SalaryConfig,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "UpdatedAtMixin",
    "Company",
    "DailyAttendance",
    "Employee",
    "Invoice",
    "PayPeriod",
    "SalaryConfig",
    "TransactionType",
    "Wallet",
    "WalletTransaction",
]
