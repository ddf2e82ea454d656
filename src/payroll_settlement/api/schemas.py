"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from payroll_settlement.calculators.types import LineType, SalaryType


# ============================================================================
# Pay period schemas
# ============================================================================


class PayPeriodCreate(BaseModel):
    """Schema for creating (or fetching) a month's pay period."""

    year: int = Field(ge=2000, le=2100)
    month: int = Field(ge=1, le=12)


class PayPeriodResponse(BaseModel):
    """Schema for pay period response."""

    model_config = ConfigDict(from_attributes=True)

    pay_period_id: UUID
    company_id: UUID
    start_date: date
    end_date: date
    state: str
    currency: str
    total_amount: Decimal
    locked_at: datetime | None = None
    settled_at: datetime | None = None
    created_at: datetime


class PayPeriodListItem(PayPeriodResponse):
    """Pay period with invoice counts by state."""

    invoice_count: int = 0
    draft_count: int = 0
    approved_count: int = 0
    paid_count: int = 0


class PayPeriodCreateResponse(BaseModel):
    """Schema for pay period creation response."""

    period: PayPeriodResponse
    invoice_count: int


# ============================================================================
# Invoice schemas
# ============================================================================


class InvoiceResponse(BaseModel):
    """Schema for invoice response."""

    model_config = ConfigDict(from_attributes=True)

    invoice_id: UUID
    pay_period_id: UUID
    company_id: UUID
    user_id: UUID
    state: str

    gross_amount: Decimal
    regular_amount: Decimal
    leave_amount: Decimal
    overtime_amount: Decimal
    deductions: Decimal
    net_amount: Decimal
    currency: str

    salary_type: str
    hourly_rate: Decimal
    overtime_rate: Decimal
    worked_hours: Decimal
    overtime_hours: Decimal
    worked_days: int
    leave_days: Decimal
    leave_hours: Decimal
    calculation_hash: str

    approved_at: datetime | None = None
    paid_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class InvoiceWithEmployee(InvoiceResponse):
    """Invoice enriched with the employee it pays."""

    employee_name: str | None = None
    employee_email: str | None = None


class GenerationError(BaseModel):
    """A per-employee generation failure."""

    user_id: UUID
    error: str


class GenerationResponse(BaseModel):
    """Schema for invoice generation response."""

    period: PayPeriodResponse
    invoices: list[InvoiceResponse]
    skipped: list[UUID]
    errors: list[GenerationError]


# ============================================================================
# Wallet schemas
# ============================================================================


class WalletTransactionResponse(BaseModel):
    """Schema for wallet transaction response."""

    model_config = ConfigDict(from_attributes=True)

    wallet_transaction_id: UUID
    wallet_id: UUID
    amount: Decimal
    type: str
    reference_id: str
    description: str | None = None
    created_at: datetime


class WalletResponse(BaseModel):
    """Schema for wallet response."""

    model_config = ConfigDict(from_attributes=True)

    wallet_id: UUID
    user_id: UUID
    balance: Decimal
    total_earned: Decimal
    total_withdrawn: Decimal
    currency: str
    transactions: list[WalletTransactionResponse] = []


# ============================================================================
# Payment schemas
# ============================================================================


class PaymentResponse(BaseModel):
    """Schema for single invoice payment response."""

    invoice: InvoiceResponse
    transaction: WalletTransactionResponse
    was_duplicate: bool = False


class PaymentOutcomeResponse(BaseModel):
    """Per-invoice result of a bulk payment."""

    model_config = ConfigDict(from_attributes=True)

    invoice_id: UUID
    user_id: UUID
    amount: Decimal
    success: bool
    error: str | None = None


class PayAllResponse(BaseModel):
    """Schema for bulk payment response."""

    results: list[PaymentOutcomeResponse]
    paid_count: int
    failed_count: int


# ============================================================================
# Earnings schemas
# ============================================================================


class EarningsLineResponse(BaseModel):
    """Schema for one explained earnings line."""

    model_config = ConfigDict(from_attributes=True)

    line_type: LineType
    amount: Decimal
    quantity: Decimal | None = None
    rate: Decimal | None = None
    explanation: str | None = None


class EarningsResponse(BaseModel):
    """Schema for current earnings preview."""

    model_config = ConfigDict(from_attributes=True)

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
    lines: list[EarningsLineResponse] = []


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
