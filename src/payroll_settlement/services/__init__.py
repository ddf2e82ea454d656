"""Settlement engine services."""

from payroll_settlement.services.invoice_service import (
    InvoiceGenerationError,
    InvoiceGenerationResult,
    InvoiceService,
    InvoiceView,
)
from payroll_settlement.services.pay_period_service import (
    PayPeriodService,
    PayPeriodSummary,
    month_bounds,
)
from payroll_settlement.services.settlement_service import (
    InvoicePaymentOutcome,
    PaymentResult,
    SettlementService,
)
from payroll_settlement.services.state_machine import (
    InvoiceState,
    InvoiceStateMachine,
    PayPeriodState,
    PayPeriodStateMachine,
)
from payroll_settlement.services.wallet_service import CreditResult, WalletService, WalletView

__all__ = [
    "CreditResult",
    "InvoiceGenerationError",
    "InvoiceGenerationResult",
    "InvoicePaymentOutcome",
    "InvoiceService",
    "InvoiceState",
    "InvoiceStateMachine",
    "InvoiceView",
    "PaymentResult",
    "PayPeriodService",
    "PayPeriodState",
    "PayPeriodStateMachine",
    "PayPeriodSummary",
    "SettlementService",
    "WalletService",
    "WalletView",
    "month_bounds",
]
