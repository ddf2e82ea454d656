"""API routes."""

from payroll_settlement.api.routes.earnings import router as earnings_router
from payroll_settlement.api.routes.health import router as health_router
from payroll_settlement.api.routes.invoices import router as invoices_router
from payroll_settlement.api.routes.pay_periods import router as pay_periods_router
from payroll_settlement.api.routes.wallet import router as wallet_router

__all__ = [
    "earnings_router",
    "health_router",
    "invoices_router",
    "pay_periods_router",
    "wallet_router",
]
