"""Invoice API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from payroll_settlement.api.dependencies import AdminCaller, AppSettings, Caller, DbSession
from payroll_settlement.api.schemas import (
    ErrorResponse,
    InvoiceResponse,
    PaymentResponse,
    WalletTransactionResponse,
)
from payroll_settlement.database import with_deadline
from payroll_settlement.services.invoice_service import InvoiceService
from payroll_settlement.services.settlement_service import SettlementService

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get(
    "/mine",
    response_model=list[InvoiceResponse],
)
async def list_my_invoices(
    db: DbSession,
    settings: AppSettings,
    caller: Caller,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> list[InvoiceResponse]:
    """List the caller's own invoices, newest first."""
    service = InvoiceService(db)
    invoices = await with_deadline(
        service.list_my_invoices(caller.user_id, limit=limit),
        settings.operation_timeout_seconds,
    )
    return [InvoiceResponse.model_validate(inv) for inv in invoices]


@router.post(
    "/{invoice_id}/approve",
    response_model=InvoiceResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def approve_invoice(
    db: DbSession,
    settings: AppSettings,
    caller: AdminCaller,
    invoice_id: Annotated[UUID, Path()],
) -> InvoiceResponse:
    """Approve a DRAFT invoice."""
    service = SettlementService(db)

    async def _approve() -> InvoiceResponse:
        invoice = await service.approve_invoice(invoice_id, company_id=caller.company_id)
        await db.commit()
        return InvoiceResponse.model_validate(invoice)

    return await with_deadline(_approve(), settings.operation_timeout_seconds)


@router.post(
    "/{invoice_id}/pay",
    response_model=PaymentResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def pay_invoice(
    db: DbSession,
    settings: AppSettings,
    caller: AdminCaller,
    invoice_id: Annotated[UUID, Path()],
) -> PaymentResponse:
    """Pay an APPROVED invoice into the employee's wallet."""
    service = SettlementService(db)

    async def _pay() -> PaymentResponse:
        result = await service.pay_invoice(invoice_id, company_id=caller.company_id)
        await db.commit()
        return PaymentResponse(
            invoice=InvoiceResponse.model_validate(result.invoice),
            transaction=WalletTransactionResponse.model_validate(result.transaction),
            was_duplicate=result.was_duplicate,
        )

    return await with_deadline(_pay(), settings.operation_timeout_seconds)
