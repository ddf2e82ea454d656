"""Pay period API endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from payroll_settlement.api.dependencies import AdminCaller, AppSettings, CallerContext, DbSession
from payroll_settlement.api.schemas import (
    ErrorResponse,
    GenerationError,
    GenerationResponse,
    InvoiceResponse,
    InvoiceWithEmployee,
    PayAllResponse,
    PaymentOutcomeResponse,
    PayPeriodCreate,
    PayPeriodCreateResponse,
    PayPeriodListItem,
    PayPeriodResponse,
)
from payroll_settlement.database import with_deadline
from payroll_settlement.errors import NotFound
from payroll_settlement.models import PayPeriod
from payroll_settlement.services.invoice_service import InvoiceService
from payroll_settlement.services.pay_period_service import PayPeriodService
from payroll_settlement.services.settlement_service import SettlementService
from payroll_settlement.services.state_machine import PayPeriodStateMachine

router = APIRouter(prefix="/pay-periods", tags=["pay-periods"])


async def _get_company_period(
    service: PayPeriodService, pay_period_id: UUID, caller: CallerContext
) -> PayPeriod:
    period = await service.get_pay_period(pay_period_id)
    if period.company_id != caller.company_id:
        raise NotFound("pay_period", pay_period_id)
    return period


@router.get(
    "",
    response_model=list[PayPeriodListItem],
)
async def list_pay_periods(
    db: DbSession,
    settings: AppSettings,
    caller: AdminCaller,
    year: Annotated[int | None, Query(ge=2000, le=2100)] = None,
) -> list[PayPeriodListItem]:
    """List the company's pay periods for a year (default: current), most recent first."""
    service = PayPeriodService(db)
    summaries = await with_deadline(
        service.list_pay_periods(caller.company_id, year or date.today().year),
        settings.operation_timeout_seconds,
    )
    return [
        PayPeriodListItem(
            **PayPeriodResponse.model_validate(s.period).model_dump(),
            invoice_count=s.invoice_count,
            draft_count=s.draft_count,
            approved_count=s.approved_count,
            paid_count=s.paid_count,
        )
        for s in summaries
    ]


@router.post(
    "",
    response_model=PayPeriodCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def create_pay_period(
    db: DbSession,
    settings: AppSettings,
    caller: AdminCaller,
    payload: PayPeriodCreate,
) -> PayPeriodCreateResponse:
    """Create the month's pay period and generate its invoices.

    Idempotent: an existing period is returned, and regenerated while OPEN.
    """
    service = PayPeriodService(db)
    invoices = InvoiceService.from_settings(db, settings)

    async def _create() -> PayPeriodCreateResponse:
        period = await service.ensure_pay_period(caller.company_id, payload.year, payload.month)
        if PayPeriodStateMachine.can_generate_invoices(period.state):
            result = await invoices.generate_invoices(period.pay_period_id)
            period = result.period
            invoice_count = len(result.invoices)
        else:
            invoice_count = await service.count_invoices(period.pay_period_id)
        await db.commit()
        return PayPeriodCreateResponse(
            period=PayPeriodResponse.model_validate(period),
            invoice_count=invoice_count,
        )

    return await with_deadline(_create(), settings.operation_timeout_seconds)


@router.post(
    "/{pay_period_id}/lock",
    response_model=PayPeriodResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def lock_pay_period(
    db: DbSession,
    settings: AppSettings,
    caller: AdminCaller,
    pay_period_id: Annotated[UUID, Path()],
) -> PayPeriodResponse:
    """Lock an OPEN pay period, stopping invoice regeneration."""
    service = PayPeriodService(db)

    async def _lock() -> PayPeriodResponse:
        await _get_company_period(service, pay_period_id, caller)
        period = await service.lock_pay_period(pay_period_id)
        await db.commit()
        return PayPeriodResponse.model_validate(period)

    return await with_deadline(_lock(), settings.operation_timeout_seconds)


@router.post(
    "/{pay_period_id}/generate",
    response_model=GenerationResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def generate_invoices(
    db: DbSession,
    settings: AppSettings,
    caller: AdminCaller,
    pay_period_id: Annotated[UUID, Path()],
) -> GenerationResponse:
    """Generate or refresh the invoices of an OPEN pay period."""
    periods = PayPeriodService(db)
    invoices = InvoiceService.from_settings(db, settings)

    async def _generate() -> GenerationResponse:
        await _get_company_period(periods, pay_period_id, caller)
        result = await invoices.generate_invoices(pay_period_id)
        await db.commit()
        return GenerationResponse(
            period=PayPeriodResponse.model_validate(result.period),
            invoices=[InvoiceResponse.model_validate(inv) for inv in result.invoices],
            skipped=result.skipped,
            errors=[GenerationError(user_id=e.user_id, error=e.error) for e in result.errors],
        )

    return await with_deadline(_generate(), settings.operation_timeout_seconds)


@router.post(
    "/{pay_period_id}/pay-all",
    response_model=PayAllResponse,
    responses={404: {"model": ErrorResponse}},
)
async def pay_all_invoices(
    db: DbSession,
    settings: AppSettings,
    caller: AdminCaller,
    pay_period_id: Annotated[UUID, Path()],
) -> PayAllResponse:
    """Pay every APPROVED invoice of the period."""
    service = SettlementService(db)
    outcomes = await with_deadline(
        service.pay_all_invoices(pay_period_id, company_id=caller.company_id),
        settings.operation_timeout_seconds,
    )
    paid = sum(1 for o in outcomes if o.success)
    return PayAllResponse(
        results=[PaymentOutcomeResponse.model_validate(o) for o in outcomes],
        paid_count=paid,
        failed_count=len(outcomes) - paid,
    )


@router.get(
    "/{pay_period_id}/invoices",
    response_model=list[InvoiceWithEmployee],
    responses={404: {"model": ErrorResponse}},
)
async def list_period_invoices(
    db: DbSession,
    settings: AppSettings,
    caller: AdminCaller,
    pay_period_id: Annotated[UUID, Path()],
) -> list[InvoiceWithEmployee]:
    """List a pay period's invoices with employee details."""
    service = InvoiceService(db)
    views = await with_deadline(
        service.list_invoices(pay_period_id, company_id=caller.company_id),
        settings.operation_timeout_seconds,
    )
    return [
        InvoiceWithEmployee(
            **InvoiceResponse.model_validate(v.invoice).model_dump(),
            employee_name=v.employee.name if v.employee else None,
            employee_email=v.employee.email if v.employee else None,
        )
        for v in views
    ]
