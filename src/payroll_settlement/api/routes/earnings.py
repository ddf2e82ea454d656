"""Current earnings preview endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from payroll_settlement.api.dependencies import AdminCaller, AppSettings, Caller, DbSession
from payroll_settlement.api.schemas import EarningsResponse, ErrorResponse
from payroll_settlement.database import with_deadline
from payroll_settlement.errors import NotFound
from payroll_settlement.services.invoice_service import InvoiceService

router = APIRouter(prefix="/earnings", tags=["earnings"])


@router.get(
    "/me",
    response_model=EarningsResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_my_earnings(
    db: DbSession,
    settings: AppSettings,
    caller: Caller,
) -> EarningsResponse:
    """Preview the caller's earnings for the current month so far."""
    service = InvoiceService.from_settings(db, settings)
    breakdown = await with_deadline(
        service.preview_earnings(caller.user_id),
        settings.operation_timeout_seconds,
    )
    return EarningsResponse.model_validate(breakdown)


@router.get(
    "/{user_id}",
    response_model=EarningsResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_user_earnings(
    db: DbSession,
    settings: AppSettings,
    caller: AdminCaller,
    user_id: Annotated[UUID, Path()],
) -> EarningsResponse:
    """Preview a company member's earnings for the current month so far."""
    service = InvoiceService.from_settings(db, settings)

    async def _preview() -> EarningsResponse:
        users = await service.directory.get_users([user_id])
        employee = users.get(user_id)
        if employee is None or employee.company_id != caller.company_id:
            raise NotFound("employee", user_id)
        breakdown = await service.preview_earnings(user_id)
        return EarningsResponse.model_validate(breakdown)

    return await with_deadline(_preview(), settings.operation_timeout_seconds)
