"""Wallet API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from payroll_settlement.api.dependencies import AdminCaller, AppSettings, Caller, DbSession
from payroll_settlement.api.schemas import ErrorResponse, WalletResponse, WalletTransactionResponse
from payroll_settlement.database import with_deadline
from payroll_settlement.errors import NotFound
from payroll_settlement.providers import SqlEmployeeDirectory
from payroll_settlement.services.wallet_service import WalletService, WalletView

router = APIRouter(prefix="/wallet", tags=["wallet"])

OWN_TRANSACTION_LIMIT = 20
ADMIN_TRANSACTION_LIMIT = 50


def _to_response(view: WalletView) -> WalletResponse:
    wallet = view.wallet
    return WalletResponse(
        wallet_id=wallet.wallet_id,
        user_id=wallet.user_id,
        balance=wallet.balance,
        total_earned=wallet.total_earned,
        total_withdrawn=wallet.total_withdrawn,
        currency=wallet.currency,
        transactions=[WalletTransactionResponse.model_validate(t) for t in view.transactions],
    )


@router.get(
    "",
    response_model=WalletResponse,
)
async def get_my_wallet(
    db: DbSession,
    settings: AppSettings,
    caller: Caller,
) -> WalletResponse:
    """Get the caller's wallet with recent transactions."""
    service = WalletService(db, default_currency=settings.default_currency)

    async def _get() -> WalletResponse:
        view = await service.get_wallet(caller.user_id, limit=OWN_TRANSACTION_LIMIT)
        await db.commit()
        return _to_response(view)

    return await with_deadline(_get(), settings.operation_timeout_seconds)


@router.get(
    "/{user_id}",
    response_model=WalletResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_user_wallet(
    db: DbSession,
    settings: AppSettings,
    caller: AdminCaller,
    user_id: Annotated[UUID, Path()],
) -> WalletResponse:
    """Get a company member's wallet (admin view)."""
    service = WalletService(db, default_currency=settings.default_currency)
    directory = SqlEmployeeDirectory(db)

    async def _get() -> WalletResponse:
        users = await directory.get_users([user_id])
        employee = users.get(user_id)
        if employee is None or employee.company_id != caller.company_id:
            raise NotFound("employee", user_id)
        view = await service.get_wallet(user_id, limit=ADMIN_TRANSACTION_LIMIT)
        await db.commit()
        return _to_response(view)

    return await with_deadline(_get(), settings.operation_timeout_seconds)
