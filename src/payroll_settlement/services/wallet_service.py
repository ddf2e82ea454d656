"""Wallet ledger service - the only writer of wallet balances."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_settlement.database import dialect_insert
from payroll_settlement.errors import StorageConflict
from payroll_settlement.models import TransactionType, Wallet, WalletTransaction
from payroll_settlement.models.base import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreditResult:
    """Result of a wallet credit.

    Always check `is_new`: when it is False the reference had already been
    credited, the stored transaction is returned, and no balance changed.
    """

    transaction: WalletTransaction
    wallet: Wallet
    is_new: bool

    @property
    def was_duplicate(self) -> bool:
        return not self.is_new


@dataclass(frozen=True)
class WalletView:
    """Wallet with its most recent transactions."""

    wallet: Wallet
    transactions: list[WalletTransaction]


class WalletService:
    """Per-user wallets backed by an append-only transaction ledger.

    Notes:
    - (type, reference_id) is unique, so crediting the same invoice twice
      appends nothing and moves no money.
    - Balances are only ever changed by an in-SQL increment issued after the
      ledger row was inserted in the same transaction.
    """

    def __init__(self, session: AsyncSession, default_currency: str = "BDT"):
        self.session = session
        self.default_currency = default_currency

    async def get_or_create_wallet(self, user_id: UUID, currency: str | None = None) -> Wallet:
        """Return the user's wallet, creating an empty one if absent."""
        stmt = (
            dialect_insert(self.session, Wallet)
            .values(
                wallet_id=uuid4(),
                user_id=user_id,
                balance=Decimal("0"),
                total_earned=Decimal("0"),
                total_withdrawn=Decimal("0"),
                currency=currency or self.default_currency,
                created_at=utcnow(),
                updated_at=utcnow(),
            )
            .on_conflict_do_nothing(index_elements=["user_id"])
        )
        await self.session.execute(stmt)

        wallet = await self._select_wallet(user_id)
        if wallet is None:
            raise StorageConflict(f"wallet for user {user_id} could not be read back")
        return wallet

    async def get_wallet(self, user_id: UUID, limit: int = 20) -> WalletView:
        """Return the user's wallet and its `limit` most recent transactions."""
        wallet = await self.get_or_create_wallet(user_id)
        transactions = await self.list_transactions(user_id, limit=limit)
        return WalletView(wallet=wallet, transactions=transactions)

    async def credit(
        self,
        user_id: UUID,
        amount: Decimal,
        reference_id: UUID | str,
        description: str | None = None,
        currency: str | None = None,
    ) -> CreditResult:
        """Credit a wallet once per reference.

        Args:
            user_id: Wallet owner
            amount: Non-negative amount to add
            reference_id: Source of the credit (the invoice id)
            description: Human readable ledger text
            currency: Currency used if the wallet has to be created

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"credit amount must not be negative, got {amount}")

        wallet = await self.get_or_create_wallet(user_id, currency)
        reference = str(reference_id)

        stmt = (
            dialect_insert(self.session, WalletTransaction)
            .values(
                wallet_transaction_id=uuid4(),
                wallet_id=wallet.wallet_id,
                amount=amount,
                type=TransactionType.CREDIT_INVOICE.value,
                reference_id=reference,
                description=description,
                created_at=utcnow(),
            )
            .on_conflict_do_nothing(index_elements=["type", "reference_id"])
        )
        result = await self.session.execute(stmt)

        if result.rowcount == 0:
            existing = await self._select_transaction(TransactionType.CREDIT_INVOICE, reference)
            if existing is None:
                raise StorageConflict(f"credit for reference {reference} could not be read back")
            logger.info("Duplicate credit suppressed for reference %s", reference)
            return CreditResult(transaction=existing, wallet=wallet, is_new=False)

        await self.session.execute(
            update(Wallet)
            .where(Wallet.wallet_id == wallet.wallet_id)
            .values(
                balance=Wallet.balance + amount,
                total_earned=Wallet.total_earned + amount,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        transaction = await self._select_transaction(TransactionType.CREDIT_INVOICE, reference)
        wallet = await self._select_wallet(user_id)
        logger.info("Credited %s to wallet of user %s (reference %s)", amount, user_id, reference)
        return CreditResult(transaction=transaction, wallet=wallet, is_new=True)

    async def list_transactions(self, user_id: UUID, limit: int = 20) -> list[WalletTransaction]:
        """Return the user's transactions, most recent first."""
        result = await self.session.execute(
            select(WalletTransaction)
            .join(Wallet, Wallet.wallet_id == WalletTransaction.wallet_id)
            .where(Wallet.user_id == user_id)
            .order_by(WalletTransaction.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def _select_wallet(self, user_id: UUID) -> Wallet | None:
        result = await self.session.execute(
            select(Wallet)
            .where(Wallet.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _select_transaction(
        self, tx_type: TransactionType, reference_id: str
    ) -> WalletTransaction | None:
        result = await self.session.execute(
            select(WalletTransaction).where(
                WalletTransaction.type == tx_type.value,
                WalletTransaction.reference_id == reference_id,
            )
        )
        return result.scalar_one_or_none()
