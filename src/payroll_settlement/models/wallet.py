"""Wallet and append-only wallet transaction models."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_settlement.models.base import Base, TimestampMixin, UpdatedAtMixin


class TransactionType(str, Enum):
    """Wallet transaction types."""

    CREDIT_INVOICE = "CREDIT_INVOICE"
    DEBIT_WITHDRAWAL = "DEBIT_WITHDRAWAL"
    ADJUSTMENT = "ADJUSTMENT"


class Wallet(Base, TimestampMixin, UpdatedAtMixin):
    """Per-user running balance, fed by invoice payments."""

    __tablename__ = "wallet"

    wallet_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(nullable=False, unique=True)
    balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_earned: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_withdrawn: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    __table_args__ = (
        CheckConstraint("balance >= 0", name="wallet_balance_nonnegative"),
    )

    transactions: Mapped[list[WalletTransaction]] = relationship(
        back_populates="wallet",
        order_by="WalletTransaction.created_at.desc()",
    )


class WalletTransaction(Base, TimestampMixin):
    """Append-only ledger row backing a wallet balance."""

    __tablename__ = "wallet_transaction"

    wallet_transaction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    wallet_id: Mapped[UUID] = mapped_column(
        ForeignKey("wallet.wallet_id", ondelete="RESTRICT"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    reference_id: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        # One credit per invoice: the double-payment guard
        UniqueConstraint("type", "reference_id", name="wallet_transaction_type_reference_unique"),
        CheckConstraint(
            "type IN ('CREDIT_INVOICE', 'DEBIT_WITHDRAWAL', 'ADJUSTMENT')",
            name="wallet_transaction_type_check",
        ),
        Index("wallet_transaction_wallet_created_idx", "wallet_id", "created_at"),
    )

    wallet: Mapped[Wallet] = relationship(back_populates="transactions")
