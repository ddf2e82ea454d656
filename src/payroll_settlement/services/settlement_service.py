"""Settlement service - invoice approval and payment into wallets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_settlement.errors import NotFound, StorageConflict
from payroll_settlement.models import Invoice, PayPeriod, WalletTransaction
from payroll_settlement.models.base import utcnow
from payroll_settlement.services.invoice_service import InvoiceService
from payroll_settlement.services.pay_period_service import PayPeriodService
from payroll_settlement.services.state_machine import InvoiceState, InvoiceStateMachine
from payroll_settlement.services.wallet_service import WalletService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    """A paid invoice and the wallet transaction that funded it."""

    invoice: Invoice
    transaction: WalletTransaction
    was_duplicate: bool = False


@dataclass(frozen=True)
class InvoicePaymentOutcome:
    """Per-invoice result of a bulk payment."""

    invoice_id: UUID
    user_id: UUID
    amount: Decimal
    success: bool
    error: str | None = None


class SettlementService:
    """Moves invoices through DRAFT → APPROVED → PAID.

    Every transition is a conditional UPDATE on the expected current state,
    so of two concurrent callers exactly one wins and the other observes
    InvalidStateTransition.
    """

    def __init__(self, session: AsyncSession, wallets: WalletService | None = None):
        self.session = session
        self.wallets = wallets or WalletService(session)
        self.invoices = InvoiceService(session)
        self.periods = PayPeriodService(session)

    async def approve_invoice(self, invoice_id: UUID, company_id: UUID | None = None) -> Invoice:
        """Approve a DRAFT invoice, freezing its amounts.

        Raises:
            NotFound: If the invoice does not exist (or belongs to another company)
            InvalidStateTransition: If the invoice is not DRAFT
        """
        await self._check_scope(invoice_id, company_id)
        now = utcnow()
        result = await self.session.execute(
            update(Invoice)
            .where(
                Invoice.invoice_id == invoice_id,
                Invoice.state == InvoiceState.DRAFT.value,
            )
            .values(state=InvoiceState.APPROVED.value, approved_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )

        invoice = await self.invoices.get_invoice(invoice_id)
        if result.rowcount == 0:
            InvoiceStateMachine.validate_transition(
                invoice.state, InvoiceState.APPROVED, "only DRAFT invoices can be approved"
            )
        logger.info("Approved invoice %s", invoice_id)
        return invoice

    async def pay_invoice(self, invoice_id: UUID, company_id: UUID | None = None) -> PaymentResult:
        """Mark an APPROVED invoice PAID and credit the employee's wallet.

        The state swap and the credit are written in the caller's
        transaction; they commit together or roll back together. The credit
        is keyed by invoice id, so a retried payment never credits twice.

        Raises:
            NotFound: If the invoice does not exist (or belongs to another company)
            InvalidStateTransition: If the invoice is not APPROVED, including
                when a concurrent payment already won
        """
        await self._check_scope(invoice_id, company_id)
        now = utcnow()
        result = await self.session.execute(
            update(Invoice)
            .where(
                Invoice.invoice_id == invoice_id,
                Invoice.state == InvoiceState.APPROVED.value,
            )
            .values(state=InvoiceState.PAID.value, paid_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )

        invoice = await self.invoices.get_invoice(invoice_id)
        if result.rowcount == 0:
            InvoiceStateMachine.validate_transition(
                invoice.state, InvoiceState.PAID, "only APPROVED invoices can be paid"
            )
            raise StorageConflict(f"invoice {invoice_id} changed state during payment")

        period = await self.session.get(PayPeriod, invoice.pay_period_id)
        credit = await self.wallets.credit(
            invoice.user_id,
            invoice.net_amount,
            reference_id=invoice.invoice_id,
            description=f"Invoice payment {period.start_date} - {period.end_date}",
            currency=invoice.currency,
        )
        await self.periods.settle_if_complete(invoice.pay_period_id)

        logger.info(
            "Paid invoice %s: %s %s to user %s",
            invoice_id,
            invoice.net_amount,
            invoice.currency,
            invoice.user_id,
        )
        return PaymentResult(
            invoice=invoice,
            transaction=credit.transaction,
            was_duplicate=credit.was_duplicate,
        )

    async def pay_all_invoices(
        self, pay_period_id: UUID, company_id: UUID | None = None
    ) -> list[InvoicePaymentOutcome]:
        """Pay every APPROVED invoice of a period, one transaction per invoice.

        Commits on the session as it goes: a failed invoice is rolled back
        and reported, successful ones stay committed even if the batch is
        cancelled part way.

        Raises:
            NotFound: If the period does not exist (or belongs to another company)
        """
        period = await self.periods.get_pay_period(pay_period_id)
        if company_id is not None and period.company_id != company_id:
            raise NotFound("pay_period", pay_period_id)

        result = await self.session.execute(
            select(Invoice.invoice_id, Invoice.user_id, Invoice.net_amount)
            .where(
                Invoice.pay_period_id == pay_period_id,
                Invoice.state == InvoiceState.APPROVED.value,
            )
            .order_by(Invoice.created_at, Invoice.invoice_id)
        )
        pending = result.all()
        await self.session.commit()

        outcomes: list[InvoicePaymentOutcome] = []
        for invoice_id, user_id, amount in pending:
            try:
                await self.pay_invoice(invoice_id)
                await self.session.commit()
            except Exception as exc:
                await self.session.rollback()
                logger.exception("Payment failed for invoice %s", invoice_id)
                outcomes.append(
                    InvoicePaymentOutcome(
                        invoice_id=invoice_id,
                        user_id=user_id,
                        amount=amount,
                        success=False,
                        error=str(exc),
                    )
                )
                continue
            outcomes.append(
                InvoicePaymentOutcome(
                    invoice_id=invoice_id, user_id=user_id, amount=amount, success=True
                )
            )

        await self.periods.settle_if_complete(pay_period_id)
        await self.session.commit()

        paid = sum(1 for o in outcomes if o.success)
        logger.info(
            "Bulk payment for period %s: %d paid, %d failed",
            pay_period_id,
            paid,
            len(outcomes) - paid,
        )
        return outcomes

    async def _check_scope(self, invoice_id: UUID, company_id: UUID | None) -> None:
        if company_id is None:
            return
        invoice = await self.invoices.get_invoice(invoice_id)
        if invoice.company_id != company_id:
            raise NotFound("invoice", invoice_id)
