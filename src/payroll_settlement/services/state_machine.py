"""Pay period and invoice state machines with transition validation."""

from __future__ import annotations

from enum import Enum

from payroll_settlement.errors import InvalidStateTransition


class PayPeriodState(str, Enum):
    """Pay period state values."""

    OPEN = "OPEN"
    LOCKED = "LOCKED"
    SETTLED = "SETTLED"


class InvoiceState(str, Enum):
    """Invoice state values."""

    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    PAID = "PAID"


def state_value(state: str) -> str:
    """Plain string value of a state, whether given as enum member or str."""
    return state.value if isinstance(state, Enum) else state


class _StateMachine:
    """Forward-only transition table shared by periods and invoices."""

    ENTITY: str = ""
    VALID_TRANSITIONS: dict[str, list[str]] = {}

    @classmethod
    def can_transition(cls, from_state: str, to_state: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_state, [])
        return to_state in allowed

    @classmethod
    def validate_transition(
        cls, from_state: str, to_state: str, reason: str | None = None
    ) -> None:
        """Validate a transition, raising InvalidStateTransition if invalid."""
        if not cls.can_transition(from_state, to_state):
            raise InvalidStateTransition(
                cls.ENTITY, state_value(from_state), state_value(to_state), reason
            )


class PayPeriodStateMachine(_StateMachine):
    """State machine for pay periods.

    Allowed transitions:
    - OPEN → LOCKED (blocks further invoice generation)
    - LOCKED → SETTLED (every invoice is PAID)
    """

    ENTITY = "pay_period"
    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayPeriodState.OPEN: [PayPeriodState.LOCKED],
        PayPeriodState.LOCKED: [PayPeriodState.SETTLED],
        PayPeriodState.SETTLED: [],  # Terminal state
    }

    @classmethod
    def can_generate_invoices(cls, state: str) -> bool:
        """Check if invoice generation/regeneration is allowed in this state."""
        return state == PayPeriodState.OPEN


class InvoiceStateMachine(_StateMachine):
    """State machine for invoices.

    Allowed transitions:
    - DRAFT → APPROVED
    - APPROVED → PAID

    No state is skipped and none is revisited.
    """

    ENTITY = "invoice"
    VALID_TRANSITIONS: dict[str, list[str]] = {
        InvoiceState.DRAFT: [InvoiceState.APPROVED],
        InvoiceState.APPROVED: [InvoiceState.PAID],
        InvoiceState.PAID: [],  # Terminal state
    }

    # States where amounts may still be recomputed
    AMOUNTS_MUTABLE = {InvoiceState.DRAFT}

    @classmethod
    def are_amounts_mutable(cls, state: str) -> bool:
        """Check if regeneration may overwrite the invoice amounts."""
        return state in cls.AMOUNTS_MUTABLE

    @classmethod
    def is_settled(cls, state: str) -> bool:
        return state == InvoiceState.PAID
