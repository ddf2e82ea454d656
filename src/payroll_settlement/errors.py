"""Error taxonomy for period, invoice, and wallet operations."""

from __future__ import annotations

from uuid import UUID


class SettlementError(Exception):
    """Base class for settlement engine errors."""


class InvalidStateTransition(SettlementError):
    """Raised when a state change is not legal from the current state."""

    def __init__(
        self,
        entity: str,
        from_state: str,
        to_state: str,
        reason: str | None = None,
    ):
        self.entity = entity
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        msg = f"Invalid {entity} transition from '{from_state}' to '{to_state}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PeriodNotOpen(InvalidStateTransition):
    """Raised when invoice generation targets a period that is not OPEN."""

    def __init__(self, pay_period_id: UUID, state: str):
        self.pay_period_id = pay_period_id
        super().__init__(
            "pay_period",
            state,
            state,
            f"pay period {pay_period_id} is {state}; invoices can only be generated while OPEN",
        )


class NotFound(SettlementError):
    """Raised when a referenced period, invoice, or wallet does not exist."""

    def __init__(self, entity: str, entity_id: UUID | str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class StorageConflict(SettlementError):
    """A concurrent write won a race and the winning row could not be read back."""


class StorageUnavailable(SettlementError):
    """Storage could not complete the operation in time; safe to retry."""

    retryable = True
