"""Payment lifecycle state machine with transition validation."""

from __future__ import annotations

from enum import Enum


class PaymentState(str, Enum):
    """Lifecycle of one gateway payment, from this service's point of view."""

    ORDER_CREATED = "order_created"
    PAID_UNRECONCILED = "paid_unreconciled"
    RECONCILED = "reconciled"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_state: str, to_state: str, reason: str | None = None):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        msg = f"Invalid transition from '{from_state}' to '{to_state}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PaymentStateMachine:
    """State machine for payment reconciliation.

    Allowed transitions:
    - order_created → paid_unreconciled (user pays at the gateway)
    - paid_unreconciled → reconciled (confirm or webhook claims the payment)
    - reconciled → reconciled (replay; a no-op guarded by the ledger claim)

    There is no way back to paid_unreconciled and no refund transition.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PaymentState.ORDER_CREATED: [PaymentState.PAID_UNRECONCILED],
        PaymentState.PAID_UNRECONCILED: [PaymentState.RECONCILED],
        PaymentState.RECONCILED: [PaymentState.RECONCILED],
    }

    # Transitions that change nothing and must not re-apply a delta
    NO_OP_TRANSITIONS = {
        (PaymentState.RECONCILED, PaymentState.RECONCILED),
    }

    @classmethod
    def can_transition(cls, from_state: str, to_state: str) -> bool:
        """Check if a transition is valid."""
        return to_state in cls.VALID_TRANSITIONS.get(from_state, [])

    @classmethod
    def validate_transition(cls, from_state: str, to_state: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_state, to_state):
            raise InvalidTransitionError(from_state, to_state)

    @classmethod
    def is_no_op(cls, from_state: str, to_state: str) -> bool:
        return (from_state, to_state) in cls.NO_OP_TRANSITIONS

    @classmethod
    def state_for(cls, *, paid: bool, ledgered: bool) -> PaymentState:
        """Derive the current state from what the gateway and ledger report."""
        if ledgered:
            return PaymentState.RECONCILED
        if paid:
            return PaymentState.PAID_UNRECONCILED
        return PaymentState.ORDER_CREATED

    @classmethod
    def get_next_states(cls, current_state: str) -> list[str]:
        return cls.VALID_TRANSITIONS.get(current_state, [])
