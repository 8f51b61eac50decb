"""Status lifecycle shared by subscription and service payments.

    PENDING → COMPLETED → REFUNDED
    PENDING → FAILED

A failed payment is never reused; a new checkout creates a new record.
"""

from dataclasses import dataclass
from enum import Enum

from protean.exceptions import ValidationError


class PaymentStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class PaymentType(str, Enum):
    SUBSCRIPTION = "Subscription"
    SERVICE = "Service"


_VALID_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.COMPLETED: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),  # Terminal
    PaymentStatus.REFUNDED: set(),  # Terminal
}

SETTLED_STATUSES = {PaymentStatus.COMPLETED, PaymentStatus.REFUNDED}


def assert_can_transition(current: str, target: PaymentStatus) -> None:
    current_status = PaymentStatus(current)
    if target not in _VALID_TRANSITIONS.get(current_status, set()):
        raise ValidationError({"status": [f"Cannot transition from {current_status.value} to {target.value}"]})


def is_settled(status: str) -> bool:
    """True once the gateway captured funds for the payment."""
    return PaymentStatus(status) in SETTLED_STATUSES


@dataclass(frozen=True)
class DownstreamResult:
    """Outcome of the counterparty mutation that follows a completion."""

    settled: bool
    error: str | None = None
    counterparty_type: str | None = None
    counterparty_id: int | None = None
