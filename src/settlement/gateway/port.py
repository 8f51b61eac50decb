"""Payment gateway port (abstract interface).

Every adapter takes and returns major-unit ``Decimal`` amounts and owns its
own minor-unit conversion. Business declines come back as values; only
transport failures raise (``DependencyUnavailableError``).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


class NormalizedStatus(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELED = "Canceled"
    REFUNDED = "Refunded"


def normalize_status(native: str | None, table: dict[str, NormalizedStatus], gateway: str) -> NormalizedStatus:
    """Map a native status through ``table``; anything unmapped is FAILED."""
    status = table.get(native or "")
    if status is None:
        logger.warning("gateway.unmapped_status", gateway=gateway, native_status=native)
        return NormalizedStatus.FAILED
    return status


@dataclass(frozen=True)
class ChargeRequest:
    amount: Decimal
    currency: str
    description: str
    customer_email: str
    payment_token: str
    customer_name: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ChargeResult:
    """Result of a payment charge attempt."""

    success: bool
    status: NormalizedStatus
    transaction_ref: str | None = None
    amount: Decimal | None = None
    currency: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund attempt."""

    success: bool
    refund_ref: str | None = None
    amount: Decimal | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class CheckoutRequest:
    amount: Decimal
    currency: str
    product_name: str
    success_url: str
    cancel_url: str
    product_description: str | None = None
    customer_email: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CheckoutSession:
    """Gateway-side view of a hosted checkout."""

    session_id: str
    status: NormalizedStatus
    payment_status: str
    url: str | None = None
    amount_total: Decimal | None = None
    currency: str | None = None
    customer_email: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    transaction_ref: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.status == NormalizedStatus.SUCCEEDED


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name: str = "abstract"

    @abstractmethod
    def create_charge(self, request: ChargeRequest) -> ChargeResult:
        """Charge a tokenized payment method."""
        ...

    @abstractmethod
    def get_status(self, transaction_ref: str) -> NormalizedStatus:
        """Look up the current status of a charge."""
        ...

    @abstractmethod
    def refund(self, transaction_ref: str, amount: Decimal | None = None) -> RefundResult:
        """Refund a previous charge, in full when ``amount`` is None."""
        ...

    @abstractmethod
    def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        """Open a hosted checkout carrying ``request.metadata``."""
        ...

    @abstractmethod
    def get_checkout(self, session_id: str) -> CheckoutSession:
        """Fetch the authoritative state of a hosted checkout."""
        ...

    def verify_webhook_signature(self, payload: bytes | str, signature: str) -> bool:  # noqa: ARG002
        """Check a webhook callback was signed by the gateway.

        Gateways without signed webhooks reject every callback.
        """
        return False
