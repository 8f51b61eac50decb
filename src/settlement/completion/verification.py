"""Gateway-side verification: the read-only first step of every completion."""

import structlog

from settlement.errors import GatewayDeclineError, RequestValidationError
from settlement.gateway import get_gateway
from settlement.gateway.port import CheckoutSession, NormalizedStatus

logger = structlog.get_logger(__name__)


def lookup_checkout(session_id: str) -> CheckoutSession:
    if not session_id or not session_id.strip():
        raise RequestValidationError("Checkout session id is required")
    return get_gateway().get_checkout(session_id.strip())


def verify_checkout(session_id: str) -> CheckoutSession:
    """Return the checkout if the gateway reports it paid.

    Raises ``GatewayDeclineError`` otherwise. Transport failures propagate
    as ``DependencyUnavailableError``; nothing has been mutated either way.
    """
    session = lookup_checkout(session_id)
    if not session.is_paid:
        logger.info(
            "checkout.not_paid",
            session_id=session.session_id,
            status=session.status.value,
            payment_status=session.payment_status,
        )
        raise GatewayDeclineError(
            f"Payment not completed. Status: {session.payment_status}",
            session_id=session.session_id,
            status=session.status.value,
        )
    return session


def get_payment_status(transaction_ref: str) -> NormalizedStatus:
    if not transaction_ref:
        raise RequestValidationError("Transaction reference is required")
    return get_gateway().get_status(transaction_ref)
