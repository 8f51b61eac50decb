"""Gateway webhook callbacks.

A signed ``checkout.session.completed`` callback runs the same completion
flow as the success-page call, so whichever arrives second is a replay.
The callback body is only used to find the session id; the payment is
still verified against the gateway before anything moves.
"""

import json

import structlog

from settlement.completion.outcome import SettlementOutcome
from settlement.completion.service_payment import complete_service_payment
from settlement.completion.subscription_upgrade import complete_subscription_upgrade
from settlement.errors import ForbiddenError, RequestValidationError
from settlement.gateway import get_gateway
from settlement.service_payment.service_payment import SERVICE_PAYMENT_TYPE

logger = structlog.get_logger(__name__)

CHECKOUT_COMPLETED_EVENTS = (
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
)


def handle_gateway_webhook(payload: bytes, signature: str) -> SettlementOutcome | None:
    """Settle the checkout a signed callback reports as completed.

    Returns None for callbacks that carry nothing to settle.
    """
    if not get_gateway().verify_webhook_signature(payload, signature):
        logger.warning("webhook.invalid_signature")
        raise ForbiddenError("Invalid webhook signature")

    try:
        event = json.loads(payload)
        event_type = event["type"]
        checkout = event["data"]["object"]
    except (ValueError, KeyError, TypeError):
        raise RequestValidationError("Malformed webhook payload")
    if not isinstance(checkout, dict):
        raise RequestValidationError("Malformed webhook payload")

    if event_type not in CHECKOUT_COMPLETED_EVENTS:
        logger.info("webhook.ignored", event_type=event_type)
        return None

    session_id = checkout.get("id")
    if not session_id:
        raise RequestValidationError("Webhook payload has no checkout session id")

    metadata = checkout.get("metadata") or {}
    logger.info("webhook.checkout_completed", event_type=event_type, session_id=session_id)
    if metadata.get("paymentType") == SERVICE_PAYMENT_TYPE:
        return complete_service_payment(session_id)
    return complete_subscription_upgrade(session_id)
