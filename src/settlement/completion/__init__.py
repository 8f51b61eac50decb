"""Completion orchestrator.

Both flows share the same protocol, keyed by the gateway session id:

1. verify the checkout with the gateway (read only; the retry point)
2. parse the checkout metadata (terminal on missing/malformed keys)
3. find the local payment; an already settled payment is a replay
4. move it Pending → Completed under the payment's lock, committed at once;
   the published events go to the outbox in that same commit and the
   outbox processor delivers them to the broker with retries
5. mutate the counterparty exactly once; failure is recorded on the
   payment, which stays Completed, and reported as pending settlement
6. notify the provider (service flow only, best effort)
"""

from settlement.completion.outcome import OutcomeStatus, SettlementOutcome
from settlement.completion.service_payment import complete_service_payment, retry_service_settlement
from settlement.completion.subscription_upgrade import (
    complete_subscription_upgrade,
    retry_subscription_settlement,
)
from settlement.completion.webhook import handle_gateway_webhook
from settlement.errors import RequestValidationError
from settlement.lifecycle import PaymentType

__all__ = [
    "OutcomeStatus",
    "SettlementOutcome",
    "complete_service_payment",
    "complete_subscription_upgrade",
    "handle_gateway_webhook",
    "retry_downstream_settlement",
]


def retry_downstream_settlement(payment_type: str, payment_id: str) -> SettlementOutcome:
    """Re-attempt the counterparty mutation of a Completed payment.

    A payment whose mutation already succeeded is returned as a replay.
    """
    kind = (payment_type or "").strip().lower()
    if kind == PaymentType.SUBSCRIPTION.value.lower():
        return retry_subscription_settlement(payment_id)
    if kind == PaymentType.SERVICE.value.lower():
        return retry_service_settlement(payment_id)
    raise RequestValidationError(f"Unknown payment type: {payment_type}")
