"""Refund of a completed subscription payment."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from settlement.commission import parse_amount
from settlement.domain import settlement
from settlement.errors import GatewayDeclineError, RequestValidationError
from settlement.gateway import get_gateway
from settlement.subscription_payment.subscription_payment import SubscriptionPayment

logger = structlog.get_logger(__name__)


@settlement.command(part_of="SubscriptionPayment")
class RefundSubscriptionPayment:
    payment_id = Identifier(required=True)
    amount = String(max_length=20)


@settlement.command_handler(part_of=SubscriptionPayment)
class RefundSubscriptionPaymentHandler:
    @handle(RefundSubscriptionPayment)
    def refund_payment(self, command):
        repo = current_domain.repository_for(SubscriptionPayment)
        payment = repo.get(command.payment_id)
        if not payment.is_completed:
            raise RequestValidationError(f"Only completed payments can be refunded (status {payment.status})")

        amount = parse_amount(command.amount) if command.amount else None
        if amount is not None and not (0 < amount <= payment.amount.value):
            raise RequestValidationError("Refund amount must be positive and at most the amount paid")

        result = get_gateway().refund(payment.gateway_transaction_ref or payment.gateway_session_id, amount)
        if not result.success:
            raise GatewayDeclineError(result.error_message or "Refund declined", payment_id=str(payment.id))

        payment.refund(result.refund_ref, amount)
        repo.add(payment)
        logger.info("subscription.refunded", payment_id=str(payment.id), refund_ref=result.refund_ref)
        return str(payment.id)
