"""Refund of a completed service payment.

Refunds the Owner through the gateway, in full or in part. The
ServicePaymentRefunded event records the refunded amount and the provider
share, and leaves through the outbox with every other settlement event.
Reversing the provider's balance credit is left to its consumers.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from settlement.commission import parse_amount
from settlement.domain import settlement
from settlement.errors import GatewayDeclineError, RequestValidationError
from settlement.gateway import get_gateway
from settlement.service_payment.service_payment import ServicePayment

logger = structlog.get_logger(__name__)


@settlement.command(part_of="ServicePayment")
class RefundServicePayment:
    service_payment_id = Identifier(required=True)
    amount = String(max_length=20)


@settlement.command_handler(part_of=ServicePayment)
class RefundServicePaymentHandler:
    @handle(RefundServicePayment)
    def refund_payment(self, command):
        repo = current_domain.repository_for(ServicePayment)
        payment = repo.get(command.service_payment_id)
        if not payment.is_completed:
            raise RequestValidationError(f"Only completed payments can be refunded (status {payment.status})")

        amount = parse_amount(command.amount) if command.amount else None
        if amount is not None and not (0 < amount <= payment.total_amount.value):
            raise RequestValidationError("Refund amount must be positive and at most the amount paid")

        result = get_gateway().refund(payment.gateway_charge_ref or payment.gateway_session_id, amount)
        if not result.success:
            raise GatewayDeclineError(result.error_message or "Refund declined", service_payment_id=str(payment.id))

        payment.refund(result.refund_ref, amount)
        repo.add(payment)
        logger.info("service_payment.refunded", service_payment_id=str(payment.id), refund_ref=result.refund_ref)
        return str(payment.id)
