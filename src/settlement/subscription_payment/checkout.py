"""Subscription checkout: command and handler.

Opens a hosted checkout for a plan and records the Pending payment under
the gateway session id.
"""

from decimal import Decimal

import structlog
from protean import handle
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from settlement.commission import parse_amount
from settlement.config import get_settings
from settlement.domain import settlement
from settlement.errors import RequestValidationError
from settlement.gateway import get_gateway
from settlement.gateway.port import CheckoutRequest
from settlement.money import Money
from settlement.plan.queries import load_plan
from settlement.subscription_payment.subscription_payment import SubscriptionPayment

logger = structlog.get_logger(__name__)


def subscription_metadata(user_id: int, plan_id: int) -> dict[str, str]:
    return {"userId": str(user_id), "planId": str(plan_id)}


@settlement.command(part_of="SubscriptionPayment")
class CreateSubscriptionCheckout:
    """Open a checkout for a plan.

    ``amount`` overrides the plan price for promotional flows.
    """

    user_id = Integer(required=True)
    plan_id = Integer(required=True)
    amount = String(max_length=20)
    success_url = String(max_length=500)
    cancel_url = String(max_length=500)
    customer_email = String(max_length=255)


@settlement.command_handler(part_of=SubscriptionPayment)
class CreateSubscriptionCheckoutHandler:
    @handle(CreateSubscriptionCheckout)
    def create_checkout(self, command):
        settings = get_settings()
        plan = load_plan(command.plan_id)

        amount = plan.price.value if plan.price else Decimal("0")
        if command.amount:
            try:
                amount = parse_amount(command.amount)
            except ValueError:
                raise RequestValidationError(f"Invalid amount: {command.amount}")
        if amount <= 0:
            raise RequestValidationError("Checkout amount must be greater than zero")

        currency = plan.price.currency if plan.price else settings.currency
        description = f"Subscription Plan #{plan.id}"
        session = get_gateway().create_checkout(
            CheckoutRequest(
                amount=amount,
                currency=currency,
                product_name=f"{description}: {plan.plan_name}",
                product_description=f"{plan.plan_name} ({plan.billing_cycle})",
                success_url=command.success_url or settings.success_url,
                cancel_url=command.cancel_url or settings.cancel_url,
                customer_email=command.customer_email,
                metadata=subscription_metadata(command.user_id, plan.id),
            )
        )

        payment = SubscriptionPayment.create(
            user_id=command.user_id,
            plan_id=plan.id,
            amount=Money.of(amount, currency),
            gateway_session_id=session.session_id,
            customer_email=command.customer_email,
            description=description,
        )
        current_domain.repository_for(SubscriptionPayment).add(payment)

        logger.info(
            "subscription.checkout_created",
            payment_id=str(payment.id),
            session_id=session.session_id,
            user_id=command.user_id,
            plan_id=plan.id,
        )
        return {"payment_id": str(payment.id), "session_id": session.session_id, "url": session.url}
