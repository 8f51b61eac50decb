"""Read-side lookups for subscription payments."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from settlement.errors import NotFoundError
from settlement.subscription_payment.subscription_payment import SubscriptionPayment


def get_subscription_payment(payment_id: str) -> SubscriptionPayment:
    try:
        return current_domain.repository_for(SubscriptionPayment).get(payment_id)
    except ObjectNotFoundError:
        raise NotFoundError(f"Subscription payment {payment_id} not found", payment_id=payment_id)


def get_subscription_payment_by_session(session_id: str) -> SubscriptionPayment:
    payment = current_domain.repository_for(SubscriptionPayment).find_by_session(session_id)
    if payment is None:
        raise NotFoundError(f"No subscription payment for session {session_id}", session_id=session_id)
    return payment


def get_subscription_payments_by_user(user_id: int) -> list[SubscriptionPayment]:
    return current_domain.repository_for(SubscriptionPayment).find_by_user(user_id)
