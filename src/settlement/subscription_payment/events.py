"""Domain events for the SubscriptionPayment aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from settlement.domain import settlement


@settlement.event(part_of="SubscriptionPayment")
class SubscriptionCheckoutStarted:
    """A subscriber opened a checkout for a plan."""

    __version__ = 1

    payment_id = Identifier(required=True)
    user_id = Integer(required=True)
    plan_id = Integer(required=True)
    amount = String(required=True)
    currency = String(required=True)
    gateway_session_id = String(required=True)
    started_at = DateTime(required=True)


@settlement.event(part_of="SubscriptionPayment")
class SubscriptionPaymentCompleted:
    """The gateway confirmed the subscription charge."""

    __version__ = 1

    payment_id = Identifier(required=True)
    user_id = Integer(required=True)
    plan_id = Integer(required=True)
    amount = String(required=True)
    currency = String(required=True)
    gateway_session_id = String(required=True)
    gateway_transaction_ref = String()
    completed_at = DateTime(required=True)


@settlement.event(part_of="SubscriptionPayment")
class SubscriptionPaymentFailed:
    __version__ = 1

    payment_id = Identifier(required=True)
    user_id = Integer(required=True)
    plan_id = Integer(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)


@settlement.event(part_of="SubscriptionPayment")
class SubscriptionPaymentRefunded:
    __version__ = 1

    payment_id = Identifier(required=True)
    user_id = Integer(required=True)
    plan_id = Integer(required=True)
    amount = String(required=True)
    refunded_amount = String(required=True)
    refund_ref = String()
    refunded_at = DateTime(required=True)


@settlement.event(part_of="SubscriptionPayment")
class SubscriptionPaymentProcessed:
    """Published as ``PaymentProcessed`` with ``payment_type`` Subscription."""

    __version__ = 1

    payment_id = Identifier(required=True)
    payment_type = String(required=True)
    user_id = Integer(required=True)
    amount = String(required=True)
    currency = String(required=True)
    subscription_id = Integer()
    service_payment_id = Identifier()
    provider_id = Integer()
    provider_amount = String()
    gateway_session_id = String(required=True)
    occurred_at = DateTime(required=True)
