"""Domain events for the ServicePayment aggregate.

Amounts are two-decimal strings, the same representation the aggregate
stores.
"""

from protean.fields import DateTime, Identifier, Integer, String

from settlement.domain import settlement


@settlement.event(part_of="ServicePayment")
class ServicePaymentCreated:
    """An Owner opened a checkout for a resolved work order."""

    __version__ = 1

    service_payment_id = Identifier(required=True)
    work_order_id = Integer(required=True)
    service_request_id = Integer(required=True)
    owner_id = Integer(required=True)
    provider_id = Integer(required=True)
    total_amount = String(required=True)
    platform_fee = String(required=True)
    provider_amount = String(required=True)
    fee_percentage = String(required=True)
    currency = String(required=True)
    created_at = DateTime(required=True)


@settlement.event(part_of="ServicePayment")
class ServicePaymentCompleted:
    """The gateway captured the Owner's payment."""

    __version__ = 1

    service_payment_id = Identifier(required=True)
    work_order_id = Integer(required=True)
    owner_id = Integer(required=True)
    provider_id = Integer(required=True)
    total_amount = String(required=True)
    platform_fee = String(required=True)
    provider_amount = String(required=True)
    currency = String(required=True)
    gateway_charge_ref = String()
    gateway_session_id = String()
    completed_at = DateTime(required=True)


@settlement.event(part_of="ServicePayment")
class ServicePaymentFailed:
    __version__ = 1

    service_payment_id = Identifier(required=True)
    work_order_id = Integer(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)


@settlement.event(part_of="ServicePayment")
class ServicePaymentRefunded:
    __version__ = 1

    service_payment_id = Identifier(required=True)
    work_order_id = Integer(required=True)
    total_amount = String(required=True)
    refunded_amount = String(required=True)
    provider_id = Integer(required=True)
    provider_amount = String(required=True)
    refund_ref = String()
    refunded_at = DateTime(required=True)


@settlement.event(part_of="ServicePayment")
class ServicePaymentProcessed:
    """Published as ``PaymentProcessed`` with ``payment_type`` Service."""

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
