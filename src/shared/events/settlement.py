"""Cross-domain event contracts for Settlement domain events.

These classes define the event shape for consumption by other domains
(Profiles, Notifications, reporting). They are registered as external
events via domain.register_external_event() with matching __type__ strings
so Protean's stream deserialization works correctly. ``PaymentProcessed``
is raised by both payment aggregates, so consumers register it once per
type string in ``PAYMENT_PROCESSED_TYPES``.

Amounts are two-decimal strings, so consumers never need to query
settlement or round again.

The source-of-truth events are in src/settlement/subscription_payment/events.py
and src/settlement/service_payment/events.py.
"""

from protean.core.event import BaseEvent
from protean.fields import DateTime, Identifier, Integer, String

PAYMENT_PROCESSED_TYPES = (
    "Settlement.SubscriptionPaymentProcessed.v1",
    "Settlement.ServicePaymentProcessed.v1",
)
SERVICE_PAYMENT_COMPLETED_TYPE = "Settlement.ServicePaymentCompleted.v1"
SERVICE_PAYMENT_REFUNDED_TYPE = "Settlement.ServicePaymentRefunded.v1"


class PaymentProcessed(BaseEvent):
    """A payment reached Completed."""

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


class ServicePaymentCompleted(BaseEvent):
    """An Owner paid a Provider for a work order; commission retained."""

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


class ServicePaymentRefunded(BaseEvent):
    """The Owner was refunded; the provider share may need reversing."""

    __version__ = 1

    service_payment_id = Identifier(required=True)
    work_order_id = Integer(required=True)
    total_amount = String(required=True)
    refunded_amount = String(required=True)
    provider_id = Integer(required=True)
    provider_amount = String(required=True)
    refund_ref = String()
    refunded_at = DateTime(required=True)
