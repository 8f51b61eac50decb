"""Checkout metadata contract.

The key/value metadata attached to a gateway checkout is the only channel
that carries business identifiers from checkout creation to completion.
Keys and their two-decimal amount format must stay bit-exact:

    subscription: userId, planId
    service:      paymentType="service", servicePaymentId, workOrderId,
                  serviceRequestId, ownerId, providerId, totalAmount,
                  platformFee, providerAmount

Missing or malformed values are terminal; identifiers are never guessed.
"""

from dataclasses import dataclass
from decimal import Decimal

from settlement.commission import is_whole_cents, parse_amount
from settlement.errors import RequestValidationError
from settlement.service_payment.service_payment import SERVICE_PAYMENT_TYPE


def _require(metadata: dict[str, str], key: str) -> str:
    value = metadata.get(key)
    if value is None or str(value).strip() == "":
        raise RequestValidationError(f"Missing checkout metadata: {key}", key=key)
    return str(value).strip()


def _identifier(metadata: dict[str, str], key: str) -> int:
    raw = _require(metadata, key)
    try:
        value = int(raw)
    except ValueError:
        raise RequestValidationError(f"Malformed checkout metadata: {key}={raw!r}", key=key)
    if value <= 0:
        raise RequestValidationError(f"Malformed checkout metadata: {key}={raw!r}", key=key)
    return value


def _amount(metadata: dict[str, str], key: str) -> Decimal:
    raw = _require(metadata, key)
    try:
        value = parse_amount(raw)
    except ValueError:
        raise RequestValidationError(f"Malformed checkout metadata: {key}={raw!r}", key=key)
    if value < 0 or not is_whole_cents(value):
        raise RequestValidationError(f"Malformed checkout metadata: {key}={raw!r}", key=key)
    return value


@dataclass(frozen=True)
class SubscriptionMetadata:
    user_id: int
    plan_id: int

    @classmethod
    def parse(cls, metadata: dict[str, str]) -> "SubscriptionMetadata":
        return cls(user_id=_identifier(metadata, "userId"), plan_id=_identifier(metadata, "planId"))


@dataclass(frozen=True)
class ServicePaymentMetadata:
    service_payment_id: str
    work_order_id: int
    service_request_id: int
    owner_id: int
    provider_id: int
    total_amount: Decimal
    platform_fee: Decimal
    provider_amount: Decimal

    @classmethod
    def parse(cls, metadata: dict[str, str]) -> "ServicePaymentMetadata":
        payment_type = _require(metadata, "paymentType")
        if payment_type != SERVICE_PAYMENT_TYPE:
            raise RequestValidationError(f"Checkout is not a service payment (paymentType={payment_type!r})")
        return cls(
            service_payment_id=_require(metadata, "servicePaymentId"),
            work_order_id=_identifier(metadata, "workOrderId"),
            service_request_id=_identifier(metadata, "serviceRequestId"),
            owner_id=_identifier(metadata, "ownerId"),
            provider_id=_identifier(metadata, "providerId"),
            total_amount=_amount(metadata, "totalAmount"),
            platform_fee=_amount(metadata, "platformFee"),
            provider_amount=_amount(metadata, "providerAmount"),
        )
