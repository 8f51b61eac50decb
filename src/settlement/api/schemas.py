"""Pydantic request/response schemas for the settlement API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands. Amounts leave the service as two-decimal
strings.
"""

from decimal import Decimal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------
class PlanResponse(BaseModel):
    id: int
    plan_name: str
    price: str
    currency: str
    billing_cycle: str
    max_equipment: int | None = None
    max_clients: int | None = None


class PlanLimitsResponse(BaseModel):
    plan_id: int
    max_equipment: int
    max_clients: int


class UpgradePlanRequest(BaseModel):
    user_id: int = Field(gt=0)
    plan_id: int = Field(gt=0)


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class CreateSubscriptionCheckoutRequest(BaseModel):
    user_id: int = Field(gt=0)
    plan_id: int = Field(gt=0)
    amount: Decimal | None = Field(default=None, gt=0)
    success_url: str | None = None
    cancel_url: str | None = None
    customer_email: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": 42,
                    "plan_id": 2,
                    "success_url": "https://app.example.com/billing/success",
                    "cancel_url": "https://app.example.com/billing/cancel",
                    "customer_email": "owner@example.com",
                }
            ]
        }
    }


class CreateServiceCheckoutRequest(BaseModel):
    user_id: int = Field(gt=0)
    work_order_id: int = Field(gt=0)
    success_url: str | None = None
    cancel_url: str | None = None
    customer_email: str | None = None


class CheckoutCreatedResponse(BaseModel):
    payment_id: str
    session_id: str
    url: str | None = None


class CheckoutSessionResponse(BaseModel):
    session_id: str
    status: str
    payment_status: str
    paid: bool
    amount_total: str | None = None
    currency: str | None = None
    customer_email: str | None = None
    metadata: dict[str, str] = {}


class CompleteCheckoutRequest(BaseModel):
    session_id: str = Field(min_length=1)


class SettlementOutcomeResponse(BaseModel):
    payment_id: str
    payment_type: str
    status: str
    replayed: bool
    downstream_settled: bool
    message: str
    transaction_ref: str | None = None
    details: dict = {}


class WebhookResponse(BaseModel):
    status: str
    outcome: SettlementOutcomeResponse | None = None


class PaymentStatusResponse(BaseModel):
    transaction_ref: str
    status: str


class RefundRequest(BaseModel):
    amount: Decimal | None = Field(default=None, gt=0)


class PaymentIdResponse(BaseModel):
    payment_id: str


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class SubscriptionPaymentResponse(BaseModel):
    id: str
    user_id: int
    plan_id: int
    amount: str
    currency: str
    status: str
    gateway_session_id: str
    gateway_transaction_ref: str | None = None
    customer_email: str | None = None
    description: str | None = None
    downstream_settled: bool
    downstream_error: str | None = None


class ServicePaymentResponse(BaseModel):
    id: str
    work_order_id: int
    service_request_id: int
    owner_id: int
    provider_id: int
    total_amount: str
    platform_fee: str
    provider_amount: str
    fee_percentage: str
    currency: str
    status: str
    description: str | None = None
    gateway_session_id: str | None = None
    gateway_charge_ref: str | None = None
    downstream_settled: bool
    downstream_error: str | None = None


# ---------------------------------------------------------------------------
# Fake gateway controls
# ---------------------------------------------------------------------------
class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Card declined"


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
