"""FastAPI routes for the settlement service, covering plans, subscription payments
and service payments."""

import os

from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from protean.utils.globals import current_domain

from settlement.api.schemas import (
    CheckoutCreatedResponse,
    CheckoutSessionResponse,
    CompleteCheckoutRequest,
    ConfigureGatewayRequest,
    CreateServiceCheckoutRequest,
    CreateSubscriptionCheckoutRequest,
    GatewayConfigResponse,
    PaymentIdResponse,
    PaymentStatusResponse,
    PlanLimitsResponse,
    PlanResponse,
    RefundRequest,
    ServicePaymentResponse,
    SettlementOutcomeResponse,
    SubscriptionPaymentResponse,
    UpgradePlanRequest,
    WebhookResponse,
)
from settlement.commission import format_amount
from settlement.completion import (
    SettlementOutcome,
    complete_service_payment,
    complete_subscription_upgrade,
    handle_gateway_webhook,
    retry_downstream_settlement,
)
from settlement.completion.verification import get_payment_status, lookup_checkout
from settlement.gateway import get_gateway
from settlement.gateway.fake_adapter import FakeGateway
from settlement.plan.plan import SubscriptionPlan
from settlement.plan.queries import GetPlanById, GetPlanLimits, GetPlans, ask
from settlement.plan.upgrade import upgrade_plan
from settlement.service_payment.checkout import CreateServicePaymentCheckout, create_service_payment_checkout
from settlement.service_payment.queries import (
    get_service_payment,
    get_service_payment_by_work_order,
    get_service_payments_by_owner,
    get_service_payments_by_provider,
)
from settlement.service_payment.refund import RefundServicePayment
from settlement.service_payment.service_payment import ServicePayment
from settlement.subscription_payment.checkout import CreateSubscriptionCheckout
from settlement.subscription_payment.queries import (
    get_subscription_payment,
    get_subscription_payments_by_user,
)
from settlement.subscription_payment.refund import RefundSubscriptionPayment
from settlement.subscription_payment.subscription_payment import SubscriptionPayment


# ---------------------------------------------------------------------------
# Response mapping
# ---------------------------------------------------------------------------
def _plan(plan: SubscriptionPlan) -> PlanResponse:
    return PlanResponse(
        id=plan.id,
        plan_name=plan.plan_name,
        price=plan.price.amount,
        currency=plan.price.currency,
        billing_cycle=plan.billing_cycle,
        max_equipment=plan.max_equipment,
        max_clients=plan.max_clients,
    )


def _outcome(outcome: SettlementOutcome) -> SettlementOutcomeResponse:
    return SettlementOutcomeResponse(
        payment_id=outcome.payment_id,
        payment_type=outcome.payment_type.value,
        status=outcome.status.value,
        replayed=outcome.replayed,
        downstream_settled=outcome.downstream_settled,
        message=outcome.message,
        transaction_ref=outcome.transaction_ref,
        details=outcome.details,
    )


def _subscription_payment(payment: SubscriptionPayment) -> SubscriptionPaymentResponse:
    return SubscriptionPaymentResponse(
        id=str(payment.id),
        user_id=payment.user_id,
        plan_id=payment.plan_id,
        amount=payment.amount.amount,
        currency=payment.amount.currency,
        status=payment.status,
        gateway_session_id=payment.gateway_session_id,
        gateway_transaction_ref=payment.gateway_transaction_ref,
        customer_email=payment.customer_email,
        description=payment.description,
        downstream_settled=bool(payment.downstream_settled),
        downstream_error=payment.downstream_error,
    )


def _service_payment(payment: ServicePayment) -> ServicePaymentResponse:
    return ServicePaymentResponse(
        id=str(payment.id),
        work_order_id=payment.work_order_id,
        service_request_id=payment.service_request_id,
        owner_id=payment.owner_id,
        provider_id=payment.provider_id,
        total_amount=payment.total_amount.amount,
        platform_fee=payment.platform_fee.amount,
        provider_amount=payment.provider_amount.amount,
        fee_percentage=payment.fee_percentage,
        currency=payment.currency,
        status=payment.status,
        description=payment.description,
        gateway_session_id=payment.gateway_session_id,
        gateway_charge_ref=payment.gateway_charge_ref,
        downstream_settled=bool(payment.downstream_settled),
        downstream_error=payment.downstream_error,
    )


# ---------------------------------------------------------------------------
# Plan Router
# ---------------------------------------------------------------------------
plan_router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@plan_router.get("", response_model=list[PlanResponse])
def list_plans(user_type: str | None = None) -> list[PlanResponse]:
    """Plans offered to Owners, or to Providers when ``user_type=provider``."""
    return [_plan(plan) for plan in ask(GetPlans(user_type=user_type))]


@plan_router.get("/{plan_id}", response_model=PlanResponse)
def get_plan(plan_id: int) -> PlanResponse:
    return _plan(ask(GetPlanById(plan_id=plan_id)))


@plan_router.get("/{plan_id}/limits", response_model=PlanLimitsResponse)
def get_plan_limits(plan_id: int) -> PlanLimitsResponse:
    limits = ask(GetPlanLimits(plan_id=plan_id))
    return PlanLimitsResponse(plan_id=plan_id, max_equipment=limits.max_equipment, max_clients=limits.max_clients)


@plan_router.post("/upgrade", response_model=PlanResponse)
def upgrade(body: UpgradePlanRequest) -> PlanResponse:
    """Apply a plan to the user's profile without a payment."""
    return _plan(upgrade_plan(body.user_id, body.plan_id))


# ---------------------------------------------------------------------------
# Subscription Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/create-checkout-session", status_code=201, response_model=CheckoutCreatedResponse)
def create_checkout_session(body: CreateSubscriptionCheckoutRequest) -> CheckoutCreatedResponse:
    command = CreateSubscriptionCheckout(
        user_id=body.user_id,
        plan_id=body.plan_id,
        amount=format_amount(body.amount) if body.amount is not None else None,
        success_url=body.success_url,
        cancel_url=body.cancel_url,
        customer_email=body.customer_email,
    )
    result = current_domain.process(command, asynchronous=False)
    return CheckoutCreatedResponse(**result)


@payment_router.get("/verify/{session_id}", response_model=CheckoutSessionResponse)
def verify_session(session_id: str) -> CheckoutSessionResponse:
    """Gateway-side state of a checkout; never mutates anything."""
    session = lookup_checkout(session_id)
    return CheckoutSessionResponse(
        session_id=session.session_id,
        status=session.status.value,
        payment_status=session.payment_status,
        paid=session.is_paid,
        amount_total=format_amount(session.amount_total) if session.amount_total is not None else None,
        currency=session.currency,
        customer_email=session.customer_email,
        metadata=session.metadata,
    )


@payment_router.post("/complete-upgrade", response_model=SettlementOutcomeResponse)
def complete_upgrade(body: CompleteCheckoutRequest) -> SettlementOutcomeResponse:
    return _outcome(complete_subscription_upgrade(body.session_id))


@payment_router.post("/webhook", response_model=WebhookResponse)
async def process_webhook(request: Request, stripe_signature: str = Header(default="")) -> WebhookResponse:
    """Settle a checkout from a signed gateway callback.

    The signature covers the raw body, so it is read before any parsing and
    the blocking settlement work runs in the threadpool.
    """
    payload = await request.body()
    outcome = await run_in_threadpool(handle_gateway_webhook, payload, stripe_signature)
    if outcome is None:
        return WebhookResponse(status="ignored")
    return WebhookResponse(status="processed", outcome=_outcome(outcome))


@payment_router.get("/status/{transaction_ref}", response_model=PaymentStatusResponse)
def payment_status(transaction_ref: str) -> PaymentStatusResponse:
    status = get_payment_status(transaction_ref)
    return PaymentStatusResponse(transaction_ref=transaction_ref, status=status.value)


@payment_router.get("/subscriptions/by-user/{user_id}", response_model=list[SubscriptionPaymentResponse])
def subscription_payments_by_user(user_id: int) -> list[SubscriptionPaymentResponse]:
    return [_subscription_payment(p) for p in get_subscription_payments_by_user(user_id)]


@payment_router.get("/subscriptions/{payment_id}", response_model=SubscriptionPaymentResponse)
def subscription_payment(payment_id: str) -> SubscriptionPaymentResponse:
    return _subscription_payment(get_subscription_payment(payment_id))


@payment_router.post("/subscriptions/{payment_id}/refund", response_model=PaymentIdResponse)
def refund_subscription_payment(payment_id: str, body: RefundRequest) -> PaymentIdResponse:
    command = RefundSubscriptionPayment(
        payment_id=payment_id,
        amount=format_amount(body.amount) if body.amount is not None else None,
    )
    return PaymentIdResponse(payment_id=current_domain.process(command, asynchronous=False))


@payment_router.post("/subscriptions/{payment_id}/retry-settlement", response_model=SettlementOutcomeResponse)
def retry_subscription_settlement(payment_id: str) -> SettlementOutcomeResponse:
    return _outcome(retry_downstream_settlement("subscription", payment_id))


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only)."""
    gateway = _fake_gateway()
    gateway.configure(should_succeed=body.should_succeed, failure_reason=body.failure_reason)
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
    )


@payment_router.post("/gateway/sessions/{session_id}/pay", response_model=CheckoutSessionResponse)
def pay_fake_session(session_id: str) -> CheckoutSessionResponse:
    """Mark a FakeGateway checkout as paid (non-production only)."""
    gateway = _fake_gateway()
    if session_id not in gateway.sessions:
        raise HTTPException(status_code=404, detail=f"Unknown checkout session {session_id}")
    gateway.mark_paid(session_id)
    return verify_session(session_id)


def _fake_gateway() -> FakeGateway:
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")
    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")
    return gateway


# ---------------------------------------------------------------------------
# Service Payment Router
# ---------------------------------------------------------------------------
service_payment_router = APIRouter(prefix="/service-payments", tags=["service-payments"])


@service_payment_router.post("/create-checkout", status_code=201, response_model=CheckoutCreatedResponse)
def create_service_checkout(body: CreateServiceCheckoutRequest) -> CheckoutCreatedResponse:
    checkout = create_service_payment_checkout(
        CreateServicePaymentCheckout(
            user_id=body.user_id,
            work_order_id=body.work_order_id,
            success_url=body.success_url,
            cancel_url=body.cancel_url,
            customer_email=body.customer_email,
        )
    )
    return CheckoutCreatedResponse(payment_id=checkout.payment_id, session_id=checkout.session_id, url=checkout.url)


@service_payment_router.post("/complete", response_model=SettlementOutcomeResponse)
def complete_service_checkout(body: CompleteCheckoutRequest) -> SettlementOutcomeResponse:
    return _outcome(complete_service_payment(body.session_id))


@service_payment_router.get("/by-work-order/{work_order_id}", response_model=ServicePaymentResponse)
def service_payment_by_work_order(work_order_id: int) -> ServicePaymentResponse:
    return _service_payment(get_service_payment_by_work_order(work_order_id))


@service_payment_router.get("/by-owner/{owner_id}", response_model=list[ServicePaymentResponse])
def service_payments_by_owner(owner_id: int) -> list[ServicePaymentResponse]:
    return [_service_payment(p) for p in get_service_payments_by_owner(owner_id)]


@service_payment_router.get("/by-provider/{provider_id}", response_model=list[ServicePaymentResponse])
def service_payments_by_provider(provider_id: int) -> list[ServicePaymentResponse]:
    return [_service_payment(p) for p in get_service_payments_by_provider(provider_id)]


@service_payment_router.get("/{payment_id}", response_model=ServicePaymentResponse)
def service_payment(payment_id: str) -> ServicePaymentResponse:
    return _service_payment(get_service_payment(payment_id))


@service_payment_router.post("/{payment_id}/refund", response_model=PaymentIdResponse)
def refund_service_payment(payment_id: str, body: RefundRequest) -> PaymentIdResponse:
    command = RefundServicePayment(
        service_payment_id=payment_id,
        amount=format_amount(body.amount) if body.amount is not None else None,
    )
    return PaymentIdResponse(payment_id=current_domain.process(command, asynchronous=False))


@service_payment_router.post("/{payment_id}/retry-settlement", response_model=SettlementOutcomeResponse)
def retry_service_settlement(payment_id: str) -> SettlementOutcomeResponse:
    return _outcome(retry_downstream_settlement("service", payment_id))
