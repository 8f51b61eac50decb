"""Stripe payment gateway adapter.

Uses the stripe-python SDK: PaymentIntents for direct charges, Checkout
Sessions for hosted checkout and Refunds. Stripe amounts are integer minor
units; conversion happens only in this module.
"""

from decimal import Decimal

import stripe
import structlog

from settlement.commission import from_minor_units, to_minor_units
from settlement.errors import DependencyUnavailableError, RequestValidationError
from settlement.gateway.port import (
    ChargeRequest,
    ChargeResult,
    CheckoutRequest,
    CheckoutSession,
    NormalizedStatus,
    PaymentGateway,
    RefundResult,
    normalize_status,
)

logger = structlog.get_logger(__name__)

PAYMENT_INTENT_STATUSES = {
    "succeeded": NormalizedStatus.SUCCEEDED,
    "processing": NormalizedStatus.PROCESSING,
    "requires_payment_method": NormalizedStatus.FAILED,
    "requires_confirmation": NormalizedStatus.PENDING,
    "requires_action": NormalizedStatus.PENDING,
    "canceled": NormalizedStatus.CANCELED,
}

CHECKOUT_PAYMENT_STATUSES = {
    "paid": NormalizedStatus.SUCCEEDED,
    "no_payment_required": NormalizedStatus.SUCCEEDED,
    "unpaid": NormalizedStatus.PENDING,
}

SESSION_PLACEHOLDER = "session_id={CHECKOUT_SESSION_ID}"


def with_session_placeholder(success_url: str) -> str:
    """Have Stripe echo the session id back on the success redirect."""
    separator = "&" if "?" in success_url else "?"
    return f"{success_url}{separator}{SESSION_PLACEHOLDER}"


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    name = "stripe"

    def __init__(self, api_key: str, webhook_secret: str | None = None, timeout: float = 30.0) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    def _unavailable(self, exc: Exception, operation: str) -> DependencyUnavailableError:
        logger.error("stripe.transport_error", operation=operation, error=str(exc))
        return DependencyUnavailableError(f"Stripe unavailable: {exc}", gateway=self.name)

    @staticmethod
    def _is_transport_error(exc: stripe.StripeError) -> bool:
        if isinstance(exc, stripe.APIConnectionError):
            return True
        return exc.http_status is not None and exc.http_status >= 500

    # -------------------------------------------------------------------
    # Charges
    # -------------------------------------------------------------------
    def create_charge(self, request: ChargeRequest) -> ChargeResult:
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=to_minor_units(request.amount),
                currency=request.currency.lower(),
                payment_method=request.payment_token,
                confirm=True,
                description=request.description,
                receipt_email=request.customer_email,
                metadata=dict(request.metadata),
                automatic_payment_methods={"enabled": True, "allow_redirects": "never"},
            )
        except stripe.StripeError as exc:
            if self._is_transport_error(exc):
                raise self._unavailable(exc, "create_charge") from exc
            return ChargeResult(
                success=False,
                status=NormalizedStatus.FAILED,
                amount=request.amount,
                currency=request.currency,
                error_message=exc.user_message or str(exc),
            )

        status = normalize_status(intent["status"], PAYMENT_INTENT_STATUSES, self.name)
        return ChargeResult(
            success=status == NormalizedStatus.SUCCEEDED,
            status=status,
            transaction_ref=intent["id"],
            amount=from_minor_units(intent["amount"]),
            currency=intent["currency"].upper(),
            error_message=None if status == NormalizedStatus.SUCCEEDED else f"Payment status: {intent['status']}",
        )

    def get_status(self, transaction_ref: str) -> NormalizedStatus:
        try:
            intent = stripe.PaymentIntent.retrieve(transaction_ref, api_key=self.api_key)
        except stripe.StripeError as exc:
            if self._is_transport_error(exc):
                raise self._unavailable(exc, "get_status") from exc
            logger.warning("stripe.status_lookup_failed", transaction_ref=transaction_ref, error=str(exc))
            return NormalizedStatus.FAILED
        return normalize_status(intent["status"], PAYMENT_INTENT_STATUSES, self.name)

    def refund(self, transaction_ref: str, amount: Decimal | None = None) -> RefundResult:
        params = {"payment_intent": transaction_ref, "api_key": self.api_key}
        if amount is not None:
            params["amount"] = to_minor_units(amount)
        try:
            refund = stripe.Refund.create(**params)
        except stripe.StripeError as exc:
            if self._is_transport_error(exc):
                raise self._unavailable(exc, "refund") from exc
            return RefundResult(success=False, amount=amount, error_message=exc.user_message or str(exc))

        return RefundResult(
            success=refund["status"] in ("succeeded", "pending"),
            refund_ref=refund["id"],
            amount=from_minor_units(refund["amount"]),
            error_message=None if refund["status"] in ("succeeded", "pending") else f"Refund status: {refund['status']}",
        )

    # -------------------------------------------------------------------
    # Hosted checkout
    # -------------------------------------------------------------------
    def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        product_data = {"name": request.product_name}
        if request.product_description:
            product_data["description"] = request.product_description
        params = {
            "api_key": self.api_key,
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": request.currency.lower(),
                        "product_data": product_data,
                        "unit_amount": to_minor_units(request.amount),
                    },
                    "quantity": 1,
                }
            ],
            "success_url": with_session_placeholder(request.success_url),
            "cancel_url": request.cancel_url,
            "metadata": dict(request.metadata),
            "payment_intent_data": {"metadata": dict(request.metadata)},
        }
        if request.customer_email:
            params["customer_email"] = request.customer_email
        try:
            session = stripe.checkout.Session.create(**params)
        except stripe.StripeError as exc:
            if self._is_transport_error(exc):
                raise self._unavailable(exc, "create_checkout") from exc
            logger.error("stripe.checkout_rejected", error=str(exc), error_type=type(exc).__name__)
            raise RequestValidationError(
                f"Stripe rejected the checkout: {exc.user_message or exc}", gateway=self.name
            ) from exc
        return self._to_checkout(session)

    def get_checkout(self, session_id: str) -> CheckoutSession:
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        except stripe.StripeError as exc:
            if self._is_transport_error(exc):
                raise self._unavailable(exc, "get_checkout") from exc
            logger.warning("stripe.checkout_lookup_failed", session_id=session_id, error=str(exc))
            return CheckoutSession(session_id=session_id, status=NormalizedStatus.FAILED, payment_status="not_found")
        return self._to_checkout(session)

    def _to_checkout(self, session) -> CheckoutSession:
        payment_status = session.get("payment_status") or ""
        if session.get("status") == "expired":
            status = NormalizedStatus.CANCELED
        else:
            status = normalize_status(payment_status, CHECKOUT_PAYMENT_STATUSES, self.name)

        customer_email = session.get("customer_email")
        details = session.get("customer_details")
        if not customer_email and details:
            customer_email = details.get("email")

        amount_total = session.get("amount_total")
        currency = session.get("currency")
        return CheckoutSession(
            session_id=session["id"],
            status=status,
            payment_status=payment_status,
            url=session.get("url"),
            amount_total=from_minor_units(amount_total) if amount_total is not None else None,
            currency=currency.upper() if currency else None,
            customer_email=customer_email,
            metadata={str(k): str(v) for k, v in (session.get("metadata") or {}).items()},
            transaction_ref=session.get("payment_intent"),
        )

    def verify_webhook_signature(self, payload: bytes | str, signature: str) -> bool:
        if not self.webhook_secret:
            logger.warning("stripe.webhook_secret_missing")
            return False
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (stripe.SignatureVerificationError, ValueError):
            return False
        return True
