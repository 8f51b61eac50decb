"""Culqi payment gateway adapter (Culqi API v2, Bearer secret key).

Charges and refunds go through ``/charges`` and ``/refunds``; hosted checkout
is modelled with Culqi orders (``/orders``), whose id is the session id.
Culqi amounts are integer cents.
"""

import time
from decimal import Decimal
from uuid import uuid4

import requests
import structlog

from settlement.commission import from_minor_units, to_minor_units
from settlement.errors import DependencyUnavailableError
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
from settlement.http import JsonHttpClient, json_body

logger = structlog.get_logger(__name__)

CHARGE_STATUSES = {
    "venta_exitosa": NormalizedStatus.SUCCEEDED,
    "pending": NormalizedStatus.PROCESSING,
    "rechazada": NormalizedStatus.FAILED,
    "cancelada": NormalizedStatus.CANCELED,
}

ORDER_STATUSES = {
    "paid": NormalizedStatus.SUCCEEDED,
    "pending": NormalizedStatus.PENDING,
    "created": NormalizedStatus.PENDING,
    "expired": NormalizedStatus.FAILED,
    "deleted": NormalizedStatus.CANCELED,
}

SUPPORTED_CURRENCIES = {"USD", "PEN", "EUR"}
DEFAULT_CURRENCY = "PEN"
ORDER_TTL_SECONDS = 24 * 60 * 60


def currency_code(currency: str | None) -> str:
    code = (currency or "").upper()
    return code if code in SUPPORTED_CURRENCIES else DEFAULT_CURRENCY


def _error_message(body: dict, default: str) -> str:
    return body.get("user_message") or body.get("merchant_message") or default


class CulqiGateway(PaymentGateway):
    name = "culqi"

    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.culqi.com/v2",
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.client = JsonHttpClient(
            base_url,
            service=self.name,
            timeout=timeout,
            session=session,
            headers={"Authorization": f"Bearer {secret_key}"},
        )

    # -------------------------------------------------------------------
    # Charges
    # -------------------------------------------------------------------
    def create_charge(self, request: ChargeRequest) -> ChargeResult:
        response = self.client.post(
            "/charges",
            json={
                "amount": to_minor_units(request.amount),
                "currency_code": currency_code(request.currency),
                "description": request.description,
                "email": request.customer_email,
                "source_id": request.payment_token,
                "metadata": dict(request.metadata),
            },
        )
        body = json_body(response)
        if not response.ok:
            return ChargeResult(
                success=False,
                status=NormalizedStatus.FAILED,
                amount=request.amount,
                currency=request.currency,
                error_message=_error_message(body, "Charge declined"),
            )

        native = (body.get("outcome") or {}).get("type")
        status = normalize_status(native, CHARGE_STATUSES, self.name)
        return ChargeResult(
            success=status == NormalizedStatus.SUCCEEDED,
            status=status,
            transaction_ref=body.get("id"),
            amount=from_minor_units(body.get("amount", 0)),
            currency=body.get("currency_code", currency_code(request.currency)),
            error_message=None if status == NormalizedStatus.SUCCEEDED else f"Payment status: {native}",
        )

    def get_status(self, transaction_ref: str) -> NormalizedStatus:
        response = self.client.get(f"/charges/{transaction_ref}")
        if not response.ok:
            logger.warning("culqi.status_lookup_failed", transaction_ref=transaction_ref, status=response.status_code)
            return NormalizedStatus.FAILED
        body = json_body(response)
        return normalize_status((body.get("outcome") or {}).get("type"), CHARGE_STATUSES, self.name)

    def refund(self, transaction_ref: str, amount: Decimal | None = None) -> RefundResult:
        if amount is None:
            charge = self.client.get(f"/charges/{transaction_ref}")
            if not charge.ok:
                return RefundResult(success=False, error_message="Charge not found")
            minor = json_body(charge).get("amount", 0)
        else:
            minor = to_minor_units(amount)

        response = self.client.post(
            "/refunds",
            json={"amount": minor, "charge_id": transaction_ref, "reason": "solicitud_comprador"},
        )
        body = json_body(response)
        if not response.ok:
            return RefundResult(
                success=False,
                amount=from_minor_units(minor),
                error_message=_error_message(body, "Refund rejected"),
            )
        return RefundResult(success=True, refund_ref=body.get("id"), amount=from_minor_units(body.get("amount", minor)))

    # -------------------------------------------------------------------
    # Hosted checkout (orders)
    # -------------------------------------------------------------------
    def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        response = self.client.post(
            "/orders",
            json={
                "amount": to_minor_units(request.amount),
                "currency_code": currency_code(request.currency),
                "description": request.product_name[:80],
                "order_number": f"ord-{uuid4().hex[:20]}",
                "client_details": {"email": request.customer_email} if request.customer_email else {},
                "expiration_date": int(time.time()) + ORDER_TTL_SECONDS,
                "confirm": False,
                "metadata": dict(request.metadata),
            },
        )
        body = json_body(response)
        if not response.ok:
            raise DependencyUnavailableError(_error_message(body, "Culqi order rejected"), gateway=self.name)
        return self._to_checkout(body, fallback_email=request.customer_email)

    def get_checkout(self, session_id: str) -> CheckoutSession:
        response = self.client.get(f"/orders/{session_id}")
        if not response.ok:
            return CheckoutSession(session_id=session_id, status=NormalizedStatus.FAILED, payment_status="not_found")
        return self._to_checkout(json_body(response))

    def _to_checkout(self, order: dict, fallback_email: str | None = None) -> CheckoutSession:
        native = order.get("state") or ""
        amount = order.get("amount")
        return CheckoutSession(
            session_id=order.get("id", ""),
            status=normalize_status(native, ORDER_STATUSES, self.name),
            payment_status=native,
            amount_total=from_minor_units(amount) if amount is not None else None,
            currency=order.get("currency_code"),
            customer_email=(order.get("client_details") or {}).get("email") or fallback_email,
            metadata={str(k): str(v) for k, v in (order.get("metadata") or {}).items()},
            transaction_ref=order.get("charge_id") or order.get("id"),
        )
