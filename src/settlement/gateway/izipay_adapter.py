"""Izipay payment gateway adapter (REST API V4, Basic auth shop id/api key).

Every V4 response wraps its payload as ``{"status": "SUCCESS"|"ERROR",
"answer": {...}}``. Amounts are integer cents and currencies travel as
ISO-4217 numeric codes.
"""

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

ORDER_STATUSES = {
    "PAID": NormalizedStatus.SUCCEEDED,
    "RUNNING": NormalizedStatus.PROCESSING,
    "UNPAID": NormalizedStatus.PENDING,
    "CANCELLED": NormalizedStatus.CANCELED,
    "ABANDONED": NormalizedStatus.FAILED,
}

NUMERIC_CURRENCIES = {"USD": "840", "PEN": "604", "EUR": "978"}
DEFAULT_NUMERIC_CURRENCY = "840"
_ALPHA_CURRENCIES = {numeric: alpha for alpha, numeric in NUMERIC_CURRENCIES.items()}


def numeric_currency(currency: str | None) -> str:
    return NUMERIC_CURRENCIES.get((currency or "").upper(), DEFAULT_NUMERIC_CURRENCY)


def alpha_currency(code: str | int | None) -> str | None:
    if code is None:
        return None
    code = str(code)
    return _ALPHA_CURRENCIES.get(code, code.upper())


def _answer(response: requests.Response) -> tuple[bool, dict]:
    body = json_body(response)
    answer = body.get("answer") or {}
    return response.ok and body.get("status") == "SUCCESS", answer


class IzipayGateway(PaymentGateway):
    name = "izipay"

    def __init__(
        self,
        shop_id: str,
        api_key: str,
        base_url: str = "https://api.micuentaweb.pe/api-payment/V4",
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.client = JsonHttpClient(
            base_url,
            service=self.name,
            timeout=timeout,
            session=session,
            auth=(shop_id, api_key),
        )

    # -------------------------------------------------------------------
    # Charges
    # -------------------------------------------------------------------
    def create_charge(self, request: ChargeRequest) -> ChargeResult:
        ok, answer = _answer(
            self.client.post(
                "/Charge/CreatePayment",
                json={
                    "amount": to_minor_units(request.amount),
                    "currency": numeric_currency(request.currency),
                    "orderId": f"order-{uuid4().hex[:20]}",
                    "customer": {"email": request.customer_email},
                    "paymentMethodToken": request.payment_token,
                    "formAction": "PAYMENT",
                    "metadata": dict(request.metadata),
                },
            )
        )
        if not ok:
            return ChargeResult(
                success=False,
                status=NormalizedStatus.FAILED,
                amount=request.amount,
                currency=request.currency,
                error_message=answer.get("errorMessage") or "Charge declined",
            )

        native = answer.get("orderStatus")
        status = normalize_status(native, ORDER_STATUSES, self.name)
        return ChargeResult(
            success=status == NormalizedStatus.SUCCEEDED,
            status=status,
            transaction_ref=answer.get("transactionUuid"),
            amount=request.amount,
            currency=request.currency,
            error_message=None if status == NormalizedStatus.SUCCEEDED else answer.get("errorMessage") or f"Payment status: {native}",
        )

    def get_status(self, transaction_ref: str) -> NormalizedStatus:
        ok, answer = _answer(self.client.post("/Transaction/Get", json={"uuid": transaction_ref}))
        if not ok:
            logger.warning("izipay.status_lookup_failed", transaction_ref=transaction_ref)
            return NormalizedStatus.FAILED
        return normalize_status(answer.get("orderStatus") or answer.get("status"), ORDER_STATUSES, self.name)

    def refund(self, transaction_ref: str, amount: Decimal | None = None) -> RefundResult:
        payload = {"uuid": transaction_ref}
        if amount is not None:
            payload["amount"] = to_minor_units(amount)
        ok, answer = _answer(self.client.post("/Transaction/Refund", json=payload))
        if not ok:
            return RefundResult(success=False, amount=amount, error_message=answer.get("errorMessage") or "Refund rejected")
        refunded = answer.get("amount")
        return RefundResult(
            success=True,
            refund_ref=answer.get("uuid") or answer.get("transactionUuid"),
            amount=from_minor_units(refunded) if refunded is not None else amount,
        )

    # -------------------------------------------------------------------
    # Hosted checkout (payment forms keyed by order id)
    # -------------------------------------------------------------------
    def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        order_id = f"order-{uuid4().hex[:20]}"
        ok, answer = _answer(
            self.client.post(
                "/Charge/CreatePayment",
                json={
                    "amount": to_minor_units(request.amount),
                    "currency": numeric_currency(request.currency),
                    "orderId": order_id,
                    "customer": {"email": request.customer_email} if request.customer_email else {},
                    "metadata": dict(request.metadata),
                },
            )
        )
        if not ok:
            raise DependencyUnavailableError(answer.get("errorMessage") or "Izipay payment form rejected", gateway=self.name)
        return CheckoutSession(
            session_id=order_id,
            status=NormalizedStatus.PENDING,
            payment_status="UNPAID",
            url=answer.get("formToken"),
            amount_total=request.amount,
            currency=request.currency.upper(),
            customer_email=request.customer_email,
            metadata=dict(request.metadata),
        )

    def get_checkout(self, session_id: str) -> CheckoutSession:
        ok, answer = _answer(self.client.post("/Order/Get", json={"orderId": session_id}))
        if not ok:
            return CheckoutSession(session_id=session_id, status=NormalizedStatus.FAILED, payment_status="not_found")

        transactions = answer.get("transactions") or []
        latest = transactions[-1] if transactions else {}
        native = answer.get("orderStatus") or latest.get("status") or ""
        details = answer.get("orderDetails") or {}
        amount = details.get("orderTotalAmount", latest.get("amount"))
        return CheckoutSession(
            session_id=session_id,
            status=normalize_status(native, ORDER_STATUSES, self.name),
            payment_status=native,
            amount_total=from_minor_units(amount) if amount is not None else None,
            currency=alpha_currency(details.get("orderCurrency") or latest.get("currency")),
            customer_email=(answer.get("customer") or {}).get("email"),
            metadata={str(k): str(v) for k, v in (answer.get("metadata") or latest.get("metadata") or {}).items()},
            transaction_ref=latest.get("uuid"),
        )
