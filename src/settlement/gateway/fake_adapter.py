"""Configurable fake payment gateway for development and testing.

Keeps checkout sessions in memory. Sessions start unpaid; tests (or the
``/payments/gateway`` endpoints outside production) mark them paid, and
``simulate_outage`` makes every call raise a transport failure.
"""

from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

from settlement.errors import DependencyUnavailableError
from settlement.gateway.port import (
    ChargeRequest,
    ChargeResult,
    CheckoutRequest,
    CheckoutSession,
    NormalizedStatus,
    PaymentGateway,
    RefundResult,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    name = "fake"

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.outage: bool = False
        self.calls: list[dict] = []
        self.sessions: dict[str, CheckoutSession] = {}
        self.charges: dict[str, NormalizedStatus] = {}
        self.webhook_signature: str = "fake-signature"

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def simulate_outage(self, enabled: bool = True) -> None:
        self.outage = enabled

    def _record(self, method: str, **kwargs) -> None:
        self.calls.append({"method": method, **kwargs})
        if self.outage:
            raise DependencyUnavailableError("Fake gateway unavailable", gateway=self.name)

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    # -------------------------------------------------------------------
    # Charges
    # -------------------------------------------------------------------
    def create_charge(self, request: ChargeRequest) -> ChargeResult:
        self._record("create_charge", amount=request.amount, currency=request.currency)

        if self.should_succeed:
            ref = f"fake_ch_{uuid4().hex[:12]}"
            self.charges[ref] = NormalizedStatus.SUCCEEDED
            return ChargeResult(
                success=True,
                status=NormalizedStatus.SUCCEEDED,
                transaction_ref=ref,
                amount=request.amount,
                currency=request.currency,
            )
        return ChargeResult(
            success=False,
            status=NormalizedStatus.FAILED,
            amount=request.amount,
            currency=request.currency,
            error_message=self.failure_reason,
        )

    def get_status(self, transaction_ref: str) -> NormalizedStatus:
        self._record("get_status", transaction_ref=transaction_ref)
        return self.charges.get(transaction_ref, NormalizedStatus.FAILED)

    def refund(self, transaction_ref: str, amount: Decimal | None = None) -> RefundResult:
        self._record("refund", transaction_ref=transaction_ref, amount=amount)

        if self.should_succeed:
            self.charges[transaction_ref] = NormalizedStatus.REFUNDED
            return RefundResult(success=True, refund_ref=f"fake_re_{uuid4().hex[:12]}", amount=amount)
        return RefundResult(success=False, amount=amount, error_message=self.failure_reason)

    # -------------------------------------------------------------------
    # Hosted checkout
    # -------------------------------------------------------------------
    def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        self._record(
            "create_checkout",
            amount=request.amount,
            currency=request.currency,
            metadata=dict(request.metadata),
        )
        if not self.should_succeed:
            raise DependencyUnavailableError(self.failure_reason, gateway=self.name)

        session_id = f"fake_cs_{uuid4().hex[:16]}"
        session = CheckoutSession(
            session_id=session_id,
            status=NormalizedStatus.PENDING,
            payment_status="unpaid",
            url=f"https://checkout.fake.local/{session_id}",
            amount_total=request.amount,
            currency=request.currency.upper(),
            customer_email=request.customer_email,
            metadata=dict(request.metadata),
        )
        self.sessions[session_id] = session
        return session

    def get_checkout(self, session_id: str) -> CheckoutSession:
        self._record("get_checkout", session_id=session_id)
        session = self.sessions.get(session_id)
        if session is None:
            return CheckoutSession(session_id=session_id, status=NormalizedStatus.FAILED, payment_status="not_found")
        return session

    def add_session(
        self,
        metadata: dict[str, str],
        amount: Decimal,
        currency: str = "USD",
        paid: bool = True,
        customer_email: str | None = None,
        session_id: str | None = None,
    ) -> CheckoutSession:
        """Register a session directly, as if created by another process."""
        session_id = session_id or f"fake_cs_{uuid4().hex[:16]}"
        self.sessions[session_id] = CheckoutSession(
            session_id=session_id,
            status=NormalizedStatus.PENDING,
            payment_status="unpaid",
            amount_total=amount,
            currency=currency,
            customer_email=customer_email,
            metadata=dict(metadata),
        )
        if paid:
            return self.mark_paid(session_id)
        return self.sessions[session_id]

    def mark_paid(self, session_id: str) -> CheckoutSession:
        return self._set_session_status(session_id, NormalizedStatus.SUCCEEDED, "paid")

    def mark_unpaid(self, session_id: str, payment_status: str = "unpaid") -> CheckoutSession:
        return self._set_session_status(session_id, NormalizedStatus.PENDING, payment_status)

    def _set_session_status(self, session_id: str, status: NormalizedStatus, payment_status: str) -> CheckoutSession:
        session = self.sessions[session_id]
        transaction_ref = session.transaction_ref
        if status == NormalizedStatus.SUCCEEDED and transaction_ref is None:
            transaction_ref = f"fake_pi_{uuid4().hex[:12]}"
            self.charges[transaction_ref] = NormalizedStatus.SUCCEEDED
        updated = replace(session, status=status, payment_status=payment_status, transaction_ref=transaction_ref)
        self.sessions[session_id] = updated
        return updated

    # -------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------
    def verify_webhook_signature(self, payload: bytes | str, signature: str) -> bool:  # noqa: ARG002
        return signature == self.webhook_signature
