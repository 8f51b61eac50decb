"""Tests for the in-memory gateway used in development."""

from decimal import Decimal

import pytest
from settlement.errors import DependencyUnavailableError
from settlement.gateway.fake_adapter import FakeGateway
from settlement.gateway.port import ChargeRequest, CheckoutRequest, NormalizedStatus


def _checkout(gateway):
    return gateway.create_checkout(
        CheckoutRequest(
            amount=Decimal("10.00"),
            currency="usd",
            product_name="Plan",
            success_url="https://ok",
            cancel_url="https://cancel",
            metadata={"userId": "1", "planId": "1"},
        )
    )


class TestFakeCheckout:
    def test_new_session_is_unpaid(self):
        session = _checkout(FakeGateway())
        assert session.status == NormalizedStatus.PENDING
        assert session.payment_status == "unpaid"
        assert not session.is_paid
        assert session.currency == "USD"

    def test_mark_paid_assigns_transaction(self):
        gateway = FakeGateway()
        session = _checkout(gateway)
        paid = gateway.mark_paid(session.session_id)
        assert paid.is_paid
        assert paid.transaction_ref.startswith("fake_pi_")
        assert gateway.get_status(paid.transaction_ref) == NormalizedStatus.SUCCEEDED

    def test_mark_paid_keeps_transaction(self):
        gateway = FakeGateway()
        session = _checkout(gateway)
        first = gateway.mark_paid(session.session_id)
        assert gateway.mark_paid(session.session_id).transaction_ref == first.transaction_ref

    def test_unknown_session(self):
        session = FakeGateway().get_checkout("nope")
        assert session.status == NormalizedStatus.FAILED
        assert session.payment_status == "not_found"

    def test_outage(self):
        gateway = FakeGateway()
        gateway.simulate_outage()
        with pytest.raises(DependencyUnavailableError):
            gateway.get_checkout("anything")


class TestFakeCharges:
    def test_decline(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False, failure_reason="Insufficient funds")
        result = gateway.create_charge(
            ChargeRequest(
                amount=Decimal("5"), currency="USD", description="x", customer_email="a@b.c", payment_token="tok"
            )
        )
        assert not result.success
        assert result.error_message == "Insufficient funds"

    def test_refund_marks_charge_refunded(self):
        gateway = FakeGateway()
        charge = gateway.create_charge(
            ChargeRequest(
                amount=Decimal("5"), currency="USD", description="x", customer_email="a@b.c", payment_token="tok"
            )
        )
        assert gateway.refund(charge.transaction_ref).success
        assert gateway.get_status(charge.transaction_ref) == NormalizedStatus.REFUNDED
