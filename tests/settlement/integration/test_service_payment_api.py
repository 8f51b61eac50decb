"""Integration tests for the service payment endpoints."""

import json
from decimal import Decimal

import pytest


@pytest.fixture()
def checkout(client, marketplace):
    response = client.post("/service-payments/create-checkout", json={"user_id": 10, "work_order_id": 500})
    assert response.status_code == 201
    return response.json()


def _pay_and_complete(client, checkout):
    client.post(f"/payments/gateway/sessions/{checkout['session_id']}/pay")
    return client.post("/service-payments/complete", json={"session_id": checkout["session_id"]})


class TestCreateServiceCheckout:
    def test_created(self, client, checkout):
        payment = client.get(f"/service-payments/{checkout['payment_id']}").json()
        assert payment["status"] == "Pending"
        assert payment["total_amount"] == "100.00"
        assert payment["platform_fee"] == "15.00"
        assert payment["provider_amount"] == "85.00"

    def test_non_owner_forbidden(self, client, marketplace):
        response = client.post("/service-payments/create-checkout", json={"user_id": 20, "work_order_id": 500})
        assert response.status_code == 403
        assert response.json()["detail"] == "Only owners can pay for services"

    def test_unknown_work_order(self, client, marketplace):
        response = client.post("/service-payments/create-checkout", json={"user_id": 10, "work_order_id": 9})
        assert response.status_code == 404

    def test_already_paid(self, client, checkout):
        _pay_and_complete(client, checkout)
        response = client.post("/service-payments/create-checkout", json={"user_id": 10, "work_order_id": 500})
        assert response.status_code == 400

    def test_gateway_down(self, client, marketplace, gateway):
        gateway.configure(should_succeed=False)
        response = client.post("/service-payments/create-checkout", json={"user_id": 10, "work_order_id": 500})
        assert response.status_code == 503
        failed = client.get("/service-payments/by-work-order/500").json()
        assert failed["status"] == "Failed"


class TestCompleteServicePayment:
    def test_completed(self, client, checkout, profiles):
        response = _pay_and_complete(client, checkout)
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "completed"
        assert body["payment_type"] == "Service"
        assert body["details"]["provider_amount"] == "85.00"
        assert profiles.balances[200] == Decimal("85.00")

    def test_unpaid_is_402(self, client, checkout):
        response = client.post("/service-payments/complete", json={"session_id": checkout["session_id"]})
        assert response.status_code == 402

    def test_replay(self, client, checkout, profiles):
        first = _pay_and_complete(client, checkout).json()
        second = client.post("/service-payments/complete", json={"session_id": checkout["session_id"]}).json()
        assert second["replayed"] is True
        assert second["payment_id"] == first["payment_id"]
        assert second["details"] == first["details"]
        assert profiles.balances[200] == Decimal("85.00")

    def test_profiles_down_is_pending_then_retried(self, client, checkout, profiles):
        profiles.configure(outage=True)
        body = _pay_and_complete(client, checkout).json()
        assert body["status"] == "pending_downstream_settlement"

        profiles.configure(outage=False)
        retried = client.post(f"/service-payments/{checkout['payment_id']}/retry-settlement")
        assert retried.json()["status"] == "completed"
        assert profiles.balances[200] == Decimal("85.00")

    def test_missing_session_id(self, client):
        response = client.post("/service-payments/complete", json={"session_id": ""})
        assert response.status_code == 422


class TestServicePaymentQueries:
    def test_by_work_order(self, client, checkout):
        response = client.get("/service-payments/by-work-order/500")
        assert response.json()["id"] == checkout["payment_id"]

    def test_by_work_order_missing(self, client):
        assert client.get("/service-payments/by-work-order/1").status_code == 404

    def test_by_owner_and_provider(self, client, checkout):
        assert [p["id"] for p in client.get("/service-payments/by-owner/100").json()] == [checkout["payment_id"]]
        assert [p["id"] for p in client.get("/service-payments/by-provider/200").json()] == [checkout["payment_id"]]
        assert client.get("/service-payments/by-provider/999").json() == []

    def test_refund(self, client, checkout):
        _pay_and_complete(client, checkout)
        response = client.post(f"/service-payments/{checkout['payment_id']}/refund", json={"amount": "20.00"})
        assert response.status_code == 200
        assert client.get(f"/service-payments/{checkout['payment_id']}").json()["status"] == "Refunded"


class TestServicePaymentWebhook:
    def _event(self, session):
        checkout = {"id": session.session_id, "metadata": session.metadata}
        return json.dumps({"type": "checkout.session.completed", "data": {"object": checkout}})

    def test_signed_callback_completes_payment(self, client, checkout, gateway, profiles):
        session = gateway.mark_paid(checkout["session_id"])
        response = client.post(
            "/payments/webhook", content=self._event(session), headers={"Stripe-Signature": "fake-signature"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "processed"
        assert body["outcome"]["payment_id"] == checkout["payment_id"]
        assert profiles.balances[200] == Decimal("85.00")

    def test_unsigned_callback_forbidden(self, client, checkout, gateway):
        session = gateway.mark_paid(checkout["session_id"])
        response = client.post("/payments/webhook", content=self._event(session))
        assert response.status_code == 403
        assert client.get(f"/service-payments/{checkout['payment_id']}").json()["status"] == "Pending"

    def test_unrelated_event_ignored(self, client):
        response = client.post(
            "/payments/webhook",
            content=json.dumps({"type": "invoice.paid", "data": {"object": {}}}),
            headers={"Stripe-Signature": "fake-signature"},
        )
        assert response.status_code == 200
        assert response.json() == {"status": "ignored", "outcome": None}
