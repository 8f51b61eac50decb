"""Application tests for settling checkouts from signed gateway callbacks."""

import json

import pytest
from protean import current_domain
from settlement.completion import OutcomeStatus, complete_service_payment, handle_gateway_webhook
from settlement.errors import ForbiddenError, GatewayDeclineError, RequestValidationError
from settlement.lifecycle import PaymentStatus
from settlement.service_payment.checkout import CreateServicePaymentCheckout, create_service_payment_checkout
from settlement.service_payment.service_payment import ServicePayment
from settlement.subscription_payment.checkout import CreateSubscriptionCheckout
from settlement.subscription_payment.subscription_payment import SubscriptionPayment

SIGNATURE = "fake-signature"


def _payload(session_id, metadata=None, event_type="checkout.session.completed"):
    return json.dumps(
        {
            "id": "evt_1",
            "type": event_type,
            "data": {"object": {"id": session_id, "metadata": metadata or {}}},
        }
    ).encode()


@pytest.fixture()
def service_checkout(marketplace, gateway):
    checkout = create_service_payment_checkout(CreateServicePaymentCheckout(user_id=10, work_order_id=500))
    gateway.mark_paid(checkout.session_id)
    return checkout


class TestServiceCheckoutWebhook:
    def test_completes_the_service_payment(self, service_checkout, gateway, profiles):
        session = gateway.sessions[service_checkout.session_id]

        outcome = handle_gateway_webhook(_payload(session.session_id, session.metadata), SIGNATURE)

        assert outcome.status == OutcomeStatus.COMPLETED
        assert outcome.payment_id == service_checkout.payment_id
        payment = current_domain.repository_for(ServicePayment).get(service_checkout.payment_id)
        assert payment.status == PaymentStatus.COMPLETED.value
        assert profiles.balances[200] == payment.provider_amount.value

    def test_success_page_after_webhook_is_a_replay(self, service_checkout, gateway, profiles):
        session = gateway.sessions[service_checkout.session_id]
        handle_gateway_webhook(_payload(session.session_id, session.metadata), SIGNATURE)

        outcome = complete_service_payment(service_checkout.session_id)

        assert outcome.replayed is True
        assert len(profiles.calls_to("update_provider_balance")) == 1

    def test_unpaid_checkout_is_declined(self, marketplace, gateway):
        checkout = create_service_payment_checkout(CreateServicePaymentCheckout(user_id=10, work_order_id=500))
        session = gateway.sessions[checkout.session_id]
        with pytest.raises(GatewayDeclineError):
            handle_gateway_webhook(_payload(session.session_id, session.metadata), SIGNATURE)


class TestSubscriptionCheckoutWebhook:
    def test_async_payment_upgrades_the_plan(self, plans, profiles, gateway):
        profiles.add_owner(user_id=10, owner_id=100)
        checkout = current_domain.process(CreateSubscriptionCheckout(user_id=10, plan_id=2), asynchronous=False)
        session = gateway.mark_paid(checkout["session_id"])

        outcome = handle_gateway_webhook(
            _payload(session.session_id, session.metadata, event_type="checkout.session.async_payment_succeeded"),
            SIGNATURE,
        )

        assert outcome.status == OutcomeStatus.COMPLETED
        payment = current_domain.repository_for(SubscriptionPayment).get(checkout["payment_id"])
        assert payment.status == PaymentStatus.COMPLETED.value
        assert profiles.plans[("owner", 100)] == (2, 12)


class TestRejectedWebhooks:
    def test_bad_signature(self, gateway):
        with pytest.raises(ForbiddenError):
            handle_gateway_webhook(_payload("fake_cs_1"), "forged")
        assert gateway.calls_to("get_checkout") == []

    def test_other_event_types_are_ignored(self, gateway):
        assert handle_gateway_webhook(_payload("fake_cs_1", event_type="invoice.paid"), SIGNATURE) is None
        assert gateway.calls_to("get_checkout") == []

    @pytest.mark.parametrize(
        "payload",
        [b"not json", b"[]", b'{"type": "checkout.session.completed"}', b'{"type": "x", "data": {"object": 1}}'],
    )
    def test_malformed_payload(self, payload):
        with pytest.raises(RequestValidationError, match="Malformed"):
            handle_gateway_webhook(payload, SIGNATURE)

    def test_missing_session_id(self):
        payload = json.dumps({"type": "checkout.session.completed", "data": {"object": {}}}).encode()
        with pytest.raises(RequestValidationError, match="session id"):
            handle_gateway_webhook(payload, SIGNATURE)
