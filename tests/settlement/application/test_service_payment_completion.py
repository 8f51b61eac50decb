"""Application tests for completing a service payment checkout."""

import threading
from dataclasses import replace
from decimal import Decimal

import pytest
from protean import current_domain
from settlement.completion import OutcomeStatus, complete_service_payment, retry_downstream_settlement
from settlement.config import Settings, set_settings
from settlement.domain import settlement
from settlement.errors import (
    DependencyUnavailableError,
    GatewayDeclineError,
    NotFoundError,
    RequestValidationError,
)
from settlement.lifecycle import PaymentStatus
from settlement.service_payment.checkout import CreateServicePaymentCheckout, create_service_payment_checkout
from settlement.service_payment.service_payment import ServicePayment

PROCESSED = "Settlement.ServicePaymentProcessed.v1"
SERVICE_COMPLETED = "Settlement.ServicePaymentCompleted.v1"


@pytest.fixture()
def checkout(marketplace):
    return create_service_payment_checkout(CreateServicePaymentCheckout(user_id=10, work_order_id=500))


@pytest.fixture()
def paid_checkout(checkout, gateway):
    gateway.mark_paid(checkout.session_id)
    return checkout


def _payment(payment_id):
    return current_domain.repository_for(ServicePayment).get(payment_id)


def _messages(outbox, message_type):
    return [record.data for record in outbox.find_by_message_type(message_type)]


class TestServicePaymentCompleted:
    def test_outcome(self, paid_checkout):
        outcome = complete_service_payment(paid_checkout.session_id)
        assert outcome.status == OutcomeStatus.COMPLETED
        assert outcome.downstream_settled is True
        assert outcome.replayed is False
        assert outcome.payment_id == paid_checkout.payment_id
        assert outcome.message == "Payment completed; provider credited 85.00"
        assert outcome.details["platform_fee"] == "15.00"

    def test_payment_completed_with_gateway_refs(self, paid_checkout, gateway):
        complete_service_payment(paid_checkout.session_id)
        payment = _payment(paid_checkout.payment_id)
        assert payment.status == PaymentStatus.COMPLETED.value
        assert payment.gateway_charge_ref == gateway.sessions[paid_checkout.session_id].transaction_ref
        assert payment.gateway_txn_ref == paid_checkout.session_id
        assert payment.downstream_settled is True

    def test_provider_credited_with_stored_amount(self, paid_checkout, profiles):
        complete_service_payment(paid_checkout.session_id)
        assert profiles.balances[200] == Decimal("85.00")

    def test_fee_change_after_checkout_does_not_change_split(self, paid_checkout, profiles):
        set_settings(Settings(platform_fee_percentage=Decimal("20")))
        complete_service_payment(paid_checkout.session_id)
        assert profiles.balances[200] == Decimal("85.00")

    def test_provider_notified(self, paid_checkout, notifications):
        complete_service_payment(paid_checkout.session_id)
        assert notifications.sent == [
            {
                "user_id": 20,
                "title": "Payment Received",
                "message": "Payment of $85.00 received for service: Freezer compressor repair",
            }
        ]

    def test_contracts_written_to_outbox_with_the_transition(self, paid_checkout, outbox):
        complete_service_payment(paid_checkout.session_id)

        processed = _messages(outbox, PROCESSED)
        assert len(processed) == 1
        assert processed[0]["payment_type"] == "Service"
        assert processed[0]["user_id"] == 100
        assert processed[0]["provider_amount"] == "85.00"
        assert processed[0]["gateway_session_id"] == paid_checkout.session_id

        completed = _messages(outbox, SERVICE_COMPLETED)
        assert len(completed) == 1
        assert completed[0]["total_amount"] == "100.00"
        assert completed[0]["platform_fee"] == "15.00"
        assert completed[0]["provider_amount"] == "85.00"
        assert completed[0]["work_order_id"] == 500

    def test_split_matches_checkout_metadata(self, paid_checkout, gateway):
        outcome = complete_service_payment(paid_checkout.session_id)
        metadata = gateway.sessions[paid_checkout.session_id].metadata
        assert outcome.details["total_amount"] == metadata["totalAmount"]
        assert outcome.details["platform_fee"] == metadata["platformFee"]
        assert outcome.details["provider_amount"] == metadata["providerAmount"]

    def test_notification_failure_does_not_fail_completion(self, paid_checkout, notifications):
        notifications.configure(outage=True)
        outcome = complete_service_payment(paid_checkout.session_id)
        assert outcome.status == OutcomeStatus.COMPLETED


class TestServicePaymentReplay:
    def test_second_completion_is_a_replay(self, paid_checkout):
        first = complete_service_payment(paid_checkout.session_id)
        second = complete_service_payment(paid_checkout.session_id)
        assert second.replayed is True
        assert second == first

    def test_side_effects_happen_once(self, paid_checkout, profiles, notifications, outbox):
        for _ in range(3):
            complete_service_payment(paid_checkout.session_id)
        assert len(profiles.calls_to("update_provider_balance")) == 1
        assert profiles.balances[200] == Decimal("85.00")
        assert len(notifications.sent) == 1
        assert len(_messages(outbox, SERVICE_COMPLETED)) == 1

    def test_concurrent_completions_settle_once(self, paid_checkout, profiles):
        outcomes = []
        errors = []

        def complete():
            with settlement.domain_context():
                try:
                    outcomes.append(complete_service_payment(paid_checkout.session_id))
                except Exception as exc:  # pragma: no cover
                    errors.append(exc)

        threads = [threading.Thread(target=complete) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(outcomes) == 6
        assert sum(1 for outcome in outcomes if not outcome.replayed) == 1
        assert len(profiles.calls_to("update_provider_balance")) == 1
        assert profiles.balances[200] == Decimal("85.00")


class TestServicePaymentNotCompleted:
    def test_unpaid_checkout_is_declined(self, checkout, profiles, outbox):
        with pytest.raises(GatewayDeclineError, match="Payment not completed. Status: unpaid"):
            complete_service_payment(checkout.session_id)
        assert _payment(checkout.payment_id).status == PaymentStatus.PENDING.value
        assert profiles.calls_to("update_provider_balance") == []
        assert _messages(outbox, PROCESSED) == []

    def test_unknown_session_is_declined(self, marketplace):
        with pytest.raises(GatewayDeclineError):
            complete_service_payment("cs_does_not_exist")

    def test_gateway_outage_mutates_nothing(self, paid_checkout, gateway):
        gateway.simulate_outage()
        with pytest.raises(DependencyUnavailableError):
            complete_service_payment(paid_checkout.session_id)
        assert _payment(paid_checkout.payment_id).status == PaymentStatus.PENDING.value

    def test_blank_session_id(self):
        with pytest.raises(RequestValidationError):
            complete_service_payment("  ")


class TestServicePaymentMetadataChecks:
    def test_tampered_split_rejected(self, checkout, gateway, profiles):
        session = gateway.sessions[checkout.session_id]
        tampered = {**session.metadata, "platformFee": "5.00", "providerAmount": "95.00"}
        gateway.sessions[checkout.session_id] = replace(session, metadata=tampered)
        gateway.mark_paid(checkout.session_id)

        with pytest.raises(RequestValidationError, match="amounts do not match"):
            complete_service_payment(checkout.session_id)
        assert _payment(checkout.payment_id).status == PaymentStatus.PENDING.value
        assert profiles.calls_to("update_provider_balance") == []

    def test_tampered_total_rejected(self, checkout, gateway):
        session = gateway.sessions[checkout.session_id]
        tampered = {**session.metadata, "totalAmount": "50.00", "platformFee": "7.50", "providerAmount": "42.50"}
        gateway.sessions[checkout.session_id] = replace(session, metadata=tampered)
        gateway.mark_paid(checkout.session_id)

        with pytest.raises(RequestValidationError, match="amounts do not match"):
            complete_service_payment(checkout.session_id)

    def test_ids_must_match(self, checkout, gateway):
        session = gateway.sessions[checkout.session_id]
        gateway.sessions[checkout.session_id] = replace(session, metadata={**session.metadata, "providerId": "201"})
        gateway.mark_paid(checkout.session_id)

        with pytest.raises(RequestValidationError, match="does not match"):
            complete_service_payment(checkout.session_id)

    def test_foreign_session_rejected(self, checkout, gateway):
        metadata = dict(gateway.sessions[checkout.session_id].metadata)
        session = gateway.add_session(metadata, amount=Decimal("100.00"))
        with pytest.raises(RequestValidationError, match="does not belong"):
            complete_service_payment(session.session_id)

    def test_charged_amount_must_match(self, checkout, gateway):
        session = gateway.sessions[checkout.session_id]
        gateway.sessions[checkout.session_id] = replace(session, amount_total=Decimal("1.00"))
        gateway.mark_paid(checkout.session_id)

        with pytest.raises(RequestValidationError, match="Gateway charged"):
            complete_service_payment(checkout.session_id)

    def test_unknown_service_payment(self, checkout, gateway):
        metadata = dict(gateway.sessions[checkout.session_id].metadata)
        metadata["servicePaymentId"] = "00000000-0000-0000-0000-000000000000"
        session = gateway.add_session(metadata, amount=Decimal("100.00"))
        with pytest.raises(NotFoundError):
            complete_service_payment(session.session_id)

    def test_subscription_session_rejected(self, marketplace, gateway):
        session = gateway.add_session({"userId": "10", "planId": "2"}, amount=Decimal("35.13"))
        with pytest.raises(RequestValidationError):
            complete_service_payment(session.session_id)


class TestServicePaymentDownstreamFailure:
    def test_rejected_balance_update_leaves_payment_completed(self, paid_checkout, profiles, outbox):
        profiles.configure(should_succeed=False)
        outcome = complete_service_payment(paid_checkout.session_id)

        assert outcome.status == OutcomeStatus.PENDING_DOWNSTREAM_SETTLEMENT
        assert outcome.downstream_settled is False
        assert outcome.message.startswith("Payment recorded; provider balance update pending")

        payment = _payment(paid_checkout.payment_id)
        assert payment.status == PaymentStatus.COMPLETED.value
        assert payment.downstream_settled is False
        assert "rejected balance update" in payment.downstream_error
        assert len(_messages(outbox, PROCESSED)) == 1

    def test_profiles_outage_leaves_payment_completed(self, paid_checkout, profiles):
        profiles.configure(outage=True)
        outcome = complete_service_payment(paid_checkout.session_id)
        assert outcome.status == OutcomeStatus.PENDING_DOWNSTREAM_SETTLEMENT
        assert _payment(paid_checkout.payment_id).is_completed

    def test_replay_does_not_retry_downstream(self, paid_checkout, profiles):
        profiles.configure(should_succeed=False)
        complete_service_payment(paid_checkout.session_id)
        profiles.configure(should_succeed=True)

        outcome = complete_service_payment(paid_checkout.session_id)
        assert outcome.replayed is True
        assert outcome.status == OutcomeStatus.PENDING_DOWNSTREAM_SETTLEMENT
        assert len(profiles.calls_to("update_provider_balance")) == 1

    def test_retry_settles_once(self, paid_checkout, profiles):
        profiles.configure(should_succeed=False)
        complete_service_payment(paid_checkout.session_id)
        profiles.configure(should_succeed=True)

        outcome = retry_downstream_settlement("service", paid_checkout.payment_id)
        assert outcome.status == OutcomeStatus.COMPLETED
        assert profiles.balances[200] == Decimal("85.00")

        again = retry_downstream_settlement("Service", paid_checkout.payment_id)
        assert again.replayed is True
        assert profiles.balances[200] == Decimal("85.00")
        assert len(profiles.calls_to("update_provider_balance")) == 2

    def test_retry_requires_completed_payment(self, checkout):
        with pytest.raises(RequestValidationError):
            retry_downstream_settlement("service", checkout.payment_id)

    def test_retry_unknown_type(self):
        with pytest.raises(RequestValidationError):
            retry_downstream_settlement("donation", "abc")
