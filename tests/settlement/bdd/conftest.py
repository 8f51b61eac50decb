"""Shared BDD fixtures and step definitions for settlement."""

from decimal import Decimal

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from settlement.external.port import ServiceRequestData, WorkOrderData
from settlement.service_payment.service_payment import ServicePayment


@pytest.fixture()
def context():
    """Mutable scratchpad shared between the steps of one scenario."""
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("an owner with user id {user_id:d} and owner id {owner_id:d}"))
def _(profiles, user_id, owner_id):
    profiles.add_owner(user_id=user_id, owner_id=owner_id)


@given(parsers.cfparse('a provider with user id {user_id:d} and provider id {provider_id:d} named "{name}"'))
def _(profiles, user_id, provider_id, name):
    profiles.add_provider(user_id=user_id, provider_id=provider_id, company_name=name)


@given(
    parsers.cfparse(
        'a resolved work order {work_order_id:d} costing "{cost}" billed by provider {provider_id:d} '
        "to owner {owner_id:d} under service request {sr_id:d}"
    )
)
def _(work_orders, service_requests, work_order_id, cost, provider_id, owner_id, sr_id):
    work_orders.add(
        WorkOrderData(
            id=work_order_id,
            work_order_number=f"WO-{work_order_id:04d}",
            title="Freezer compressor repair",
            status="Resolved",
            service_request_id=sr_id,
            cost=Decimal(cost),
        )
    )
    service_requests.add(ServiceRequestData(id=sr_id, client_id=owner_id, company_id=provider_id, status="Accepted"))


@given("the profiles service rejects balance updates")
def _(profiles):
    profiles.configure(should_succeed=False)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the settlement outcome is "{status}"'))
def _(context, status):
    assert context["outcome"].status.value == status


@then(parsers.cfparse('the service payment is "{status}"'))
def _(context, status):
    payment = current_domain.repository_for(ServicePayment).get(context["checkout"].payment_id)
    assert payment.status == status


@then(parsers.cfparse('provider {provider_id:d} has a balance of "{amount}"'))
def _(profiles, provider_id, amount):
    assert profiles.balances[provider_id] == Decimal(amount)
