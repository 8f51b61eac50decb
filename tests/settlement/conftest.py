"""Shared fixtures for the settlement test suite.

Every test runs against in-memory doubles: the fake gateway, fake sibling
services and the domain's outbox, where published events land on commit.
"""

from decimal import Decimal

import pytest
from protean import current_domain
from settlement.external import set_facade
from settlement.external.fakes import (
    FakeNotifications,
    FakeProfiles,
    FakeServiceRequests,
    FakeWorkOrders,
)
from settlement.external.port import ServiceRequestData, WorkOrderData
from settlement.gateway import set_gateway
from settlement.gateway.fake_adapter import FakeGateway
from settlement.money import Money
from settlement.plan.plan import SubscriptionPlan

OWNER_USER_ID = 10
OWNER_ID = 100
PROVIDER_USER_ID = 20
PROVIDER_ID = 200
WORK_ORDER_ID = 500
SERVICE_REQUEST_ID = 700

PLAN_CATALOG = [
    {"id": 1, "plan_name": "Basic (Polar Bear)", "price": "18.99", "max_equipment": 6},
    {"id": 2, "plan_name": "Standard (Snow Bear)", "price": "35.13", "max_equipment": 12},
    {"id": 3, "plan_name": "Premium (Glacial Bear)", "price": "67.56", "max_equipment": 24},
    {"id": 4, "plan_name": "Small Company", "price": "40.51", "max_clients": 10},
    {"id": 5, "plan_name": "Medium Company", "price": "81.08", "max_clients": 30},
    {"id": 6, "plan_name": "Enterprise Premium", "price": "162.16"},
]


@pytest.fixture(autouse=True)
def gateway():
    fake = FakeGateway()
    set_gateway(fake)
    return fake


@pytest.fixture(autouse=True)
def profiles():
    fake = FakeProfiles()
    set_facade("profiles", fake)
    return fake


@pytest.fixture(autouse=True)
def work_orders():
    fake = FakeWorkOrders()
    set_facade("work_orders", fake)
    return fake


@pytest.fixture(autouse=True)
def service_requests():
    fake = FakeServiceRequests()
    set_facade("service_requests", fake)
    return fake


@pytest.fixture(autouse=True)
def notifications():
    fake = FakeNotifications()
    set_facade("notifications", fake)
    return fake


@pytest.fixture()
def outbox():
    return current_domain._get_outbox_repo("default")


@pytest.fixture()
def plans():
    repo = current_domain.repository_for(SubscriptionPlan)
    seeded = {}
    for entry in PLAN_CATALOG:
        plan = SubscriptionPlan(
            id=entry["id"],
            plan_name=entry["plan_name"],
            price=Money.of(entry["price"]),
            max_equipment=entry.get("max_equipment"),
            max_clients=entry.get("max_clients"),
        )
        repo.add(plan)
        seeded[plan.id] = plan
    return seeded


@pytest.fixture()
def marketplace(profiles, work_orders, service_requests):
    """An Owner, a Provider and a Resolved work order costing 100.00."""
    profiles.add_owner(user_id=OWNER_USER_ID, owner_id=OWNER_ID)
    profiles.add_provider(user_id=PROVIDER_USER_ID, provider_id=PROVIDER_ID, company_name="Polar Services")
    work_orders.add(
        WorkOrderData(
            id=WORK_ORDER_ID,
            work_order_number="WO-0500",
            title="Freezer compressor repair",
            status="Resolved",
            service_request_id=SERVICE_REQUEST_ID,
            cost=Decimal("100.00"),
        )
    )
    service_requests.add(
        ServiceRequestData(id=SERVICE_REQUEST_ID, client_id=OWNER_ID, company_id=PROVIDER_ID, status="Accepted")
    )
    return {
        "owner_user_id": OWNER_USER_ID,
        "owner_id": OWNER_ID,
        "provider_user_id": PROVIDER_USER_ID,
        "provider_id": PROVIDER_ID,
        "work_order_id": WORK_ORDER_ID,
        "service_request_id": SERVICE_REQUEST_ID,
    }
