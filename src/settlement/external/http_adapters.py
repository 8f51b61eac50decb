"""``requests`` adapters for the sibling services' REST APIs.

The services speak camelCase JSON; keys are matched case-insensitively.
A 404 or any other non-2xx business answer is "absent" / ``False``.
"""

from decimal import Decimal

import requests
import structlog

from settlement.commission import parse_amount, quantize
from settlement.external.port import (
    NotificationsPort,
    ProfilesPort,
    ServiceRequestData,
    ServiceRequestsPort,
    WorkOrderData,
    WorkOrdersPort,
)
from settlement.http import JsonHttpClient, json_body

logger = structlog.get_logger(__name__)


def _field(payload: dict, name: str, default=None):
    wanted = name.lower()
    for key, value in payload.items():
        if key.lower() == wanted:
            return value
    return default


def _int_or_none(value) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


class HttpProfiles(ProfilesPort):
    def __init__(self, base_url: str, timeout: float = 30.0, session: requests.Session | None = None) -> None:
        self.client = JsonHttpClient(base_url, service="profiles", timeout=timeout, session=session)

    def _lookup(self, path: str) -> dict | None:
        response = self.client.get(path)
        if not response.ok:
            logger.info("profiles.lookup_missed", path=path, status=response.status_code)
            return None
        return json_body(response)

    def fetch_owner_id_by_user_id(self, user_id: int) -> int:
        body = self._lookup(f"/api/v1/profiles/owners/by-user/{user_id}")
        return int(_field(body, "id", 0)) if body else 0

    def fetch_provider_id_by_user_id(self, user_id: int) -> int:
        body = self._lookup(f"/api/v1/profiles/providers/by-user/{user_id}")
        return int(_field(body, "id", 0)) if body else 0

    def update_owner_plan(self, owner_id: int, plan_id: int, max_units: int) -> bool:
        response = self.client.put(
            f"/api/v1/profiles/owners/{owner_id}/plan",
            json={"planId": plan_id, "maxUnits": max_units},
        )
        return response.ok

    def update_provider_plan(self, provider_id: int, plan_id: int, max_clients: int) -> bool:
        response = self.client.put(
            f"/api/v1/profiles/providers/{provider_id}/plan",
            json={"planId": plan_id, "maxClients": max_clients},
        )
        return response.ok

    def update_provider_balance(self, provider_id: int, amount: Decimal) -> bool:
        response = self.client.post(
            f"/api/v1/profiles/providers/{provider_id}/balance",
            json={"amount": float(quantize(amount)), "description": "Service revenue"},
        )
        if not response.ok:
            logger.warning("profiles.balance_update_rejected", provider_id=provider_id, status=response.status_code)
        return response.ok

    def fetch_provider_company_name(self, provider_id: int) -> str | None:
        body = self._lookup(f"/api/v1/profiles/providers/{provider_id}")
        return _field(body, "companyName") if body else None

    def get_provider_user_id_by_provider_id(self, provider_id: int) -> int | None:
        body = self._lookup(f"/api/v1/profiles/providers/{provider_id}")
        return _int_or_none(_field(body, "userId")) if body else None


class HttpWorkOrders(WorkOrdersPort):
    def __init__(self, base_url: str, timeout: float = 30.0, session: requests.Session | None = None) -> None:
        self.client = JsonHttpClient(base_url, service="work-orders", timeout=timeout, session=session)

    def get_work_order(self, work_order_id: int) -> WorkOrderData | None:
        response = self.client.get(f"/api/v1/work-orders/{work_order_id}")
        if not response.ok:
            return None
        body = json_body(response)
        cost = _field(body, "cost")
        return WorkOrderData(
            id=int(_field(body, "id", work_order_id)),
            work_order_number=str(_field(body, "workOrderNumber", "")),
            title=str(_field(body, "title", "")),
            status=str(_field(body, "status", "")),
            service_request_id=_int_or_none(_field(body, "serviceRequestId")),
            cost=parse_amount(cost) if cost is not None else None,
        )


class HttpServiceRequests(ServiceRequestsPort):
    def __init__(self, base_url: str, timeout: float = 30.0, session: requests.Session | None = None) -> None:
        self.client = JsonHttpClient(base_url, service="service-requests", timeout=timeout, session=session)

    def get_service_request(self, service_request_id: int) -> ServiceRequestData | None:
        response = self.client.get(f"/api/v1/service-requests/{service_request_id}")
        if not response.ok:
            return None
        body = json_body(response)
        return ServiceRequestData(
            id=int(_field(body, "id", service_request_id)),
            client_id=int(_field(body, "clientId", 0)),
            company_id=int(_field(body, "companyId", 0)),
            status=str(_field(body, "status", "")),
        )


class HttpNotifications(NotificationsPort):
    def __init__(self, base_url: str, timeout: float = 30.0, session: requests.Session | None = None) -> None:
        self.client = JsonHttpClient(base_url, service="notifications", timeout=timeout, session=session)

    def create_in_app_notification(self, user_id: int, title: str, message: str) -> bool:
        response = self.client.post(
            "/api/v1/notifications/in-app",
            json={"userId": user_id, "title": title, "message": message},
        )
        return response.ok
