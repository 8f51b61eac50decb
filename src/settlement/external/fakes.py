"""In-memory sibling services for development and testing.

Each fake records the calls it receives and can be switched into a
business-failure mode (``should_succeed=False``) or a transport outage
(``outage=True``).
"""

from decimal import Decimal

from settlement.errors import DependencyUnavailableError
from settlement.external.port import (
    NotificationsPort,
    ProfilesPort,
    ServiceRequestData,
    ServiceRequestsPort,
    WorkOrderData,
    WorkOrdersPort,
)


class _FakeService:
    service = "fake"

    def __init__(self) -> None:
        self.should_succeed = True
        self.outage = False
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool = True, outage: bool = False) -> None:
        self.should_succeed = should_succeed
        self.outage = outage

    def _record(self, method: str, **kwargs) -> None:
        self.calls.append({"method": method, **kwargs})
        if self.outage:
            raise DependencyUnavailableError(f"{self.service} unavailable", service=self.service)

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]


class FakeProfiles(_FakeService, ProfilesPort):
    service = "profiles"

    def __init__(self) -> None:
        super().__init__()
        self.owners: dict[int, int] = {}  # user_id -> owner_id
        self.providers: dict[int, int] = {}  # user_id -> provider_id
        self.companies: dict[int, str] = {}  # provider_id -> company name
        self.balances: dict[int, Decimal] = {}
        self.plans: dict[tuple[str, int], tuple[int, int]] = {}

    def add_owner(self, user_id: int, owner_id: int) -> None:
        self.owners[user_id] = owner_id

    def add_provider(self, user_id: int, provider_id: int, company_name: str = "Polar Services") -> None:
        self.providers[user_id] = provider_id
        self.companies[provider_id] = company_name
        self.balances.setdefault(provider_id, Decimal("0.00"))

    def fetch_owner_id_by_user_id(self, user_id: int) -> int:
        self._record("fetch_owner_id_by_user_id", user_id=user_id)
        return self.owners.get(user_id, 0)

    def fetch_provider_id_by_user_id(self, user_id: int) -> int:
        self._record("fetch_provider_id_by_user_id", user_id=user_id)
        return self.providers.get(user_id, 0)

    def update_owner_plan(self, owner_id: int, plan_id: int, max_units: int) -> bool:
        self._record("update_owner_plan", owner_id=owner_id, plan_id=plan_id, max_units=max_units)
        if not self.should_succeed:
            return False
        self.plans[("owner", owner_id)] = (plan_id, max_units)
        return True

    def update_provider_plan(self, provider_id: int, plan_id: int, max_clients: int) -> bool:
        self._record("update_provider_plan", provider_id=provider_id, plan_id=plan_id, max_clients=max_clients)
        if not self.should_succeed:
            return False
        self.plans[("provider", provider_id)] = (plan_id, max_clients)
        return True

    def update_provider_balance(self, provider_id: int, amount: Decimal) -> bool:
        self._record("update_provider_balance", provider_id=provider_id, amount=amount)
        if not self.should_succeed or provider_id not in self.companies:
            return False
        self.balances[provider_id] = self.balances.get(provider_id, Decimal("0.00")) + amount
        return True

    def fetch_provider_company_name(self, provider_id: int) -> str | None:
        self._record("fetch_provider_company_name", provider_id=provider_id)
        return self.companies.get(provider_id)

    def get_provider_user_id_by_provider_id(self, provider_id: int) -> int | None:
        self._record("get_provider_user_id_by_provider_id", provider_id=provider_id)
        for user_id, known_provider_id in self.providers.items():
            if known_provider_id == provider_id:
                return user_id
        return None


class FakeWorkOrders(_FakeService, WorkOrdersPort):
    service = "work-orders"

    def __init__(self) -> None:
        super().__init__()
        self.work_orders: dict[int, WorkOrderData] = {}

    def add(self, work_order: WorkOrderData) -> None:
        self.work_orders[work_order.id] = work_order

    def get_work_order(self, work_order_id: int) -> WorkOrderData | None:
        self._record("get_work_order", work_order_id=work_order_id)
        return self.work_orders.get(work_order_id)


class FakeServiceRequests(_FakeService, ServiceRequestsPort):
    service = "service-requests"

    def __init__(self) -> None:
        super().__init__()
        self.service_requests: dict[int, ServiceRequestData] = {}

    def add(self, service_request: ServiceRequestData) -> None:
        self.service_requests[service_request.id] = service_request

    def get_service_request(self, service_request_id: int) -> ServiceRequestData | None:
        self._record("get_service_request", service_request_id=service_request_id)
        return self.service_requests.get(service_request_id)


class FakeNotifications(_FakeService, NotificationsPort):
    service = "notifications"

    def __init__(self) -> None:
        super().__init__()
        self.sent: list[dict] = []

    def create_in_app_notification(self, user_id: int, title: str, message: str) -> bool:
        self._record("create_in_app_notification", user_id=user_id, title=title)
        if not self.should_succeed:
            return False
        self.sent.append({"user_id": user_id, "title": title, "message": message})
        return True
