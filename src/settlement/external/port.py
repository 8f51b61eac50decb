"""Ports for the sibling services the settlement engine talks to.

Business-level failures come back as ``False`` / ``None`` / ``0``; only
transport failures raise (``DependencyUnavailableError``). Owner, provider,
work-order and service-request ids are opaque integers owned by those
services.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class WorkOrderData:
    id: int
    work_order_number: str
    title: str
    status: str
    service_request_id: int | None = None
    cost: Decimal | None = None


@dataclass(frozen=True)
class ServiceRequestData:
    id: int
    client_id: int
    company_id: int
    status: str


class ProfilesPort(ABC):
    """Owner and Provider profiles: identities, plans and balances."""

    @abstractmethod
    def fetch_owner_id_by_user_id(self, user_id: int) -> int:
        """Owner id for the user, 0 when the user is not an Owner."""
        ...

    @abstractmethod
    def fetch_provider_id_by_user_id(self, user_id: int) -> int:
        """Provider id for the user, 0 when the user is not a Provider."""
        ...

    @abstractmethod
    def update_owner_plan(self, owner_id: int, plan_id: int, max_units: int) -> bool: ...

    @abstractmethod
    def update_provider_plan(self, provider_id: int, plan_id: int, max_clients: int) -> bool: ...

    @abstractmethod
    def update_provider_balance(self, provider_id: int, amount: Decimal) -> bool: ...

    @abstractmethod
    def fetch_provider_company_name(self, provider_id: int) -> str | None: ...

    @abstractmethod
    def get_provider_user_id_by_provider_id(self, provider_id: int) -> int | None: ...


class WorkOrdersPort(ABC):
    @abstractmethod
    def get_work_order(self, work_order_id: int) -> WorkOrderData | None: ...


class ServiceRequestsPort(ABC):
    @abstractmethod
    def get_service_request(self, service_request_id: int) -> ServiceRequestData | None: ...


class NotificationsPort(ABC):
    @abstractmethod
    def create_in_app_notification(self, user_id: int, title: str, message: str) -> bool:
        """Best-effort in-app notification."""
        ...
