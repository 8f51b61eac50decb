"""Sibling-service facade registry.

Each facade is a singleton built on first use: the HTTP adapter when the
service URL is configured, otherwise the in-memory fake. Production has no
fallback; a missing URL is a configuration error.
"""

from protean.exceptions import ConfigurationError

from settlement.config import get_settings
from settlement.external.port import (
    NotificationsPort,
    ProfilesPort,
    ServiceRequestsPort,
    WorkOrdersPort,
)

# facade name -> (settings attribute, HTTP adapter, fake)
_FACADES = {
    "profiles": ("profiles_service_url", "HttpProfiles", "FakeProfiles"),
    "work_orders": ("work_orders_service_url", "HttpWorkOrders", "FakeWorkOrders"),
    "service_requests": ("service_requests_service_url", "HttpServiceRequests", "FakeServiceRequests"),
    "notifications": ("notifications_service_url", "HttpNotifications", "FakeNotifications"),
}

_facades: dict[str, object] = {}


def _build(name: str):
    if name not in _FACADES:
        raise ValueError(f"Unknown facade: {name}")
    url_setting, adapter_name, fake_name = _FACADES[name]
    settings = get_settings()
    url = getattr(settings, url_setting)

    if url:
        from settlement.external import http_adapters

        return getattr(http_adapters, adapter_name)(url, timeout=settings.http_timeout)
    if settings.is_production:
        raise ConfigurationError(f"{url_setting.upper()} must be set in production")

    from settlement.external import fakes

    return getattr(fakes, fake_name)()


def _get(name: str):
    if name not in _facades:
        _facades[name] = _build(name)
    return _facades[name]


def get_profiles() -> ProfilesPort:
    return _get("profiles")


def get_work_orders() -> WorkOrdersPort:
    return _get("work_orders")


def get_service_requests() -> ServiceRequestsPort:
    return _get("service_requests")


def get_notifications() -> NotificationsPort:
    return _get("notifications")


def set_facade(name: str, facade) -> None:
    """Override one facade ("profiles", "work_orders", "service_requests", "notifications")."""
    _facades[name] = facade


def reset_facades() -> None:
    """Reset all facade singletons (useful for testing)."""
    _facades.clear()
