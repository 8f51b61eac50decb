"""Tests for the sibling-service REST facades against a mocked HTTP session."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests
from protean.exceptions import ConfigurationError
from settlement.config import Settings, set_settings
from settlement.errors import DependencyUnavailableError
from settlement.external import get_profiles, get_work_orders, reset_facades
from settlement.external.fakes import FakeProfiles
from settlement.external.http_adapters import (
    HttpNotifications,
    HttpProfiles,
    HttpServiceRequests,
    HttpWorkOrders,
)


def _response(status_code=200, body=None):
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = body if body is not None else {}
    return response


@pytest.fixture()
def session():
    return MagicMock(spec=requests.Session)


class TestHttpProfiles:
    def test_owner_lookup(self, session):
        session.request.return_value = _response(200, {"Id": 100, "userId": 10})
        profiles = HttpProfiles("http://profiles:8080/", session=session)

        assert profiles.fetch_owner_id_by_user_id(10) == 100
        assert session.request.call_args.args == ("GET", "http://profiles:8080/api/v1/profiles/owners/by-user/10")

    def test_missing_owner_is_zero(self, session):
        session.request.return_value = _response(404)
        assert HttpProfiles("http://profiles", session=session).fetch_owner_id_by_user_id(10) == 0

    def test_balance_update_payload(self, session):
        session.request.return_value = _response(204)
        assert HttpProfiles("http://profiles", session=session).update_provider_balance(200, Decimal("85.00"))
        assert session.request.call_args.kwargs["json"] == {"amount": 85.0, "description": "Service revenue"}

    def test_rejected_balance_update(self, session):
        session.request.return_value = _response(400)
        assert HttpProfiles("http://profiles", session=session).update_provider_balance(200, Decimal("1")) is False

    def test_server_error_raises(self, session):
        session.request.return_value = _response(503)
        with pytest.raises(DependencyUnavailableError):
            HttpProfiles("http://profiles", session=session).update_provider_balance(200, Decimal("1"))


class TestHttpWorkOrdersAndRequests:
    def test_work_order_mapping(self, session):
        session.request.return_value = _response(
            200,
            {
                "id": 500,
                "workOrderNumber": "WO-0500",
                "title": "Freezer compressor repair",
                "status": "Resolved",
                "serviceRequestId": 700,
                "cost": 100.0,
            },
        )
        work_order = HttpWorkOrders("http://work-orders", session=session).get_work_order(500)
        assert work_order.service_request_id == 700
        assert work_order.cost == Decimal("100.0")

    def test_missing_work_order(self, session):
        session.request.return_value = _response(404)
        assert HttpWorkOrders("http://work-orders", session=session).get_work_order(1) is None

    def test_service_request_mapping(self, session):
        session.request.return_value = _response(200, {"id": 700, "clientId": 100, "companyId": 200, "status": "Done"})
        service_request = HttpServiceRequests("http://sr", session=session).get_service_request(700)
        assert (service_request.client_id, service_request.company_id) == (100, 200)

    def test_notification_payload(self, session):
        session.request.return_value = _response(201)
        assert HttpNotifications("http://notify", session=session).create_in_app_notification(20, "Hi", "There")
        assert session.request.call_args.kwargs["json"] == {"userId": 20, "title": "Hi", "message": "There"}


class TestFacadeRegistry:
    def test_fake_without_url(self):
        reset_facades()
        set_settings(Settings())
        assert isinstance(get_profiles(), FakeProfiles)

    def test_http_with_url(self):
        reset_facades()
        set_settings(Settings(work_orders_service_url="http://work-orders:8080", http_timeout=5.0))
        facade = get_work_orders()
        assert isinstance(facade, HttpWorkOrders)
        assert facade.client.timeout == 5.0

    def test_production_requires_url(self):
        reset_facades()
        set_settings(Settings(environment="production"))
        with pytest.raises(ConfigurationError, match="PROFILES_SERVICE_URL"):
            get_profiles()

    def test_production_with_url(self):
        reset_facades()
        set_settings(Settings(environment="production", profiles_service_url="http://profiles:8080"))
        assert isinstance(get_profiles(), HttpProfiles)
