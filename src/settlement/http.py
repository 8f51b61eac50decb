"""Thin ``requests`` wrapper shared by REST gateways and service facades.

Every call carries the configured timeout. Connection errors, timeouts and
5xx responses raise ``DependencyUnavailableError``; everything else is
returned to the caller to interpret.
"""

import requests
import structlog

from settlement.errors import DependencyUnavailableError

logger = structlog.get_logger(__name__)


class JsonHttpClient:
    def __init__(
        self,
        base_url: str,
        service: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
        headers: dict[str, str] | None = None,
        auth: tuple[str, str] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.service = service
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {"Accept": "application/json", **(headers or {})}
        self.auth = auth

    def request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(
                method,
                url,
                headers=self.headers,
                auth=self.auth,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            logger.error("http.transport_error", service=self.service, method=method, url=url, error=str(exc))
            raise DependencyUnavailableError(f"{self.service} unavailable: {exc}", service=self.service) from exc

        if response.status_code >= 500:
            logger.error("http.server_error", service=self.service, method=method, url=url, status=response.status_code)
            raise DependencyUnavailableError(
                f"{self.service} returned {response.status_code}",
                service=self.service,
            )
        return response

    def get(self, path: str, **kwargs) -> requests.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, json: dict | None = None, **kwargs) -> requests.Response:
        return self.request("POST", path, json=json, **kwargs)

    def put(self, path: str, json: dict | None = None, **kwargs) -> requests.Response:
        return self.request("PUT", path, json=json, **kwargs)


def json_body(response: requests.Response) -> dict:
    """Decode a JSON object body, treating anything else as empty."""
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
