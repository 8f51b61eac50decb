"""Environment-driven settings for the settlement engine.

Values are read once and cached; tests call ``reset_settings()`` after
changing the environment.
"""

import os
from dataclasses import dataclass
from decimal import Decimal

DEFAULT_PLATFORM_FEE_PERCENTAGE = Decimal("15")
DEFAULT_HTTP_TIMEOUT = 30.0


@dataclass(frozen=True)
class Settings:
    gateway: str = "fake"
    currency: str = "USD"
    platform_fee_percentage: Decimal = DEFAULT_PLATFORM_FEE_PERCENTAGE
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    environment: str = "development"

    profiles_service_url: str | None = None
    work_orders_service_url: str | None = None
    service_requests_service_url: str | None = None
    notifications_service_url: str | None = None

    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    culqi_secret_key: str | None = None
    culqi_api_base_url: str = "https://api.culqi.com/v2"
    izipay_shop_id: str | None = None
    izipay_api_key: str | None = None
    izipay_api_base_url: str = "https://api.micuentaweb.pe/api-payment/V4"

    success_url: str = "http://localhost:3000/payments/success"
    cancel_url: str = "http://localhost:3000/payments/cancel"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            gateway=env.get("SETTLEMENT_GATEWAY", defaults.gateway).lower(),
            currency=env.get("SETTLEMENT_CURRENCY", defaults.currency).upper(),
            platform_fee_percentage=Decimal(
                env.get("SETTLEMENT_PLATFORM_FEE_PERCENTAGE", str(defaults.platform_fee_percentage))
            ),
            http_timeout=float(env.get("SETTLEMENT_HTTP_TIMEOUT", defaults.http_timeout)),
            environment=env.get("PROTEAN_ENV", defaults.environment),
            profiles_service_url=env.get("PROFILES_SERVICE_URL"),
            work_orders_service_url=env.get("WORK_ORDERS_SERVICE_URL"),
            service_requests_service_url=env.get("SERVICE_REQUESTS_SERVICE_URL"),
            notifications_service_url=env.get("NOTIFICATIONS_SERVICE_URL"),
            stripe_secret_key=env.get("STRIPE_SECRET_KEY"),
            stripe_webhook_secret=env.get("STRIPE_WEBHOOK_SECRET"),
            culqi_secret_key=env.get("CULQI_SECRET_KEY"),
            culqi_api_base_url=env.get("CULQI_API_BASE_URL", defaults.culqi_api_base_url),
            izipay_shop_id=env.get("IZIPAY_SHOP_ID"),
            izipay_api_key=env.get("IZIPAY_API_KEY"),
            izipay_api_base_url=env.get("IZIPAY_API_BASE_URL", defaults.izipay_api_base_url),
            success_url=env.get("SETTLEMENT_SUCCESS_URL", defaults.success_url),
            cancel_url=env.get("SETTLEMENT_CANCEL_URL", defaults.cancel_url),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def set_settings(settings: Settings) -> None:
    global _settings
    _settings = settings


def reset_settings() -> None:
    global _settings
    _settings = None
