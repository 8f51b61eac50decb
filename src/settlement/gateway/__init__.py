"""Payment gateway factory.

``get_gateway()`` builds the adapter named by ``SETTLEMENT_GATEWAY``:
- ``fake`` (default) for development and testing; refused in production
- ``stripe``, ``culqi`` or ``izipay`` in production
``set_gateway()`` / ``reset_gateway()`` swap it out in tests.
"""

from protean.exceptions import ConfigurationError

from settlement.config import Settings, get_settings
from settlement.gateway.fake_adapter import FakeGateway
from settlement.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def _require(settings: Settings, *names: str) -> None:
    missing = [name.upper() for name in names if not getattr(settings, name)]
    if missing:
        raise ConfigurationError(f"{settings.gateway} gateway requires {', '.join(missing)}")


def build_gateway(settings: Settings) -> PaymentGateway:
    """Instantiate the adapter selected by configuration."""
    if settings.gateway == "fake":
        if settings.is_production:
            raise ConfigurationError("SETTLEMENT_GATEWAY must name a real payment gateway in production")
        return FakeGateway()
    if settings.gateway == "stripe":
        _require(settings, "stripe_secret_key")
        from settlement.gateway.stripe_adapter import StripeGateway

        return StripeGateway(
            api_key=settings.stripe_secret_key,
            webhook_secret=settings.stripe_webhook_secret,
            timeout=settings.http_timeout,
        )
    if settings.gateway == "culqi":
        _require(settings, "culqi_secret_key")
        from settlement.gateway.culqi_adapter import CulqiGateway

        return CulqiGateway(
            secret_key=settings.culqi_secret_key,
            base_url=settings.culqi_api_base_url,
            timeout=settings.http_timeout,
        )
    if settings.gateway == "izipay":
        _require(settings, "izipay_shop_id", "izipay_api_key")
        from settlement.gateway.izipay_adapter import IzipayGateway

        return IzipayGateway(
            shop_id=settings.izipay_shop_id,
            api_key=settings.izipay_api_key,
            base_url=settings.izipay_api_base_url,
            timeout=settings.http_timeout,
        )
    raise ValueError(f"Unknown payment gateway: {settings.gateway}")


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building it on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = build_gateway(get_settings())
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to the configured gateway."""
    global _current_gateway
    _current_gateway = None
