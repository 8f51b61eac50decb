from settlement.api.errors import register_exception_handlers
from settlement.api.routes import payment_router, plan_router, service_payment_router

__all__ = ["payment_router", "plan_router", "register_exception_handlers", "service_payment_router"]
