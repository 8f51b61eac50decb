"""Settlement FastAPI application.

Usage:
    uvicorn settlement.app:create_app --factory --host 0.0.0.0 --port 8000

Settlement events are delivered from the outbox by the Engine worker:
    python -m settlement.server

PROTEAN_ENV selects the domain.toml overlay and disables the fake-gateway
controls in production.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from settlement.domain import settlement
from settlement.utils.logging import bind_request_context, clear_request_context, configure_logging


def create_app() -> FastAPI:
    configure_logging()
    settlement.init()

    from settlement.api import (
        payment_router,
        plan_router,
        register_exception_handlers,
        service_payment_router,
    )

    app = FastAPI(
        title="Settlement API",
        description="Subscription and service payments with commission settlement",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the settlement domain context for each request."""
        clear_request_context()
        bind_request_context(path=request.url.path, method=request.method)
        with settlement.domain_context():
            return await call_next(request)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    app.include_router(plan_router)
    app.include_router(payment_router)
    app.include_router(service_payment_router)
    register_exception_handlers(app)
    return app
