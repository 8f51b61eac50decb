import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from settlement.api import payment_router, plan_router, register_exception_handlers, service_payment_router
from settlement.domain import settlement


@pytest.fixture()
def client():
    app = FastAPI()

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        with settlement.domain_context():
            return await call_next(request)

    app.include_router(plan_router)
    app.include_router(payment_router)
    app.include_router(service_payment_router)
    register_exception_handlers(app)
    return TestClient(app)
