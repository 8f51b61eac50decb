"""Translate settlement and Protean errors into HTTP responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from settlement.errors import SettlementError

logger = structlog.get_logger(__name__)

STATUS_CODES = {
    "validation": 400,
    "forbidden": 403,
    "not_found": 404,
    "payment_not_completed": 402,
    "dependency_unavailable": 503,
}


async def settlement_error_handler(request: Request, exc: SettlementError) -> JSONResponse:
    status_code = STATUS_CODES.get(exc.code, 500)
    if exc.retryable:
        logger.warning("api.dependency_unavailable", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.message, **exc.to_dict()})


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": exc.messages, "code": "validation"})


async def not_found_error_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc), "code": "not_found"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SettlementError, settlement_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_error_handler)
