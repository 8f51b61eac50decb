"""Error taxonomy for the settlement engine.

Aggregate invariants keep raising ``protean.exceptions.ValidationError``;
the classes here classify failures that cross the engine's boundary so the
API layer can tell "money never moved" from "money moved, bookkeeping
lagging".
"""


class SettlementError(Exception):
    """Base class for settlement failures surfaced to callers."""

    code = "settlement_error"
    retryable = False

    def __init__(self, message: str, **context) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, **self.context}


class RequestValidationError(SettlementError):
    """Bad or missing input, or a resource not in the required state."""

    code = "validation"


class ForbiddenError(RequestValidationError):
    """The requester is not allowed to act on the resource."""

    code = "forbidden"


class NotFoundError(SettlementError):
    code = "not_found"


class GatewayDeclineError(SettlementError):
    """The gateway reports the checkout as not paid."""

    code = "payment_not_completed"


class DependencyUnavailableError(SettlementError):
    """Transport failure talking to the gateway or a sibling service."""

    code = "dependency_unavailable"
    retryable = True
