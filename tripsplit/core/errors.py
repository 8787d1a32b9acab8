"""Ledger error taxonomy and the FastAPI handlers that render it.

Engine code raises the exceptions below; routers never catch them. The
handlers registered in `create_app` turn each family into a JSON body with a
stable ``error`` code so clients can render an actionable message.
"""

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette import status
import logging

logger = logging.getLogger("tripsplit.errors")


class LedgerError(Exception):
    code = "ledger_error"

    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def as_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, "detail": self.detail}


# Validation --------------------------------------------------------
class ValidationError(LedgerError):
    code = "validation_error"


class EmptyParticipants(ValidationError):
    code = "empty_participants"

    def __init__(self):
        super().__init__("At least one participant is required")


class ShareMismatch(ValidationError):
    code = "share_mismatch"

    def __init__(self, total_amount: float, shares_total: float):
        difference = shares_total - total_amount
        super().__init__(
            f"Participant shares sum to {shares_total:.2f} but the expense total is "
            f"{total_amount:.2f} (off by {difference:+.2f})",
            {
                "total_amount": total_amount,
                "shares_total": shares_total,
                "difference": difference,
            },
        )


class InvalidAmount(ValidationError):
    code = "invalid_amount"

    def __init__(self, field: str, value: Any, reason: str = "must be greater than 0"):
        super().__init__(f"{field} {reason} (got {value!r})", {"field": field, "value": value})


class InvalidCategory(ValidationError):
    code = "invalid_category"

    def __init__(self, value: Any, allowed):
        super().__init__(
            f"Unsupported category {value!r}",
            {"field": "category", "value": value, "allowed": sorted(allowed)},
        )


class InvalidSplitPolicy(ValidationError):
    code = "invalid_split_policy"

    def __init__(self, value: Any, allowed):
        super().__init__(
            f"Unsupported split policy {value!r}",
            {"field": "split_policy", "value": value, "allowed": sorted(allowed)},
        )


class InvalidStatusTransition(ValidationError):
    code = "invalid_status_transition"

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot move expense from {current!r} to {requested!r}",
            {"field": "status", "current": current, "requested": requested},
        )


class DuplicateParticipant(ValidationError):
    code = "duplicate_participant"

    def __init__(self, member_id: str):
        super().__init__(
            f"Member {member_id!r} appears more than once in participants",
            {"field": "participants", "member_id": member_id},
        )


# Lookup / access ---------------------------------------------------
class NotFoundError(LedgerError):
    code = "not_found"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found", {"resource": resource, "id": identifier}
        )


class AuthorizationError(LedgerError):
    code = "forbidden"


class AuthenticationError(LedgerError):
    code = "unauthenticated"


# Handlers ----------------------------------------------------------
def _ledger_response(status_code: int, exc: LedgerError) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=exc.as_dict())


def ledger_validation_handler(request: Request, exc: ValidationError):  # type: ignore
    logger.info("rejected %s %s: %s", request.method, request.url.path, exc.code)
    return _ledger_response(status.HTTP_422_UNPROCESSABLE_ENTITY, exc)


def ledger_not_found_handler(request: Request, exc: NotFoundError):  # type: ignore
    return _ledger_response(status.HTTP_404_NOT_FOUND, exc)


def authorization_handler(request: Request, exc: AuthorizationError):  # type: ignore
    logger.info("forbidden %s %s: %s", request.method, request.url.path, exc.message)
    return _ledger_response(status.HTTP_403_FORBIDDEN, exc)


def authentication_handler(request: Request, exc: AuthenticationError):  # type: ignore
    return _ledger_response(status.HTTP_401_UNAUTHORIZED, exc)


def not_found_handler(request: Request, exc):  # type: ignore
    if getattr(exc, "status_code", 404) != 404:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "http_error", "detail": exc.detail},
        )
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "error": "not_found",
            "detail": f"No route for {request.method} {request.url.path}",
        },
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "detail": exc.errors(),
        },
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "detail": "An unexpected error occurred.",
        },
    )
