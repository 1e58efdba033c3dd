"""
Error taxonomy shared by the identity resolver, the guard and the services.

Each error kind carries a fixed HTTP status and a fixed message. Denial
messages never mention roles, ids or another tenant's data, so a caller
cannot tell "missing" from "belongs to someone else".
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class EduConnectError(Exception):
    """Base error. Subclasses set `status_code` and `default_message`."""

    status_code: int = 500
    default_message: str = "An error occurred"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_body(self) -> dict[str, str]:
        return {"status": "error", "message": self.message}


class InvalidToken(EduConnectError):
    status_code = 401
    default_message = "Invalid token"


class ExpiredToken(EduConnectError):
    status_code = 401
    default_message = "Token expired"


class InvalidCredentials(EduConnectError):
    status_code = 401
    default_message = "Invalid email or password"


class RoleNotPermitted(EduConnectError):
    status_code = 403
    default_message = "Forbidden: insufficient permissions"


class NotOwnerOrNotFound(EduConnectError):
    status_code = 404
    default_message = "Resource not found"


class SelfActionForbidden(EduConnectError):
    status_code = 400
    default_message = "This action cannot be performed on your own account"


class StoreUnavailable(EduConnectError):
    status_code = 503
    default_message = "Service temporarily unavailable"


class ValidationFailed(EduConnectError):
    status_code = 400
    default_message = "Invalid request"


class Conflict(EduConnectError):
    status_code = 409
    default_message = "Conflict"


class SubscriptionConflict(Conflict):
    default_message = "School already has an active subscription"


_FIXED_MESSAGE_ERRORS = (
    InvalidToken,
    ExpiredToken,
    InvalidCredentials,
    RoleNotPermitted,
    NotOwnerOrNotFound,
    SelfActionForbidden,
    StoreUnavailable,
)


def _fixed_message(exc: EduConnectError) -> EduConnectError:
    # Authorization failures always use the class message, whatever the raiser passed.
    if isinstance(exc, _FIXED_MESSAGE_ERRORS):
        return type(exc)()
    return exc


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(EduConnectError)
    async def _handle_educonnect_error(request: Request, exc: EduConnectError) -> JSONResponse:
        rendered = _fixed_message(exc)
        return JSONResponse(status_code=rendered.status_code, content=rendered.to_body())

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
        else:
            message = None
        rendered = ValidationFailed(message)
        return JSONResponse(status_code=rendered.status_code, content=rendered.to_body())
