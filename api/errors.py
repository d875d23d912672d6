"""Global exception handlers for FastAPI.

Domain exceptions map to (status, error code) through ERROR_TABLE. Routes
that need a different status for the same exception (UserNotFoundError on
the password routes) catch it themselves.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from auth.exceptions import (
    AuthError,
    CsrfInvalidError,
    EmailAlreadyInUseError,
    ExpiredTokenError,
    InvalidCredentialsError,
    InvalidResetTokenError,
    InvalidTokenError,
    MalformedTokenError,
    NotificationError,
    PermissionDeniedError,
    PolicyRejectedError,
    RateLimitedError,
    UserNotFoundError,
    WrongOldPasswordError,
)

logger = logging.getLogger(__name__)

ERROR_TABLE: dict[type[AuthError], tuple[int, str]] = {
    InvalidCredentialsError: (401, ErrorCodes.INVALID_CREDENTIALS),
    InvalidTokenError: (401, ErrorCodes.INVALID_TOKEN),
    CsrfInvalidError: (403, ErrorCodes.CSRF_INVALID),
    PermissionDeniedError: (403, ErrorCodes.PERMISSION_DENIED),
    UserNotFoundError: (404, ErrorCodes.NOT_FOUND),
    EmailAlreadyInUseError: (409, ErrorCodes.ALREADY_EXISTS),
    PolicyRejectedError: (400, ErrorCodes.POLICY_REJECTED),
    WrongOldPasswordError: (400, ErrorCodes.WRONG_OLD_PASSWORD),
    MalformedTokenError: (400, ErrorCodes.RESET_TOKEN_MALFORMED),
    InvalidResetTokenError: (400, ErrorCodes.RESET_TOKEN_INVALID),
    ExpiredTokenError: (400, ErrorCodes.RESET_TOKEN_EXPIRED),
    NotificationError: (400, ErrorCodes.NOTIFICATION_FAILED),
    RateLimitedError: (429, ErrorCodes.RATE_LIMITED),
}


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def auth_error_response(
    exc: AuthError,
    request_id: str | None = None,
    status_code: int | None = None,
) -> JSONResponse:
    """Render exc through ERROR_TABLE. status_code overrides the table's status."""
    status, code = ERROR_TABLE.get(type(exc), (400, ErrorCodes.INVALID_REQUEST))
    if status_code is not None:
        status = status_code

    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}

    return JSONResponse(
        status_code=status,
        headers=headers,
        content=error_response(
            code,
            str(exc),
            reason=getattr(exc, "reason", None),
            request_id=request_id,
        ).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        return auth_error_response(exc, request_id=_request_id(request))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR,
                str(exc.errors()),
                request_id=_request_id(request),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content=error_response(
                ErrorCodes.INTERNAL_ERROR,
                "An internal error occurred",
                request_id=_request_id(request),
            ).model_dump(mode="json"),
        )
