"""Security middleware for FastAPI - auth token validation, CSRF and user context."""

import logging

import psycopg2
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from auth.config import AuthConfig
from auth.csrf import CsrfGuard
from auth.exceptions import CsrfInvalidError, InvalidTokenError
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.tokens import AuthTokenService
from api.errors import auth_error_response
from utils.user_context import set_current_user_id, clear_current_user_id

logger = logging.getLogger(__name__)

STATE_CHANGING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that validates the auth token and sets user context.

    For protected routes:
    1. Reads the auth token from the auth cookie or an Authorization: Bearer header
    2. Verifies it via AuthTokenService (401 on failure)
    3. On state-changing methods, verifies the CSRF header against the
       nonce bound into the auth token (403 on failure)
    4. Sets claims and user_id in request.state and the user context
    5. Clears context after request completes

    Public paths bypass authentication entirely.
    """

    PUBLIC_PATHS = [
        "/api/auth/login",
        "/api/auth/register",
        "/api/auth/logout",
        "/api/password-reset/",
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def __init__(
        self,
        app,
        config: AuthConfig,
        token_service: AuthTokenService,
        csrf_guard: CsrfGuard,
        security_logger: SecurityLogger | None = None,
    ):
        super().__init__(app)
        self._config = config
        self._token_service = token_service
        self._csrf_guard = csrf_guard
        self._security_logger = security_logger

    def _is_public_path(self, path: str) -> bool:
        """Check if path is in public paths list."""
        for public_path in self.PUBLIC_PATHS:
            if path == public_path or path.startswith(public_path):
                return True
        return False

    def _auth_token(self, request: Request) -> str | None:
        token = request.cookies.get(self._config.auth_cookie_name)
        if token:
            return token
        authorization = request.headers.get("Authorization", "")
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
        return None

    async def _log_csrf_rejection(self, request: Request, user_id: int, email: str) -> None:
        if self._security_logger is None:
            return
        try:
            await run_in_threadpool(
                self._security_logger.log,
                SecurityEvent.CSRF_REJECTED,
                email=email,
                user_id=user_id,
                ip_address=request.client.host if request.client else None,
                user_agent=request.headers.get("User-Agent"),
                details={"method": request.method, "path": request.url.path},
            )
        except psycopg2.Error as e:
            logger.warning(f"CSRF rejection for user {user_id} not recorded: {e}")

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        path = request.url.path
        request_id = getattr(request.state, "request_id", None)

        # Skip auth for public paths
        if self._is_public_path(path):
            return await call_next(request)

        token = self._auth_token(request)
        if not token:
            return auth_error_response(
                InvalidTokenError("Authentication required"),
                request_id=request_id,
            )

        try:
            claims = self._token_service.verify(token)
        except InvalidTokenError as e:
            return auth_error_response(e, request_id=request_id)

        if request.method in STATE_CHANGING_METHODS:
            csrf_token = request.headers.get(self._config.csrf_header_name)
            if claims.csrf_nonce is None or not self._csrf_guard.verify(csrf_token, claims.csrf_nonce):
                await self._log_csrf_rejection(request, claims.id, claims.email)
                return auth_error_response(
                    CsrfInvalidError("Missing or invalid CSRF token"),
                    request_id=request_id,
                )

        set_current_user_id(claims.id)
        request.state.user_id = claims.id
        request.state.claims = claims

        try:
            response = await call_next(request)
            return response
        finally:
            # Always clear context
            clear_current_user_id()
