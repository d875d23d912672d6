"""HTTP routes for authentication and password reset."""

import ipaddress

from fastapi import APIRouter, Request, Response

from auth.config import AuthConfig
from auth.exceptions import PermissionDeniedError, UserNotFoundError
from auth.reset import PasswordResetManager
from auth.service import AuthService
from auth.types import (
    IssuedSession,
    LoginRequest,
    PasswordChangeRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    RegisterRequest,
    UserView,
)
from api.base import success_response
from api.errors import auth_error_response


def get_client_ip(request: Request) -> str | None:
    """Extract valid IP address from request, or None if invalid."""
    if not request.client:
        return None
    host = request.client.host
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        return None


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _set_session_cookies(
    response: Response,
    session: IssuedSession,
    config: AuthConfig,
    auth_max_age: int,
    csrf_max_age: int,
) -> None:
    response.set_cookie(
        key=config.auth_cookie_name,
        value=session.auth_token,
        httponly=True,
        secure=config.cookie_secure,
        samesite="strict",
        max_age=auth_max_age,
    )
    # Readable by the frontend, which echoes it in the CSRF header
    response.set_cookie(
        key=config.csrf_cookie_name,
        value=session.csrf_token,
        httponly=False,
        secure=config.cookie_secure,
        samesite="lax",
        max_age=csrf_max_age,
    )


def _user_payload(user: UserView) -> dict:
    return user.model_dump(mode="json", by_alias=True)


def create_auth_router(
    auth_service: AuthService,
    config: AuthConfig,
    auth_max_age: int,
    csrf_max_age: int,
) -> APIRouter:
    """Create auth router with injected service.

    auth_max_age and csrf_max_age are the cookie lifetimes in seconds and
    should match the token lifetimes.
    """
    router = APIRouter(tags=["auth"])

    def start_session(response: Response, user: UserView) -> None:
        session = auth_service.issue_session(user)
        _set_session_cookies(response, session, config, auth_max_age, csrf_max_age)

    @router.post("/login")
    def login(request: Request, response: Response, body: LoginRequest):
        """Check credentials and set the auth and CSRF cookies."""
        user = auth_service.login(
            email=str(body.email),
            password=body.password,
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
        start_session(response, user)
        return success_response(_user_payload(user), request_id=_request_id(request)).model_dump(mode="json")

    @router.post("/register")
    def register(request: Request, response: Response, body: RegisterRequest):
        """Create an account and sign it in."""
        user = auth_service.register(
            body,
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
        start_session(response, user)
        return success_response(_user_payload(user), request_id=_request_id(request)).model_dump(mode="json")

    @router.post("/password-change")
    def change_password(request: Request, body: PasswordChangeRequest):
        """Change the signed-in user's password.

        Protected and CSRF-guarded by AuthMiddleware. The body's email must
        be the caller's own.
        """
        claims = request.state.claims
        email = str(body.email)
        if email != claims.email:
            raise PermissionDeniedError("Cannot change another user's password")

        try:
            auth_service.change_password(
                email=email,
                old_password=body.old_password,
                new_password=body.new_password,
                ip_address=get_client_ip(request),
            )
        except UserNotFoundError as e:
            return auth_error_response(e, request_id=_request_id(request), status_code=400)

        return success_response(
            {"message": "Password changed successfully"},
            request_id=_request_id(request),
        ).model_dump(mode="json")

    @router.post("/logout")
    def logout(request: Request, response: Response):
        """Clear both cookies. Tokens are stateless and stay valid until expiry."""
        response.delete_cookie(key=config.auth_cookie_name, secure=config.cookie_secure, httponly=True)
        response.delete_cookie(key=config.csrf_cookie_name, secure=config.cookie_secure)
        return success_response({"message": "Logged out successfully"}, request_id=_request_id(request)).model_dump(mode="json")

    @router.get("/me")
    def get_current_user(request: Request):
        """Claims of the caller's auth token. Requires authentication."""
        claims = request.state.claims
        payload = _user_payload(claims.to_view())
        payload["expiresAt"] = claims.expires_at.isoformat()
        return success_response(payload, request_id=_request_id(request)).model_dump(mode="json")

    return router


def create_password_reset_router(reset_manager: PasswordResetManager) -> APIRouter:
    """Create the public password reset router."""
    router = APIRouter(tags=["password-reset"])

    @router.post("/request")
    def request_reset(request: Request, body: PasswordResetRequest):
        """Email a reset link to the account's address."""
        try:
            reset_manager.initiate(
                str(body.email),
                ip_address=get_client_ip(request),
                user_agent=request.headers.get("User-Agent"),
            )
        except UserNotFoundError as e:
            return auth_error_response(e, request_id=_request_id(request), status_code=400)

        return success_response(
            {"message": "Password reset email sent"},
            request_id=_request_id(request),
        ).model_dump(mode="json")

    @router.post("/reset")
    def reset_password(request: Request, body: PasswordResetConfirm):
        """Set a new password with the token from the reset link."""
        reset_manager.complete(
            body.token,
            body.new_password,
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
        return success_response(
            {"message": "Password has been reset successfully"},
            request_id=_request_id(request),
        ).model_dump(mode="json")

    return router
