"""API test fixtures: the full app over an in-memory store with mocked email and Valkey."""

from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from starlette.testclient import TestClient

from api.base import success_response
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from auth.api import create_auth_router, create_password_reset_router
from auth.rate_limiter import RateLimiter
from auth.reset import PasswordResetManager
from auth.security_middleware import AuthMiddleware
from auth.service import AuthService
from core.api import create_user_router
from core.services.user_service import UserService


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def rate_limiter():
    return Mock(spec=RateLimiter)


@pytest.fixture
def auth_service(config, store, hasher, policy, token_service, csrf_guard, security_logger):
    return AuthService(
        config=config,
        store=store,
        hasher=hasher,
        policy=policy,
        token_service=token_service,
        csrf_guard=csrf_guard,
        security_logger=security_logger,
    )


@pytest.fixture
def reset_manager(config, store, policy, hasher, email_client, security_logger, rate_limiter):
    return PasswordResetManager(
        config=config,
        store=store,
        policy=policy,
        hasher=hasher,
        email_client=email_client,
        security_logger=security_logger,
        rate_limiter=rate_limiter,
    )


@pytest.fixture
def user_service(store, security_logger):
    return UserService(store, security_logger)


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(config, token_service, csrf_guard, security_logger, auth_service, reset_manager, user_service):
    """FastAPI app wired like main.create_app."""
    app = FastAPI()
    app.add_middleware(
        AuthMiddleware,
        config=config,
        token_service=token_service,
        csrf_guard=csrf_guard,
        security_logger=security_logger,
    )
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(
        create_auth_router(
            auth_service,
            config,
            auth_max_age=token_service.lifetime_seconds,
            csrf_max_age=csrf_guard.lifetime_seconds,
        ),
        prefix="/api/auth",
    )
    app.include_router(create_password_reset_router(reset_manager), prefix="/api/password-reset")
    app.include_router(create_user_router(user_service), prefix="/api/users")

    @app.get("/health")
    def health():
        return success_response({"status": "ok"}).model_dump(mode="json")

    return app


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def login(client, config):
    """Log client in; returns the headers a state-changing request needs."""

    def _login(email: str, password: str) -> dict:
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {config.csrf_header_name: client.cookies.get(config.csrf_cookie_name)}

    return _login
