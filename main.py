"""Application entry point: wires clients, services and routers into a FastAPI app.

Run with:
    uvicorn main:create_app --factory --port 8082
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

from api.base import success_response
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from auth.api import create_auth_router, create_password_reset_router
from auth.config import AuthConfig
from auth.csrf import CsrfGuard
from auth.database import PostgresCredentialStore
from auth.passwords import PasswordHasher, PasswordPolicy
from auth.rate_limiter import RateLimiter
from auth.reset import PasswordResetManager
from auth.security_logger import SecurityLogger
from auth.security_middleware import AuthMiddleware
from auth.service import AuthService
from auth.tokens import AuthTokenService
from clients import (
    EmailGatewayClient,
    PostgresClient,
    ValkeyClient,
    get_database_url,
    get_email_config,
    get_token_secrets,
    get_valkey_url,
)
from core.api import create_user_router
from core.services.user_service import UserService

logger = logging.getLogger(__name__)


def create_app(config: AuthConfig | None = None) -> FastAPI:
    """Build the app from Vault-held secrets.

    .env is loaded first so VAULT_ADDR and the AppRole credentials are
    available to the Vault client.
    """
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = config or AuthConfig()
    secrets = get_token_secrets()
    email_config = get_email_config()

    postgres = PostgresClient(get_database_url())
    valkey = ValkeyClient(get_valkey_url())
    email_client = EmailGatewayClient(
        gateway_url=email_config["gateway_url"],
        api_key=email_config["api_key"],
        hmac_secret=email_config["hmac_secret"],
    )

    store = PostgresCredentialStore(postgres)
    security_logger = SecurityLogger(postgres)
    hasher = PasswordHasher(rounds=config.bcrypt_rounds)
    policy = PasswordPolicy(config, hasher)
    token_service = AuthTokenService(secrets["jwt_secret"], config)
    csrf_guard = CsrfGuard(secrets["csrf_secret"], config)

    auth_service = AuthService(
        config=config,
        store=store,
        hasher=hasher,
        policy=policy,
        token_service=token_service,
        csrf_guard=csrf_guard,
        security_logger=security_logger,
    )
    reset_manager = PasswordResetManager(
        config=config,
        store=store,
        policy=policy,
        hasher=hasher,
        email_client=email_client,
        security_logger=security_logger,
        rate_limiter=RateLimiter(valkey, config),
    )
    user_service = UserService(store, security_logger)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        valkey.close()
        postgres.close()

    app = FastAPI(title="P2S Backend", lifespan=lifespan)
    # Last added runs first: request IDs exist before auth rejects anything
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

    logger.info("Application configured")
    return app
