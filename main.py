"""
Tasko application factory.

create_app() wires already-constructed backends into a FastAPI app and is
what tests use. build_app() reads the environment, pulls secrets from Vault,
and connects the real backends:

    uvicorn main:build_app --factory

Environment:
    APP_ENV          production | development | test (default production)
    ATTEMPT_STORE    valkey | memory (default valkey)
    CORS_ORIGINS     comma-separated origins allowed outside production
    FRONTEND_DIST    built SPA directory (default frontend/dist)
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Callable

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from api.errors import register_error_handlers
from api.frontend import mount_frontend
from api.middleware import RequestIDMiddleware
from api.tasks import create_task_router
from auth.api import create_auth_router
from auth.attempts import AttemptStore, MemoryAttemptStore, ValkeyAttemptStore
from auth.config import AuthConfig, GoogleOAuthConfig
from auth.oidc import GoogleOIDCClient
from auth.security_logger import AuditLogger
from auth.security_middleware import AuthMiddleware
from auth.session import SessionStore
from auth.users import UserDirectory
from clients.document_store import DocumentStore, PostgresDocumentStore
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import get_database_url, get_valkey_url, get_google_oauth_config
from core.services import TaskService
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

DEFAULT_DEV_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]
DEFAULT_FRONTEND_DIST = Path(__file__).resolve().parent / "frontend" / "dist"


def create_app(
    config: AuthConfig,
    google_config: GoogleOAuthConfig,
    store: DocumentStore,
    attempts: AttemptStore,
    http: Any = None,
    id_token_verifier: Callable[[str], dict] | None = None,
    clock: Callable = now_utc,
    cors_origins: list[str] | None = None,
    resources: list[Any] | None = None,
    frontend_dir: Path | None = None,
) -> FastAPI:
    """
    Build the app around the given backends.

    Args:
        http: requests.Session for the token endpoint (tests pass a fake)
        id_token_verifier: Replaces Google ID token verification (tests only)
        frontend_dir: Built SPA to serve, with index.html for client routes
        resources: Objects with close(), closed at shutdown after background
            writes have drained
    """
    users = UserDirectory(store, clock)
    sessions = SessionStore(store, users, config, clock)
    audit = AuditLogger(store, clock)
    oidc = GoogleOIDCClient(google_config, attempts, http, id_token_verifier, clock)
    task_service = TaskService(store, clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await sessions.drain()
        await audit.drain()
        for resource in resources or []:
            resource.close()
        logger.info("Shutdown complete")

    app = FastAPI(title="Tasko", lifespan=lifespan)
    app.state.sessions = sessions
    app.state.audit = audit

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        AuthMiddleware,
        session_store=sessions,
        cookie_name=config.session_cookie_name,
    )
    if config.environment != "production":
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins or DEFAULT_DEV_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", config.csrf_header_name, "X-Request-ID"],
            expose_headers=["X-Request-ID"],
        )
    register_error_handlers(app)

    @app.get("/ping", response_class=PlainTextResponse)
    async def ping():
        return "pong\n"

    app.include_router(create_auth_router(config, oidc, users, sessions, audit))
    app.include_router(create_task_router(task_service, config.csrf_header_name))

    if config.environment == "test":
        from auth.e2e_api import create_e2e_auth_router

        app.include_router(create_e2e_auth_router(config, users, sessions, task_service))
        logger.warning("Test-support auth routes enabled")

    if frontend_dir is not None:
        mount_frontend(app, frontend_dir)

    return app


def build_app() -> FastAPI:
    """Production entry point: environment + Vault secrets -> app."""
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    environment = os.getenv("APP_ENV", "production")
    config = AuthConfig(environment=environment, cookie_secure=environment == "production")
    google_config = GoogleOAuthConfig(**get_google_oauth_config())

    postgres = PostgresClient(get_database_url())
    postgres.ping()
    store = PostgresDocumentStore(postgres)
    store.ensure_schema()
    resources: list[Any] = [postgres]

    if os.getenv("ATTEMPT_STORE", "valkey") == "memory":
        attempts: AttemptStore = MemoryAttemptStore(config)
    else:
        valkey = ValkeyClient(get_valkey_url())
        attempts = ValkeyAttemptStore(valkey, config)
        resources.append(valkey)

    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

    frontend_dir: Path | None = Path(os.getenv("FRONTEND_DIST", DEFAULT_FRONTEND_DIST))
    if not frontend_dir.is_dir():
        logger.warning(f"No frontend build at {frontend_dir}; serving API only")
        frontend_dir = None

    logger.info(f"Starting Tasko ({environment})")
    return create_app(
        config,
        google_config,
        store,
        attempts,
        cors_origins=origins or None,
        resources=resources,
        frontend_dir=frontend_dir,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:build_app",
        factory=True,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8080")),
    )
