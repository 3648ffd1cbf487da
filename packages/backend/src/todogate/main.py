"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Everything external (settings, the dependency gate) is passed
in or built here once and hung off app.state, so tests can hand in a
gate with fake handles and nothing reaches for module-level globals.

Lifespan logs the configuration state at startup and disposes the store
at shutdown. It does NOT build the store or verifier — the gate does that
lazily, and a missing secret must not stop public endpoints from serving.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from todogate import __version__
from todogate.api import build_api_router
from todogate.api.responses import register_error_handlers
from todogate.config import Settings, settings as default_settings
from todogate.gate import DependencyGate
from todogate.middleware.request_id import RequestIdMiddleware
from todogate.middleware.security import SecurityHeadersMiddleware
from todogate.middleware.session_guard import SessionGuardMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    settings: Settings = app.state.settings
    logger.info(
        "todogate.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        database_url="SET" if settings.database_url else "MISSING",
        auth_secret="SET" if settings.auth_secret else "MISSING",
        app_url=settings.app_url,
    )
    missing = settings.missing_config()
    if missing:
        # Degrade, don't die: public endpoints keep serving
        logger.error("todogate.config_missing", keys=missing)

    yield

    logger.info("todogate.shutdown")
    await app.state.gate.aclose()


def create_app(
    settings: Optional[Settings] = None,
    gate: Optional[DependencyGate] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or default_settings
    prefix = settings.api_prefix.rstrip("/")

    app = FastAPI(
        title="Todo API",
        description="Session-gated, per-user todo API",
        version=__version__,
        lifespan=lifespan,
        openapi_url=f"{prefix}/openapi",
        docs_url=f"{prefix}/docs",
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.gate = gate or DependencyGate(settings)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RequestId → Security → SessionGuard → handler
    # (CORS outermost so preflight OPTIONS never needs a session)

    app.add_middleware(SessionGuardMiddleware, base_path=prefix)
    app.add_middleware(SecurityHeadersMiddleware, auth_path=f"{prefix}/auth")
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    register_error_handlers(app)
    app.include_router(build_api_router(prefix))

    return app


# Default app instance (used by uvicorn: todogate.main:app)
app = create_app()
