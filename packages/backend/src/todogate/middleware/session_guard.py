"""Route guard — decides which requests need a session, and enforces it.

Learn: Every request path falls into exactly one class:

  PUBLIC          /, /health, /ready, /ping, /docs, /openapi
                  → never touches the verifier
  AUTH_SUBSYSTEM  /auth and everything below it
                  → the credential endpoints run their own flow
  PROTECTED       everything else (todos, admin, unknown paths)
                  → must resolve to an Identity or get a 401

Matching is by whole path segment ("/authors" is not "/auth") and the
PUBLIC/AUTH tables are checked first. Anything that matches neither is
PROTECTED — a new route is locked until someone deliberately opens it.

The guard runs as middleware, so a rejected request never reaches a
route handler or service: no partial side effects.
"""

from enum import Enum
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from todogate.auth.resolver import resolve_identity
from todogate.errors import AuthUnavailable, DatabaseUnavailable, GateError, Unauthenticated

logger = structlog.get_logger()


class RouteClass(str, Enum):
    PUBLIC = "public"
    AUTH_SUBSYSTEM = "auth_subsystem"
    PROTECTED = "protected"


PUBLIC_EXACT = ("/",)
PUBLIC_PREFIXES = ("/health", "/ready", "/ping", "/docs", "/openapi")
AUTH_PREFIXES = ("/auth",)


def _matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def _strip_base(path: str, base: str) -> Optional[str]:
    """Path relative to the API base, or None if it isn't under it."""
    base = base.rstrip("/")
    if not base:
        return path or "/"
    if path == base:
        return "/"
    if path.startswith(base + "/"):
        return path[len(base):]
    return None


def classify(path: str, base: str = "/api") -> RouteClass:
    """Classify a request path. Unknown paths are PROTECTED (fail closed)."""
    relative = _strip_base(path, base)
    if relative is None:
        return RouteClass.PROTECTED
    if len(relative) > 1:
        relative = relative.rstrip("/")
    if relative in PUBLIC_EXACT or any(_matches(relative, p) for p in PUBLIC_PREFIXES):
        return RouteClass.PUBLIC
    if any(_matches(relative, p) for p in AUTH_PREFIXES):
        return RouteClass.AUTH_SUBSYSTEM
    return RouteClass.PROTECTED


class SessionGuardMiddleware(BaseHTTPMiddleware):
    """Resolve the caller on protected paths; reject before any handler runs."""

    def __init__(self, app, base_path: str = "/api"):
        super().__init__(app)
        self.base_path = base_path

    async def dispatch(self, request: Request, call_next) -> Response:
        # Identity exists only on protected paths whose session resolved
        request.state.identity = None

        route_class = classify(request.url.path, self.base_path)
        if route_class is not RouteClass.PROTECTED:
            return await call_next(request)

        try:
            gate = request.app.state.gate
            verifier = gate.verifier()
            if verifier is None:
                # Sessions live in the database; no store means no verifier
                if gate.store() is None:
                    return self._reject(request, DatabaseUnavailable())
                return self._reject(request, AuthUnavailable())

            identity = await resolve_identity(verifier, request.headers)
            if identity is None:
                return self._reject(request, Unauthenticated())
        except Exception as e:
            logger.error("guard.error", path=request.url.path, error=str(e))
            return self._reject(request, Unauthenticated("Authentication required"))

        request.state.identity = identity
        structlog.contextvars.bind_contextvars(user_id=identity.user_id)
        return await call_next(request)

    @staticmethod
    def _reject(request: Request, error: GateError) -> JSONResponse:
        logger.info(
            "guard.rejected",
            path=request.url.path,
            method=request.method,
            status=error.status_code,
        )
        return JSONResponse(status_code=error.status_code, content=error.envelope())
