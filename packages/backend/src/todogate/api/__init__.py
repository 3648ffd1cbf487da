"""API route aggregation.

All routers registered here get mounted in main.py under the API prefix.

Learn: Unlike a per-router Depends(auth) setup, authentication is not
attached here at all. The SessionGuardMiddleware decides per path, before
routing, and fails closed — so forgetting to protect a router here can't
open it up. Handlers that need the caller use Depends(get_identity).
"""

from fastapi import APIRouter

from todogate.api.admin import router as admin_router
from todogate.api.auth import router as auth_router
from todogate.api.health import router as health_router
from todogate.api.todos import router as todos_router


def build_api_router(prefix: str = "/api") -> APIRouter:
    api_router = APIRouter(prefix=prefix)

    # Public + auth subsystem (guard lets these through without a session)
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(auth_router, tags=["auth"])

    # Protected (guard requires a resolved identity)
    api_router.include_router(todos_router, tags=["todos"])
    api_router.include_router(admin_router, tags=["admin"])
    return api_router
