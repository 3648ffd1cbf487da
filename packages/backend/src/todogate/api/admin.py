"""Admin API — requires a session AND the configured admin role."""

from fastapi import APIRouter, Depends, Request

from todogate.auth.dependencies import require_admin
from todogate.auth.identity import Identity
from todogate.services.admin_service import AdminService

router = APIRouter(prefix="/admin")


def _admin_svc(request: Request) -> AdminService:
    return AdminService(request.app.state.gate.store())


@router.get("/user-count")
async def user_count(
    identity: Identity = Depends(require_admin),
    svc: AdminService = Depends(_admin_svc),
):
    """Total registered users."""
    return {"totalUsers": await svc.user_count()}
