"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers. They never resolve
a session themselves — the route guard middleware already did that and
left the result on request.state.identity. Handlers just read it.
"""

from typing import Optional

from fastapi import Depends, Request

from todogate.auth.identity import Identity
from todogate.errors import Forbidden, Unauthenticated


def get_identity_optional(request: Request) -> Optional[Identity]:
    return getattr(request.state, "identity", None)


def get_identity(
    identity: Optional[Identity] = Depends(get_identity_optional),
) -> Identity:
    """The caller's identity (required).

    The guard rejects protected requests without one, so reaching the
    raise means a handler was mounted on a path the guard treats as public.
    """
    if identity is None:
        raise Unauthenticated()
    return identity


def require_admin(
    request: Request,
    identity: Identity = Depends(get_identity),
) -> Identity:
    """Identity carrying the configured admin role (403 otherwise).

    Learn: Having a session is authentication, not authorization. Admin
    routes additionally require the role stored on the user row.
    """
    admin_role = request.app.state.settings.admin_role
    if not identity.has_role(admin_role):
        raise Forbidden()
    return identity
