"""Session resolver — headers in, Identity (or None) out. Never raises.

Learn: A verifier fault (DB hiccup, bug, bad data) must look exactly like
"no valid session" to the caller. The fault is logged for operators; the
client just gets the normal 401 from the route guard.
"""

from typing import Mapping, Optional

import structlog

from todogate.auth.credentials import Verifier
from todogate.auth.identity import Identity

logger = structlog.get_logger()


async def resolve_identity(
    verifier: Optional[Verifier],
    headers: Mapping[str, str],
) -> Optional[Identity]:
    """Resolve the caller's identity from the full header set."""
    if verifier is None:
        return None
    try:
        return await verifier.resolve(headers)
    except Exception as e:
        logger.warning(
            "session.resolve_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        return None
