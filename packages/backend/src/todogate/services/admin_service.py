"""Admin service — cross-user read-only statistics.

Only ever reached through require_admin; the role check lives in the
dependency so the service stays a plain store wrapper.
"""

from typing import Optional

import structlog

from todogate.db.store import TodoStore
from todogate.errors import DatabaseUnavailable, UnexpectedFault

logger = structlog.get_logger()


class AdminService:
    def __init__(self, store: Optional[TodoStore]):
        self.store = store

    async def user_count(self) -> int:
        if self.store is None:
            raise DatabaseUnavailable()
        try:
            return await self.store.count_users()
        except Exception:
            logger.exception("admin.store_error", op="user_count")
            raise UnexpectedFault()
