"""The verified caller.

Learn: An Identity only ever exists in request scope, and only on
protected paths whose session resolved. It is never persisted; services
use identity.user_id as the owner filter on every query.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Identity:
    user_id: str
    role: Optional[str] = None

    def has_role(self, role: str) -> bool:
        return self.role == role
