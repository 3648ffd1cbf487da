"""Error taxonomy — every failure the API can surface to a client.

Learn: Services and middleware raise these instead of HTTPException so
the business layer stays framework-free. Each class knows its status
code and how to render itself; api/responses.py registers one handler
that turns any GateError into a JSON envelope.

  ConfigurationMissing    → 503  (required env var unset)
  DependencyUnavailable   → 503  (store / verifier failed to construct)
  Unauthenticated         → 401  (no or invalid session on a protected path)
  Forbidden               → 403  (session ok, role insufficient)
  ValidationFailed        → 400  (input rejected, detail attached)
  NotFoundOrUnauthorized  → 404  (owner-filtered op matched nothing)
  Conflict                → 409  (credential subsystem: duplicate email)
  UnexpectedFault         → 500  (anything else; details stay in the logs)
"""

from typing import Any, Optional


class GateError(Exception):
    """Base class — carries the HTTP status and the client-facing message."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def envelope(self) -> dict[str, Any]:
        return {"success": False, "message": self.message}


class ConfigurationMissing(GateError):
    """A mandatory setting is absent. Degrades the feature, never the process."""

    status_code = 503
    default_message = "Service not configured"

    def __init__(self, keys: list[str]):
        self.keys = keys
        super().__init__(f"Missing configuration: {', '.join(keys)}")

    def envelope(self) -> dict[str, Any]:
        # Key names are operator detail, not client detail
        return {"success": False, "message": self.default_message}


class DependencyUnavailable(GateError):
    status_code = 503
    default_message = "Service unavailable"

    def envelope(self) -> dict[str, Any]:
        return {"success": False, "error": self.message, "message": self.message}


class DatabaseUnavailable(DependencyUnavailable):
    default_message = "Database not available"


class AuthUnavailable(DependencyUnavailable):
    default_message = "Auth not available"


class Unauthenticated(GateError):
    status_code = 401
    default_message = "Login required"


class Forbidden(GateError):
    status_code = 403
    default_message = "Insufficient role"


class ValidationFailed(GateError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, message: Optional[str] = None, detail: Any = None):
        super().__init__(message)
        self.detail = detail

    def envelope(self) -> dict[str, Any]:
        body = super().envelope()
        if self.detail is not None:
            body["detail"] = self.detail
        return body


class NotFoundOrUnauthorized(GateError):
    """Zero rows matched an owner-filtered operation.

    Learn: "no such id" and "someone else's id" are deliberately the same
    outcome. Returning 403 for the second would let a caller enumerate
    which ids exist.
    """

    status_code = 404
    default_message = "Not found or unauthorized"


class Conflict(GateError):
    status_code = 409
    default_message = "Conflict"


class UnexpectedFault(GateError):
    status_code = 500
    default_message = "Internal server error"
