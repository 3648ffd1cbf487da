"""Response hardening headers.

Learn: The API serves JSON to a browser client that holds a session
cookie, so every response (the guard's 401/503 rejections included)
carries the same fixed header set:

  X-Content-Type-Options  nosniff: JSON is never reinterpreted as HTML/JS
  X-Frame-Options         DENY: no framing, no clickjacking with a live session
  Referrer-Policy         no full URLs (todo ids) leak to other origins

Two headers depend on the request:
  Cache-Control: no-store  on the auth subsystem, whose bodies carry tokens
  Strict-Transport-Security  only when the request actually came over https
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

BASE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}
HSTS_VALUE = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, auth_path: str = "/api/auth"):
        super().__init__(app)
        self.auth_path = auth_path.rstrip("/")

    def _is_auth(self, path: str) -> bool:
        return path == self.auth_path or path.startswith(self.auth_path + "/")

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers.update(BASE_HEADERS)
        if self._is_auth(request.url.path):
            response.headers["Cache-Control"] = "no-store"
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = HSTS_VALUE
        return response
