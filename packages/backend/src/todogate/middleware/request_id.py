"""Request correlation — one id per request, in the logs and the response.

Learn: A caller (or a proxy in front of us) may send X-Request-ID so its
own traces line up with ours. That value ends up in every log line, so
it is only accepted if it looks like an id: short, no spaces, no control
characters. Anything else is replaced with a fresh UUID.

structlog's contextvars are reset per request and then carry request_id,
method and path; the route guard adds user_id once the session resolves.
"""

import re
import uuid
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
_ACCEPTABLE_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def pick_request_id(incoming: Optional[str]) -> str:
    """The caller's id if it is safe to log, otherwise a new UUID."""
    if incoming and _ACCEPTABLE_ID.fullmatch(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = pick_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response: Response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
