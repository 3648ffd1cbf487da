"""Response shaping — one envelope format for every outcome.

Learn: Success bodies carry "success": true next to the payload; error
bodies carry "success": false and a human-readable "message". Handlers
never build error JSON by hand — they raise a GateError and the
handlers registered here render it.

  GateError              → error.status_code, error.envelope()
  RequestValidationError → 400 with the validator's detail
  anything else          → 500, generic message, traceback in the logs
"""

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from todogate.db.models import Todo
from todogate.errors import GateError, UnexpectedFault, ValidationFailed
from todogate.schemas.todo import TodoRead

logger = structlog.get_logger()


def todo_payload(todo: Todo) -> dict[str, Any]:
    """Serialize a todo row to its camelCase wire form."""
    return TodoRead.model_validate(todo).model_dump(mode="json", by_alias=True)


def success(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": True, "data": data})


def success_message(message: str, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": True, "message": message}
    )


def error_response(error: GateError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.envelope())


def _validation_detail(exc: RequestValidationError) -> list[dict[str, Any]]:
    # exc.errors() may hold exception objects in "ctx"; keep the JSON-safe parts
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(GateError)
    async def handle_gate_error(request: Request, exc: GateError):
        if exc.status_code >= 500:
            logger.warning(
                "request.failed",
                path=request.url.path,
                status=exc.status_code,
                error=exc.message,
            )
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return error_response(ValidationFailed(detail=_validation_detail(exc)))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("request.unhandled_error", path=request.url.path)
        return error_response(UnexpectedFault())
