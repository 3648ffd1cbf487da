"""Public endpoints — liveness, readiness, root info.

Learn: /health and / answer immediately with 200 no matter what state the
database or auth are in; they only prove the process is up. /ready is
the one that asks the dependency gate and returns 503 when a handle
can't be built. None of these ever touch the session verifier.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from todogate import __version__

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def root():
    return {
        "message": "API Server is running",
        "version": __version__,
        "timestamp": _now(),
    }


@router.get("/health")
async def health_check():
    """Liveness — always 200."""
    return {
        "status": "ok",
        "message": "Server is healthy",
        "timestamp": _now(),
    }


@router.get("/ready")
async def readiness(request: Request):
    """Readiness — 200 only when the store and verifier are both available."""
    checks = request.app.state.gate.status()
    ready = all(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "degraded", **checks},
    )


@router.get("/ping", response_class=PlainTextResponse)
async def ping():
    return "pong"
