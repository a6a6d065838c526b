from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

router = APIRouter(tags=["Health"])


@router.get("/", response_class=PlainTextResponse, include_in_schema=False)
def banner() -> str:
    return "Chapter Performance Dashboard API"


@router.get("/health")
def health_check() -> dict:
    """Liveness probe.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(request: Request) -> JSONResponse:
    """Readiness probe: pings the store, cache and rate limiter backends.

    Returns 200 when all answer, 503 otherwise, with a per-backend breakdown.
    """

    resources = getattr(request.app.state, "resources", None)
    if resources is None:
        return JSONResponse(status_code=503, content={"status": "starting", "backends": {}})

    backends = await resources.check()
    ready = all(backends.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ok" if ready else "degraded", "backends": backends},
    )
