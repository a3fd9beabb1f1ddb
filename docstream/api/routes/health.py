import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from docstream.core.exceptions import ConfigurationError
from docstream.db.redis import redis_available
from docstream.providers.resolver import get_model_resolver

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Liveness check. Returns 503 while the process is draining on SIGTERM."""
    if getattr(request.app.state, "shutting_down", False):
        return JSONResponse(
            status_code=503,
            content={"status": "shutting_down", "service": "docstream"},
        )
    return {"status": "healthy", "service": "docstream"}


@router.get("/ready")
async def readiness_check():
    """Readiness check: verifies Redis and the model resolver are available."""
    checks = {"redis": await redis_available(), "model_resolver": False}

    try:
        get_model_resolver()
        checks["model_resolver"] = True
    except ConfigurationError as exc:
        logger.error("model_resolver_health_check_failed", error=str(exc))

    all_healthy = all(checks.values())
    status_code = 200 if all_healthy else 503

    return JSONResponse(
        status_code=status_code,
        content={"status": "ready" if all_healthy else "degraded", "checks": checks},
    )
