"""docstream: FastAPI application entry point."""

import signal
from contextlib import asynccontextmanager

# Logging must be configured before any module calls structlog.get_logger()
from docstream.core.logging import configure_structlog
from docstream.core.config import get_settings

_boot_settings = get_settings()
configure_structlog(
    log_level="DEBUG" if _boot_settings.debug else "INFO",
    json_logs=not _boot_settings.debug,
)

import structlog

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docstream.api.errors import register_exception_handlers
from docstream.api.routes import api_router
from docstream.db import close_redis, init_redis
from docstream.middleware.correlation import setup_correlation_middleware
from docstream.providers.mock import reset_mock_registry
from docstream.providers.resolver import build_model_resolver, configure_model_resolver

logger = structlog.get_logger(__name__)


def _install_sigterm_flag(app: FastAPI) -> None:
    """Flip ``app.state.shutting_down`` on SIGTERM so /health starts failing."""
    app.state.shutting_down = False

    def _on_sigterm(signum, frame):
        app.state.shutting_down = True
        logger.info("sigterm_received", action="draining")

    signal.signal(signal.SIGTERM, _on_sigterm)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open Redis and install the model resolver strategy for this process."""
    _install_sigterm_flag(app)

    settings = get_settings()
    logger.info("startup_begin", app_name=settings.app_name, test_mode=settings.test_mode)

    redis = await init_redis()
    configure_model_resolver(build_model_resolver(settings, redis))
    logger.info("startup_complete")

    yield

    logger.info("shutdown_begin")
    configure_model_resolver(None)
    reset_mock_registry()
    await close_redis()
    logger.info("shutdown_complete")


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Streaming document generation over user-connected model providers",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, *settings.allowed_origins],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Added last so it wraps CORS and tags every request first
    setup_correlation_middleware(app)

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("docstream.main:app", host="0.0.0.0", port=8000)
