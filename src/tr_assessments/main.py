"""Assessment results service entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tr_assessments import __version__
from tr_assessments.api.router import router
from tr_assessments.database import close_database, init_database
from tr_assessments.observability import configure_logging, get_logger
from tr_assessments.settings import get_settings

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle.

    Args:
        app: The FastAPI application instance.

    Yields:
        None
    """
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    init_database(settings)
    logger.info("Service started", service=settings.service_name, version=__version__)
    yield
    await close_database()
    logger.info("Service stopped", service=settings.service_name)


app: FastAPI = FastAPI(
    title=settings.service_name,
    version=__version__,
    lifespan=lifespan,
)

app.include_router(router, prefix="/api/v1")


@app.get("/health", tags=["Health"])
async def health() -> dict[str, str]:
    """Liveness check."""
    return {"status": "ok", "service": settings.service_name, "version": __version__}
