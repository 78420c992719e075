"""
FastAPI entrypoint for the Narrated Video Composer.

Current status:
* Main orchestration happens via run_composition.py (CLI)
* This API is optional, for remote triggering of single runs
"""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from narrated_video.api.routes_composition import router as compositions_router
from narrated_video.core.config import settings
from narrated_video.core.logging_config import get_logger, setup_logging

setup_logging(
    log_level=settings.log_level,
    log_file=Path(settings.log_file) if settings.log_file else None,
    serialize=settings.log_json,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"Render cap: {settings.max_concurrent_renders} concurrent run(s)")
    logger.info("=" * 60)
    yield
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Narrated Video Composer - renders narrated videos with burned-in captions and thumbnails",
    lifespan=lifespan,
)

app.include_router(compositions_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "endpoints": {
            "create_composition": "/compositions",
            "docs": "/docs",
        },
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "narrated_video.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
