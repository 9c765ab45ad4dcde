"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from app import __version__
from app.config import StoreBackend, get_settings
from app.dependencies import get_classifier, get_store
from app.errors import register_exception_handlers
from app.routers import (
    admin_router,
    geocode_router,
    health_router,
    leaderboard_router,
    metrics_router,
    pixels_router,
    reveal_router,
)

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class PreflightCORSMiddleware(CORSMiddleware):
    """CORS middleware that answers an accepted preflight with an empty body."""

    def preflight_response(self, request_headers):
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            name: value
            for name, value in response.headers.items()
            if name not in ("content-length", "content-type")
        }
        return Response(status_code=200, headers=headers)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting BattleMap...")

    if settings.store_backend == StoreBackend.POSTGRES:
        from app.database import init_db

        await init_db()
        logger.info("Database initialized")
    else:
        logger.warning("In-memory store: state is lost on restart and not shared between workers")

    yield

    # Shutdown
    logger.info("Shutting down BattleMap...")

    await get_classifier().close()
    await get_store().close()
    if settings.store_backend == StoreBackend.POSTGRES:
        from app.database import close_db

        await close_db()

    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="BattleMap",
    description="Shared fog-of-war map: reveal cells, paint pixels, compare countries",
    version=__version__,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Add CORS middleware
app.add_middleware(
    PreflightCORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Include routers
app.include_router(health_router)
app.include_router(metrics_router)
app.include_router(reveal_router)
app.include_router(pixels_router)
app.include_router(leaderboard_router)
app.include_router(geocode_router)
app.include_router(admin_router)


@app.options("/{full_path:path}", include_in_schema=False)
async def preflight(full_path: str):
    """Answer OPTIONS on any path with an empty 200."""
    return Response(status_code=200)


@app.get("/")
async def root():
    """Root endpoint - shows API info."""
    return {
        "name": "BattleMap",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics",
    }
