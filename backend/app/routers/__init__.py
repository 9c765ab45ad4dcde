"""API routers."""

from app.routers.admin import router as admin_router
from app.routers.geocode import router as geocode_router
from app.routers.health import router as health_router
from app.routers.leaderboard import router as leaderboard_router
from app.routers.metrics import router as metrics_router
from app.routers.pixels import router as pixels_router
from app.routers.reveal import router as reveal_router

__all__ = [
    "admin_router",
    "geocode_router",
    "health_router",
    "leaderboard_router",
    "metrics_router",
    "pixels_router",
    "reveal_router",
]
