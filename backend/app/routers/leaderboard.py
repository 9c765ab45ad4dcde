"""Leaderboard endpoint."""

from fastapi import APIRouter, Depends

from app.dependencies import get_clock, get_stats_service
from app.services.ingest import Clock
from app.services.stats import StatsService

router = APIRouter(prefix="/api", tags=["leaderboard"])


@router.get("/leaderboard")
async def get_leaderboard(
    stats: StatsService = Depends(get_stats_service),
    clock: Clock = Depends(get_clock),
) -> dict:
    """Top countries, top players and the latest reveals."""
    return await stats.get_leaderboard(clock())
