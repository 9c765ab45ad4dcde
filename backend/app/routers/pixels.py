"""Pixel painting endpoints."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.dependencies import client_key, get_clock, get_ingest_service, get_stats_service
from app.errors import BattleMapError, internal_error_body
from app.schemas.batch import PixelBatchRequest, PixelBatchResponse
from app.services.ingest import Clock, IngestService
from app.services.stats import StatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["pixels"])


@router.post("/pixels-batch", response_model=PixelBatchResponse)
async def pixels_batch(
    body: PixelBatchRequest,
    request: Request,
    service: IngestService = Depends(get_ingest_service),
):
    """Record a batch of pixel placements; the last write on a cell wins."""
    try:
        return await service.pixels_batch(body.pixels, body.playerId, client_key(request))
    except Exception as e:
        if isinstance(e, BattleMapError) and e.status_code < 500:
            raise
        logger.exception("Failed to process pixel batch")
        return JSONResponse(status_code=500, content=internal_error_body("Failed to process batch", e))


@router.get("/pixels-state")
async def get_pixels_state(
    stats: StatsService = Depends(get_stats_service),
    clock: Clock = Depends(get_clock),
) -> dict:
    """All pixels with totals and the colour ranking."""
    return await stats.get_pixels_state(clock())
