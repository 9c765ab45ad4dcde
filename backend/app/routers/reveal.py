"""Revealed cell endpoints."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.dependencies import client_key, get_clock, get_ingest_service, get_stats_service
from app.errors import BattleMapError, internal_error_body
from app.schemas.batch import RevealBatchRequest, RevealBatchResponse
from app.services.ingest import Clock, IngestService
from app.services.stats import StatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reveal"])


@router.post(
    "/reveal-batch",
    response_model=RevealBatchResponse,
    response_model_exclude_none=True,
)
async def reveal_batch(
    body: RevealBatchRequest,
    request: Request,
    service: IngestService = Depends(get_ingest_service),
):
    """Record a batch of revealed cells for one player."""
    try:
        return await service.reveal_batch(body.cells, body.playerId, client_key(request))
    except Exception as e:
        if isinstance(e, BattleMapError) and e.status_code < 500:
            raise
        logger.exception("Failed to process reveal batch")
        return JSONResponse(status_code=500, content=internal_error_body("Failed to process batch", e))


@router.get("/state")
async def get_state(
    stats: StatsService = Depends(get_stats_service),
    clock: Clock = Depends(get_clock),
) -> dict:
    """All revealed cells with totals and the country ranking."""
    return await stats.get_cells_state(clock())
