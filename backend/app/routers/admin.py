"""Administrative endpoints."""

import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException

from app.config import Settings, get_settings
from app.constants import PIXEL_KEYS
from app.dependencies import get_store
from app.schemas.admin import ResetPixelsRequest, ResetPixelsResponse
from app.store import StateStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/reset-pixels", response_model=ResetPixelsResponse)
async def reset_pixels(
    body: ResetPixelsRequest,
    store: StateStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> ResetPixelsResponse:
    """Erase every pixel and pixel statistic."""
    if not settings.admin_key:
        raise HTTPException(status_code=404, detail="Not found")
    if not secrets.compare_digest(body.adminKey, settings.admin_key):
        logger.warning("Rejected pixel reset with a wrong admin key")
        raise HTTPException(status_code=401, detail="Unauthorized")

    deleted = await store.delete(*PIXEL_KEYS)
    logger.info(f"Pixel state reset, {deleted} keys deleted")
    return ResetPixelsResponse(deletedKeys=deleted)
