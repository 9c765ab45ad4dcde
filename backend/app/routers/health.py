"""Health check endpoint."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.dependencies import get_store
from app.store import StateStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(store: StateStore = Depends(get_store)):
    """Report whether the state store answers."""
    try:
        await store.ping()
    except Exception as e:
        logger.error(f"Store health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "store": "unreachable"})
    return {"status": "healthy", "store": "ok"}
