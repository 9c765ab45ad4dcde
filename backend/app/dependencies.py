"""FastAPI dependencies shared by the routers."""

import logging
from functools import lru_cache

from fastapi import Depends, Request

from app.config import GeocoderBackend, Settings, StoreBackend, get_settings
from app.services.geocoder import HeuristicClassifier, LocationClassifier, NominatimClassifier
from app.services.ingest import Clock, IngestService, now_ms
from app.services.rate_limiter import RateLimiter
from app.services.stats import StatsService
from app.store import MemoryStore, StateStore

logger = logging.getLogger(__name__)


@lru_cache
def get_store() -> StateStore:
    """Process-wide state store selected by configuration."""
    settings = get_settings()
    if settings.store_backend == StoreBackend.MEMORY:
        logger.info("Using in-memory state store")
        return MemoryStore()

    from app.database import async_session_maker
    from app.store.sql import SqlStore

    return SqlStore(async_session_maker)


@lru_cache
def get_rate_limiter() -> RateLimiter:
    settings = get_settings()
    return RateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )


@lru_cache
def get_classifier() -> LocationClassifier:
    settings = get_settings()
    if settings.geocoder_backend == GeocoderBackend.NOMINATIM:
        return NominatimClassifier(
            urls=settings.nominatim_urls,
            timeout=settings.geocode_timeout_seconds,
            cache_size=settings.geocode_cache_size,
            water_filter=settings.water_filter_enabled,
        )
    return HeuristicClassifier(water_filter=settings.water_filter_enabled)


def get_clock() -> Clock:
    return now_ms


def client_key(request: Request) -> str:
    """Identify the caller for rate limiting.

    The first ``X-Forwarded-For`` entry wins, then the peer address.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_ingest_service(
    store: StateStore = Depends(get_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
    classifier: LocationClassifier = Depends(get_classifier),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> IngestService:
    return IngestService(store, limiter, classifier, settings, clock)


def get_stats_service(
    store: StateStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> StatsService:
    return StatsService(store, settings)
