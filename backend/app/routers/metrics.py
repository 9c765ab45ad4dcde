"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

from app.dependencies import get_clock, get_stats_service
from app.services import geo
from app.services.ingest import Clock
from app.services.stats import StatsService

router = APIRouter(tags=["metrics"])


async def collect_metrics(stats: StatsService, now_ms: int) -> bytes:
    """Collect all metrics and return Prometheus format."""
    registry = CollectorRegistry()

    revealed_cells = Gauge(
        "battlemap_revealed_cells_total",
        "Revealed cells (per the configured counting convention)",
        registry=registry,
    )
    pixels = Gauge(
        "battlemap_pixels_total",
        "Placed pixels (per the configured counting convention)",
        registry=registry,
    )
    online_players = Gauge(
        "battlemap_online_players",
        "Distinct players active in the recent window",
        ["activity"],
        registry=registry,
    )
    country_cells = Gauge(
        "battlemap_country_revealed_cells",
        "Revealed cells attributed to each country",
        ["country", "name"],
        registry=registry,
    )
    country_pixels = Gauge(
        "battlemap_country_pixels",
        "Pixels attributed to each country",
        ["country", "name"],
        registry=registry,
    )

    snapshot = await stats.get_metrics_snapshot(now_ms)

    revealed_cells.set(snapshot["revealed_cells"])
    pixels.set(snapshot["pixels"])
    online_players.labels(activity="reveal").set(snapshot["online_reveal_players"])
    online_players.labels(activity="pixels").set(snapshot["online_pixel_players"])

    for code, count in snapshot["country_cells"].items():
        country_cells.labels(country=code, name=geo.country_name(code)).set(count)
    for code, count in snapshot["country_pixels"].items():
        country_pixels.labels(country=code, name=geo.country_name(code)).set(count)

    return generate_latest(registry)


@router.get("/metrics", response_class=PlainTextResponse)
async def prometheus_metrics(
    stats: StatsService = Depends(get_stats_service),
    clock: Clock = Depends(get_clock),
) -> PlainTextResponse:
    """Prometheus metrics endpoint."""
    metrics_data = await collect_metrics(stats, clock())
    return PlainTextResponse(content=metrics_data, media_type=CONTENT_TYPE_LATEST)
