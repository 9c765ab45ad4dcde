"""Batch ingestion for revealed cells and painted pixels.

A batch moves through request checks, the rate limiter, item
validation, per-item persistence (classification, counters, timeline),
timeline pruning and finally the response. Distinct cells of one batch
are written concurrently; repeats of a cell and the writes for a single
item are applied in submission order.
A batch is not a transaction: a failure part-way leaves the items that
were already written in place.
"""

import asyncio
import json
import logging
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass

from app.config import CountMode, Settings
from app.constants import (
    ANONYMOUS_PLAYER,
    PIXELS_COLORS_COUNT_KEY,
    PIXELS_COUNTRY_COLOR_KEY,
    PIXELS_COUNTRY_TOTAL_KEY,
    PIXELS_MAP_KEY,
    PIXELS_PLAYERS_COUNT_KEY,
    PIXELS_TIMELINE_KEY,
    PIXELS_TOTAL_KEY,
    REVEALED_CELLS_KEY,
    REVEALED_COUNTRY_COUNT_KEY,
    REVEALED_PLAYERS_COUNT_KEY,
    REVEALED_TIMELINE_KEY,
    REVEALED_TOTAL_KEY,
)
from app.errors import RateLimitExceeded
from app.schemas.batch import PixelBatchResponse, RevealBatchResponse
from app.services.geocoder import Location, LocationClassifier
from app.services.rate_limiter import RateLimiter
from app.services.stats import StatsService
from app.services.validation import (
    CellItem,
    PixelItem,
    check_cell_batch,
    check_pixel_batch,
    validate_cells,
    validate_pixels,
)
from app.store import StateStore

logger = logging.getLogger(__name__)

# Timeline members carry this in place of a country for open-water pixels
WATER_MARKER = "water"

Clock = Callable[[], int]


def now_ms() -> int:
    """Current epoch time in milliseconds."""
    return int(time.time() * 1000)


@dataclass
class PixelWrite:
    """Outcome of persisting one pixel."""

    location: Location
    replaced: bool


class IngestService:
    """Applies validated batches to the state store."""

    def __init__(
        self,
        store: StateStore,
        limiter: RateLimiter,
        classifier: LocationClassifier,
        settings: Settings,
        clock: Clock = now_ms,
    ):
        self.store = store
        self.limiter = limiter
        self.classifier = classifier
        self.settings = settings
        self.clock = clock
        self.stats = StatsService(store, settings)

    def _check_rate(self, client_key: str, now: int) -> None:
        decision = self.limiter.allow(client_key, now)
        if not decision.allowed:
            logger.warning(f"Rate limit exceeded for {client_key}, retry in {decision.retry_after}s")
            raise RateLimitExceeded(decision.retry_after)

    async def _prune(self, timeline_key: str, now: int, retention_seconds: int) -> None:
        # Scores are whole milliseconds, so "< cutoff" is "<= cutoff - 1"
        cutoff = now - retention_seconds * 1000
        removed = await self.store.zremrangebyscore(timeline_key, float("-inf"), cutoff - 1)
        if removed:
            logger.debug(f"Pruned {removed} entries from {timeline_key}")

    async def _apply(self, items: list, write, player: str, now: int) -> list:
        """Run ``write`` for every item and return the results in item order."""

        async def write_group(group: list) -> list:
            return [await write(item, player, now) for item in group]

        groups = await asyncio.gather(
            *(write_group(group) for group in group_by_key(items).values())
        )
        return [result for group in groups for result in group]

    async def _read_total(self, reader) -> int:
        try:
            return await reader()
        except Exception as e:
            logger.warning(f"Could not read fresh total, reporting 0: {e}")
            return 0

    # ---- cells ----

    async def _reveal_cell(self, item: CellItem, player: str, now: int) -> Location | None:
        """Persist one cell; return its location when it was counted."""
        is_new = await self.store.sadd(REVEALED_CELLS_KEY, item.key) == 1
        location = None
        if is_new or self.settings.cell_count_mode == CountMode.EVENTS:
            if self.settings.cell_count_mode == CountMode.EVENTS:
                await self.store.incrby(REVEALED_TOTAL_KEY)
            location = await self.classifier.locate(item.cell.lat, item.cell.lng)
            if not location.is_water:
                await self.store.hincrby(REVEALED_COUNTRY_COUNT_KEY, location.country_code)
            await self.store.hincrby(REVEALED_PLAYERS_COUNT_KEY, player)
        await self.store.zadd(REVEALED_TIMELINE_KEY, f"{item.key}:{player}", now)
        return location

    async def reveal_batch(
        self, cells, player_id: str | None, client_key: str
    ) -> RevealBatchResponse:
        items = check_cell_batch(cells, self.settings.max_batch_size)
        now = self.clock()
        self._check_rate(client_key, now)
        batch = validate_cells(items)
        player = player_id or ANONYMOUS_PLAYER

        locations = await self._apply(batch.accepted, self._reveal_cell, player, now)
        await self._prune(
            REVEALED_TIMELINE_KEY, now, self.settings.cell_timeline_retention_seconds
        )

        counted = [location for location in locations if location is not None]
        countries = Counter(loc.country_code for loc in counted if not loc.is_water)
        water = sum(1 for loc in counted if loc.is_water)

        total = await self._read_total(self.stats.total_revealed)
        online = await self.stats.online_players(REVEALED_TIMELINE_KEY, now)
        logger.info(
            f"Batch processed: {len(batch.accepted)} cells from {client_key}, total: {total}"
        )
        return RevealBatchResponse(
            processed=len(batch.accepted),
            rejected=len(batch.rejected),
            totalRevealed=total,
            onlinePlayers=online,
            water=water if counted else None,
            countries=dict(countries) if counted else None,
        )

    # ---- pixels ----

    async def _count_pixel(self, country: str | None, color: str, amount: int) -> None:
        await self.store.hincrby(PIXELS_COLORS_COUNT_KEY, color, amount)
        if country is not None:
            await self.store.hincrby(PIXELS_COUNTRY_COLOR_KEY, f"{country}:{color}", amount)

    async def _place_pixel(self, item: PixelItem, player: str, now: int) -> PixelWrite:
        location = await self.classifier.locate(item.cell.lat, item.cell.lng)
        country = None if location.is_water else location.country_code

        previous_raw = await self.store.hget(PIXELS_MAP_KEY, item.key)
        record = {
            "position": item.key,
            "color": item.color,
            "opacity": item.opacity,
            "playerId": player,
            "country": country,
            "timestamp": now,
        }
        await self.store.hset(PIXELS_MAP_KEY, item.key, json.dumps(record))

        if self.settings.pixel_count_mode == CountMode.EVENTS:
            await self.store.incrby(PIXELS_TOTAL_KEY)
            await self._count_pixel(country, item.color, 1)
            if country is not None:
                await self.store.hincrby(PIXELS_COUNTRY_TOTAL_KEY, country)
            await self.store.hincrby(PIXELS_PLAYERS_COUNT_KEY, player)
        else:
            previous = _load_record(previous_raw)
            if previous is None:
                await self._count_pixel(country, item.color, 1)
                if country is not None:
                    await self.store.hincrby(PIXELS_COUNTRY_TOTAL_KEY, country)
                await self.store.hincrby(PIXELS_PLAYERS_COUNT_KEY, player)
            else:
                old_country = previous.get("country")
                old_color = previous.get("color")
                if old_color and (old_color, old_country) != (item.color, country):
                    await self._count_pixel(old_country, old_color, -1)
                    await self._count_pixel(country, item.color, 1)
                if old_country != country:
                    if old_country is not None:
                        await self.store.hincrby(PIXELS_COUNTRY_TOTAL_KEY, old_country, -1)
                    if country is not None:
                        await self.store.hincrby(PIXELS_COUNTRY_TOTAL_KEY, country)

        member = f"{item.key}:{player}:{item.color}:{country or WATER_MARKER}"
        await self.store.zadd(PIXELS_TIMELINE_KEY, member, now)
        return PixelWrite(location=location, replaced=previous_raw is not None)

    async def pixels_batch(
        self, pixels, player_id: str | None, client_key: str
    ) -> PixelBatchResponse:
        items = check_pixel_batch(pixels, self.settings.max_batch_size)
        now = self.clock()
        self._check_rate(client_key, now)
        batch = validate_pixels(items)
        player = player_id or ANONYMOUS_PLAYER

        writes = await self._apply(batch.accepted, self._place_pixel, player, now)
        await self._prune(
            PIXELS_TIMELINE_KEY, now, self.settings.pixel_timeline_retention_seconds
        )

        total = await self._read_total(self.stats.total_pixels)
        online = await self.stats.online_players(PIXELS_TIMELINE_KEY, now)
        replaced = sum(1 for write in writes if write.replaced)
        logger.info(
            f"Batch processed: {len(batch.accepted)} pixels ({replaced} repainted) "
            f"from {client_key}, total: {total}"
        )
        return PixelBatchResponse(
            processed=len(batch.accepted),
            rejected=len(batch.rejected),
            totalPixels=total,
            onlinePlayers=online,
        )


def group_by_key(items: list) -> dict[str, list]:
    """Items per grid key, each list in submission order."""
    groups: dict[str, list] = {}
    for item in items:
        groups.setdefault(item.key, []).append(item)
    return groups


def _load_record(raw: str | None) -> dict | None:
    if raw is None:
        return None
    try:
        record = json.loads(raw)
    except ValueError:
        return None
    return record if isinstance(record, dict) else None
