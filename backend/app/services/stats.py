"""Aggregated game state read back from the store."""

import json
import logging

from app.config import CountMode, Settings
from app.constants import (
    COLOR_NAMES,
    OTHER_COLOR_NAME,
    PIXELS_COLORS_COUNT_KEY,
    PIXELS_COUNTRY_COLOR_KEY,
    PIXELS_COUNTRY_TOTAL_KEY,
    PIXELS_MAP_KEY,
    PIXELS_TIMELINE_KEY,
    PIXELS_TOTAL_KEY,
    RECENT_ACTIVITY,
    REVEALED_CELLS_KEY,
    REVEALED_COUNTRY_COUNT_KEY,
    REVEALED_PLAYERS_COUNT_KEY,
    REVEALED_TIMELINE_KEY,
    REVEALED_TOTAL_KEY,
    TOP_COLORS,
    TOP_COUNTRIES,
    TOP_COUNTRIES_PER_COLOR,
    TOP_PLAYERS,
    UNKNOWN_COUNTRY,
)
from app.services import geo
from app.store import StateStore

logger = logging.getLogger(__name__)


def player_from_member(member: str) -> str | None:
    """Player id of a timeline member (its second ``:``-separated part)."""
    parts = member.split(":")
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


def color_name(color: str) -> str:
    return COLOR_NAMES.get(color.lower(), OTHER_COLOR_NAME)


def _percentage(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)


def top_countries(counts: dict[str, int], limit: int = TOP_COUNTRIES) -> list[dict]:
    """Countries ranked by how much of their estimated area is revealed."""
    estimates = geo.estimated_cells()
    entries = []
    for code, cells in counts.items():
        if cells <= 0:
            continue
        total = 0 if code == UNKNOWN_COUNTRY else estimates.get(code, 0)
        entries.append(
            {
                "code": code,
                "name": geo.country_name(code),
                "flag": geo.country_flag(code),
                "cells": cells,
                "total": total,
                "percentage": _percentage(cells, total),
            }
        )
    entries.sort(key=lambda e: (e["percentage"], e["cells"]), reverse=True)
    return entries[:limit]


def top_colors(
    colors: dict[str, int],
    country_color: dict[str, int],
    country_total: dict[str, int],
    limit: int = TOP_COLORS,
    per_color: int = TOP_COUNTRIES_PER_COLOR,
) -> list[dict]:
    """Most used colours, each with the countries where it dominates most."""
    by_color: dict[str, list[tuple[str, int]]] = {}
    for composite, pixels in country_color.items():
        code, sep, color = composite.partition(":")
        if not sep or pixels <= 0:
            continue
        by_color.setdefault(color, []).append((code, pixels))

    ranked = sorted(
        ((color, total) for color, total in colors.items() if total > 0),
        key=lambda item: item[1],
        reverse=True,
    )[:limit]

    result = []
    for color, total in ranked:
        countries = []
        for code, pixels in by_color.get(color, []):
            percentage = _percentage(pixels, country_total.get(code, 0))
            countries.append(
                {
                    "code": code,
                    "name": geo.country_name(code),
                    "flag": geo.country_flag(code),
                    "pixels": pixels,
                    "percentage": percentage,
                    "percentageFormatted": f"{percentage:.1f}%",
                }
            )
        countries.sort(key=lambda c: (c["percentage"], c["pixels"]), reverse=True)
        result.append(
            {
                "color": color,
                "name": color_name(color),
                "totalPixels": total,
                "countries": countries[:per_color],
            }
        )
    return result


class StatsService:
    """Reads totals, per-country breakdowns and presence estimates."""

    def __init__(self, store: StateStore, settings: Settings):
        self.store = store
        self.settings = settings

    async def online_players(self, timeline_key: str, now_ms: int) -> int:
        """Distinct players with timeline entries in the last few minutes."""
        window_ms = self.settings.online_window_seconds * 1000
        members = await self.store.zrangebyscore(timeline_key, now_ms - window_ms, now_ms)
        players = {player for member in members if (player := player_from_member(member))}
        return max(len(players), self.settings.online_players_min)

    async def total_revealed(self) -> int:
        if self.settings.cell_count_mode == CountMode.EVENTS:
            return await self.store.get_int(REVEALED_TOTAL_KEY)
        return await self.store.scard(REVEALED_CELLS_KEY)

    async def total_pixels(self) -> int:
        if self.settings.pixel_count_mode == CountMode.EVENTS:
            return await self.store.get_int(PIXELS_TOTAL_KEY)
        return await self.store.hlen(PIXELS_MAP_KEY)

    def _truncate(self, items: list) -> tuple[list, bool]:
        limit = self.settings.state_max_items
        if len(items) > limit:
            return items[-limit:], True
        return items, False

    async def get_cells_state(self, now_ms: int) -> dict:
        cells, truncated = self._truncate(await self.store.smembers(REVEALED_CELLS_KEY))
        counts = await self.store.hgetall_int(REVEALED_COUNTRY_COUNT_KEY)
        return {
            "success": True,
            "cells": cells,
            "stats": {
                "totalCells": await self.total_revealed(),
                "onlinePlayers": await self.online_players(REVEALED_TIMELINE_KEY, now_ms),
                "topCountries": top_countries(counts),
            },
            "truncated": truncated,
        }

    async def get_pixels_state(self, now_ms: int) -> dict:
        raw = await self.store.hgetall(PIXELS_MAP_KEY)
        pixels = []
        for position, value in raw.items():
            try:
                pixels.append(json.loads(value))
            except ValueError:
                logger.debug(f"Skipping unreadable pixel record at {position}")
        pixels, truncated = self._truncate(pixels)

        colors = await self.store.hgetall_int(PIXELS_COLORS_COUNT_KEY)
        country_color = await self.store.hgetall_int(PIXELS_COUNTRY_COLOR_KEY)
        country_total = await self.store.hgetall_int(PIXELS_COUNTRY_TOTAL_KEY)
        return {
            "success": True,
            "pixels": pixels,
            "stats": {
                "totalPixels": await self.total_pixels(),
                "onlinePlayers": await self.online_players(PIXELS_TIMELINE_KEY, now_ms),
                "topColors": top_colors(colors, country_color, country_total),
            },
            "truncated": truncated,
        }

    async def get_leaderboard(self, now_ms: int) -> dict:
        counts = await self.store.hgetall_int(REVEALED_COUNTRY_COUNT_KEY)
        countries = sorted(
            ((code, cells) for code, cells in counts.items() if cells > 0),
            key=lambda item: item[1],
            reverse=True,
        )[:TOP_COUNTRIES]

        players = await self.store.hgetall_int(REVEALED_PLAYERS_COUNT_KEY)
        top_players = sorted(players.items(), key=lambda item: item[1], reverse=True)[:TOP_PLAYERS]

        recent = []
        for member, score in await self.store.zrevrange_withscores(REVEALED_TIMELINE_KEY, RECENT_ACTIVITY):
            cell_key, _, player = member.rpartition(":")
            recent.append({"cellKey": cell_key, "playerId": player, "timestamp": int(score)})

        return {
            "success": True,
            "totalCells": await self.total_revealed(),
            "onlinePlayers": await self.online_players(REVEALED_TIMELINE_KEY, now_ms),
            "countries": [
                {
                    "code": code,
                    "name": geo.country_name(code),
                    "flag": geo.country_flag(code),
                    "cells": cells,
                }
                for code, cells in countries
            ],
            "players": [{"playerId": player, "cells": cells} for player, cells in top_players],
            "recentActivity": recent,
        }

    async def get_metrics_snapshot(self, now_ms: int) -> dict:
        """Figures exported on the Prometheus endpoint."""
        return {
            "revealed_cells": await self.total_revealed(),
            "pixels": await self.total_pixels(),
            "online_reveal_players": await self.online_players(REVEALED_TIMELINE_KEY, now_ms),
            "online_pixel_players": await self.online_players(PIXELS_TIMELINE_KEY, now_ms),
            "country_cells": await self.store.hgetall_int(REVEALED_COUNTRY_COUNT_KEY),
            "country_pixels": await self.store.hgetall_int(PIXELS_COUNTRY_TOTAL_KEY),
        }
