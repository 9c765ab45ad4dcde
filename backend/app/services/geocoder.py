"""Location classifiers used for country attribution.

``HeuristicClassifier`` answers locally from the rectangle table.
``NominatimClassifier`` asks an OpenStreetMap Nominatim server and falls
back to the heuristic whenever the lookup fails or times out, so batch
ingestion never depends on the network.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, replace

import httpx

from app.constants import UNKNOWN_COUNTRY
from app.services import geo

logger = logging.getLogger(__name__)

LAND = "land"
WATER = "water"

_WATER_ADDRESS_TYPES = {"water", "ocean", "sea"}
_WATER_TYPES = {"water", "coastline", "bay", "strait"}
_WATER_PLACES = {"ocean", "sea"}
_WATER_KINDS = {"lake", "river", "sea"}


@dataclass(frozen=True)
class Location:
    """Result of classifying a point."""

    type: str  # "land" or "water"
    country_code: str | None
    name: str | None = None
    source: str = "heuristic"

    @property
    def is_water(self) -> bool:
        return self.type == WATER


class LocationClassifier(ABC):
    """Maps a coordinate to land/water and a country code."""

    @abstractmethod
    async def locate(self, lat: float, lng: float) -> Location:
        """Classify a point that is already known to be in range."""

    async def close(self) -> None:
        """Release network resources, if any."""


class HeuristicClassifier(LocationClassifier):
    """Rectangle table, optionally preceded by the coarse ocean check."""

    def __init__(self, water_filter: bool = False):
        self.water_filter = water_filter

    def locate_sync(self, lat: float, lng: float) -> Location:
        if self.water_filter:
            body = geo.water_body(lat, lng)
            if body is not None:
                return Location(type=WATER, country_code=None, name=body)
        code = geo.classify(lat, lng)
        return Location(type=LAND, country_code=code, name=geo.country_name(code))

    async def locate(self, lat: float, lng: float) -> Location:
        return self.locate_sync(lat, lng)


def location_from_osm(data: dict) -> Location:
    """Interpret a Nominatim reverse-geocoding payload."""
    extratags = data.get("extratags") or {}
    address = data.get("address") or {}

    water = (
        data.get("addresstype") in _WATER_ADDRESS_TYPES
        or data.get("type") in _WATER_TYPES
        or extratags.get("natural") == "water"
        or extratags.get("water") in _WATER_KINDS
        or extratags.get("place") in _WATER_PLACES
    )
    iso = (address.get("country_code") or "").upper()
    if water:
        return Location(type=WATER, country_code=None, name=data.get("display_name"), source="nominatim")
    code = iso if len(iso) == 2 and iso.isalpha() else UNKNOWN_COUNTRY
    return Location(
        type=LAND,
        country_code=code,
        name=address.get("country") or geo.country_name(code),
        source="nominatim",
    )


class NominatimClassifier(LocationClassifier):
    """Reverse geocoding with a bounded cache and a local fallback."""

    def __init__(
        self,
        urls: list[str],
        timeout: float = 3.0,
        cache_size: int = 10000,
        water_filter: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.urls = urls
        self.timeout = timeout
        self.cache_size = cache_size
        self.fallback = HeuristicClassifier(water_filter=water_filter)
        self._cache: OrderedDict[str, Location] = OrderedDict()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @staticmethod
    def cache_key(lat: float, lng: float) -> str:
        # Two decimals is roughly 1 km
        return f"{lat:.2f},{lng:.2f}"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"User-Agent": "BattleMap/1.0", "Accept-Language": "en"},
            )
        return self._client

    def _remember(self, key: str, location: Location) -> None:
        if len(self._cache) >= self.cache_size:
            # Drop the oldest quarter in one go
            for _ in range(max(1, self.cache_size // 4)):
                self._cache.popitem(last=False)
        self._cache[key] = location

    async def _query(self, lat: float, lng: float) -> dict | None:
        client = self._get_client()
        params = {
            "lat": lat,
            "lon": lng,
            "format": "json",
            "zoom": 10,
            "extratags": 1,
            "addressdetails": 1,
        }
        for url in self.urls:
            try:
                response = await client.get(f"{url}/reverse", params=params)
                if response.status_code == 200:
                    data = response.json()
                    if isinstance(data, dict) and "error" not in data:
                        return data
                logger.debug(f"Nominatim {url} answered {response.status_code}")
            except (httpx.HTTPError, ValueError) as e:
                logger.debug(f"Nominatim {url} failed: {e}")
        return None

    async def locate(self, lat: float, lng: float) -> Location:
        key = self.cache_key(lat, lng)
        cached = self._cache.get(key)
        if cached is not None:
            return replace(cached, source="cache")

        # Open ocean needs no network round trip
        if self.fallback.water_filter and geo.is_water(lat, lng):
            return self.fallback.locate_sync(lat, lng)

        try:
            data = await asyncio.wait_for(self._query(lat, lng), timeout=self.timeout)
        except TimeoutError:
            logger.warning(f"Reverse geocoding timed out for {key}, using heuristic")
            data = None

        if data is None:
            return self.fallback.locate_sync(lat, lng)

        location = location_from_osm(data)
        self._remember(key, location)
        return location

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
