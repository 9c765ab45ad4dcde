"""Rectangle-based country classification.

A coarse heuristic, not geodata: countries are approximated by axis-aligned
boxes evaluated in a fixed order, and the first matching box wins. Boxes
overlap on purpose (e.g. Scandinavia, the Baltics, Eastern Europe), so the
order of ``COUNTRY_RULES`` is part of the contract.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache

from app.constants import UNKNOWN_COUNTRY
from app.services.grid import cells_per_degree


@dataclass(frozen=True)
class Rect:
    """Open latitude/longitude box."""

    south: float
    north: float
    west: float
    east: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.south < lat < self.north and self.west < lng < self.east


Refine = Callable[[float, float], str | None]


@dataclass(frozen=True)
class CountryRule:
    """A box tagged with a country code.

    ``refine`` narrows a shared or irregular box: it returns the code to
    use, or None to let later rules try.
    """

    code: str
    rect: Rect
    refine: Refine | None = None

    def match(self, lat: float, lng: float) -> str | None:
        if not self.rect.contains(lat, lng):
            return None
        if self.refine is not None:
            return self.refine(lat, lng)
        return self.code


@dataclass(frozen=True)
class WaterRule:
    """A box of open water, optionally narrowed by ``refine``."""

    name: str
    rect: Rect
    refine: Callable[[float, float], bool] | None = None

    def match(self, lat: float, lng: float) -> bool:
        if not self.rect.contains(lat, lng):
            return False
        return self.refine(lat, lng) if self.refine is not None else True


def _norway(lat: float, lng: float) -> str | None:
    # Eastern part of the box is Finland/Russia except in the far north
    return "NO" if lng < 25 or lat > 68 else None


def _baltics(lat: float, lng: float) -> str | None:
    if lat < 56:
        return "LT"
    if lat < 58:
        return "LV"
    return "EE"


def _united_states(lat: float, lng: float) -> str | None:
    if lat > 51 and lng < -130:
        return "US"  # Alaska
    if lat < 50:
        return "US"
    return None


# ---------------------------------------------------------------------------
# Canonical rule table (order matters)
# ---------------------------------------------------------------------------

COUNTRY_RULES: tuple[CountryRule, ...] = (
    # ---- Europe ----
    CountryRule("NO", Rect(57, 72, 4, 32), _norway),
    CountryRule("SE", Rect(55, 70, 11, 24)),
    CountryRule("FI", Rect(59, 71, 20, 32)),
    CountryRule("DK", Rect(54, 58, 8, 13)),
    CountryRule("IS", Rect(63, 67, -25, -13)),
    CountryRule("GB", Rect(49, 61, -11, 2)),
    CountryRule("IE", Rect(51, 55.5, -11, -5.5)),
    CountryRule("FR", Rect(41, 51.5, -5, 9.5)),
    CountryRule("DE", Rect(47, 55.5, 5.5, 15.5)),
    CountryRule("PL", Rect(49, 55, 14, 25)),
    CountryRule("IT", Rect(35, 47.5, 6, 19)),
    CountryRule("ES", Rect(35.5, 44, -10, 4.5)),
    CountryRule("PT", Rect(36.5, 42.5, -10, -6)),
    CountryRule("NL", Rect(50.5, 53.5, 3.5, 7.5)),
    CountryRule("BE", Rect(49.5, 51.5, 2.5, 6.5)),
    CountryRule("CH", Rect(45.5, 48, 5.5, 10.5)),
    CountryRule("AT", Rect(46.5, 49, 9.5, 17)),
    CountryRule("CZ", Rect(48.5, 51, 12, 19)),
    CountryRule("UA", Rect(44, 52.5, 22, 40)),
    CountryRule("BY", Rect(51, 56.5, 23, 33)),
    CountryRule("LT", Rect(53.5, 59.5, 20, 29), _baltics),
    CountryRule("GR", Rect(34.5, 42, 19, 29)),
    CountryRule("TR", Rect(35.5, 42.5, 25.5, 45)),
    # ---- Russia (mainland, then Chukotka across the antimeridian) ----
    CountryRule("RU", Rect(41, 82, 27, 180)),
    CountryRule("RU", Rect(41, 82, -180, -168)),
    # ---- North America ----
    CountryRule("CA", Rect(41.5, 84, -141, -52)),
    CountryRule("US", Rect(24, 72, -172, -66), _united_states),
    CountryRule("MX", Rect(14, 33, -118, -86)),
    # ---- South America ----
    CountryRule("BR", Rect(-34, 6, -74, -34)),
    CountryRule("AR", Rect(-56, -21, -74, -53)),
    CountryRule("CL", Rect(-56, -17, -76, -66)),
    CountryRule("PE", Rect(-19, 0, -82, -68)),
    CountryRule("CO", Rect(-5, 14, -80, -66)),
    CountryRule("VE", Rect(0, 13, -74, -59)),
    # ---- Asia ----
    CountryRule("CN", Rect(18, 54, 73, 135)),
    CountryRule("IN", Rect(6, 36, 68, 98)),
    CountryRule("JP", Rect(24, 46, 123, 146)),
    CountryRule("KR", Rect(33, 39, 124, 131)),
    CountryRule("ID", Rect(-11, 6, 95, 141)),
    CountryRule("TH", Rect(5, 21, 97, 106)),
    CountryRule("VN", Rect(8, 24, 102, 110)),
    CountryRule("KZ", Rect(40, 56, 46, 88)),
    CountryRule("MN", Rect(41, 52, 87, 120)),
    CountryRule("IR", Rect(25, 40, 44, 64)),
    CountryRule("SA", Rect(16, 33, 34, 56)),
    # ---- Africa ----
    CountryRule("EG", Rect(22, 32, 24, 37)),
    CountryRule("ZA", Rect(-35, -22, 16, 33)),
    CountryRule("NG", Rect(4, 14, 2, 15)),
    CountryRule("KE", Rect(-5, 5, 33, 42)),
    CountryRule("DZ", Rect(18, 38, -9, 12)),
    # ---- Oceania ----
    CountryRule("AU", Rect(-44, -10, 112, 154)),
    CountryRule("NZ", Rect(-48, -34, 166, 179)),
)


# Bounds of 181/91 make the open boxes reach the antimeridian and the poles
WATER_RULES: tuple[WaterRule, ...] = (
    WaterRule("Pacific Ocean", Rect(-40, 40, 160, 181)),
    WaterRule("Pacific Ocean", Rect(-40, 40, -181, -140)),
    # Central Atlantic, leaving the coastal belt between 20N and 40N alone
    WaterRule("Atlantic Ocean", Rect(-40, 50, -50, -20), lambda lat, lng: lat < 20 or lat > 40),
    WaterRule("Indian Ocean", Rect(-40, 0, 50, 100)),
    WaterRule("Arctic Ocean", Rect(80, 91, -181, 181)),
    WaterRule("Southern Ocean", Rect(-91, -65, -181, 181)),
)


COUNTRY_NAMES: dict[str, str] = {
    "RU": "Russia",
    "US": "United States",
    "CA": "Canada",
    "BR": "Brazil",
    "CN": "China",
    "AU": "Australia",
    "IN": "India",
    "FR": "France",
    "DE": "Germany",
    "IT": "Italy",
    "ES": "Spain",
    "GB": "United Kingdom",
    "JP": "Japan",
    "MX": "Mexico",
    "AR": "Argentina",
    "NO": "Norway",
    "SE": "Sweden",
    "FI": "Finland",
    "DK": "Denmark",
    "IS": "Iceland",
    "IE": "Ireland",
    "PL": "Poland",
    "PT": "Portugal",
    "NL": "Netherlands",
    "BE": "Belgium",
    "CH": "Switzerland",
    "AT": "Austria",
    "CZ": "Czechia",
    "UA": "Ukraine",
    "BY": "Belarus",
    "LT": "Lithuania",
    "LV": "Latvia",
    "EE": "Estonia",
    "GR": "Greece",
    "TR": "Turkey",
    "CL": "Chile",
    "PE": "Peru",
    "CO": "Colombia",
    "VE": "Venezuela",
    "KR": "South Korea",
    "ID": "Indonesia",
    "TH": "Thailand",
    "VN": "Vietnam",
    "KZ": "Kazakhstan",
    "MN": "Mongolia",
    "IR": "Iran",
    "SA": "Saudi Arabia",
    "EG": "Egypt",
    "ZA": "South Africa",
    "NG": "Nigeria",
    "KE": "Kenya",
    "DZ": "Algeria",
    "NZ": "New Zealand",
    UNKNOWN_COUNTRY: "Unknown",
}


def classify(lat: float, lng: float) -> str:
    """Return the country code for a point, or ``XX`` when no rule matches."""
    for rule in COUNTRY_RULES:
        code = rule.match(lat, lng)
        if code is not None:
            return code
    return UNKNOWN_COUNTRY


def water_body(lat: float, lng: float) -> str | None:
    """Name of the open-water body containing the point, if any."""
    for rule in WATER_RULES:
        if rule.match(lat, lng):
            return rule.name
    return None


def is_water(lat: float, lng: float) -> bool:
    return water_body(lat, lng) is not None


def country_name(code: str) -> str:
    return COUNTRY_NAMES.get(code, code)


def country_flag(code: str) -> str:
    """Regional-indicator flag emoji for a two-letter code."""
    if code == UNKNOWN_COUNTRY or len(code) != 2 or not code.isalpha():
        return "\U0001f3f3"
    return "".join(chr(0x1F1E6 + ord(ch) - ord("A")) for ch in code.upper())


@lru_cache(maxsize=1)
def estimated_cells() -> dict[str, int]:
    """Approximate number of grid cells attributed to each country.

    Samples the rule table at the centre of every 1x1 degree square and
    weights each hit by the number of cells such a square holds at its
    latitude. Computed once per process.
    """
    totals: dict[str, float] = {}
    for lat_floor in range(-90, 90):
        lat = lat_floor + 0.5
        weight = cells_per_degree(lat)
        for lng_floor in range(-180, 180):
            code = classify(lat, lng_floor + 0.5)
            if code != UNKNOWN_COUNTRY:
                totals[code] = totals.get(code, 0.0) + weight
    return {code: max(1, round(total)) for code, total in totals.items()}
