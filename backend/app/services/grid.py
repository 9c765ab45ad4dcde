"""Grid quantization for revealed cells and pixels.

Cells are 10 km tall. The longitude step widens towards the poles and is
derived from the cell's row (its floored latitude), so every point inside
a cell maps to the same key. Snapping carries a small tolerance so that a
key formatted to 4 decimals snaps back to itself.
"""

import math
from dataclasses import dataclass

from app.constants import CELL_SIZE_KM, KM_PER_DEGREE_LAT, KM_PER_DEGREE_LNG_EQUATOR

STEP_LAT = CELL_SIZE_KM / KM_PER_DEGREE_LAT
STEP_LNG_EQUATOR = CELL_SIZE_KM / KM_PER_DEGREE_LNG_EQUATOR
SNAP_TOLERANCE = 1e-3  # fraction of a step
MIN_COS_LAT = 0.01
KEY_PRECISION = 4


@dataclass(frozen=True)
class GridCell:
    """South-west corner of a grid cell and its string key."""

    lat: float
    lng: float

    @property
    def key(self) -> str:
        return format_key(self.lat, self.lng)


def format_key(lat: float, lng: float) -> str:
    # + 0.0 turns -0.0 into 0.0
    return f"{lat + 0.0:.{KEY_PRECISION}f},{lng + 0.0:.{KEY_PRECISION}f}"


def row_index(lat: float) -> int:
    return math.floor(lat / STEP_LAT + SNAP_TOLERANCE)


def lng_step(row: int) -> float:
    """Longitude width of cells in the given row."""
    row_lat = row * STEP_LAT
    return STEP_LNG_EQUATOR / max(math.cos(math.radians(row_lat)), MIN_COS_LAT)


def snap(lat: float, lng: float) -> GridCell:
    """Floor a point to the cell that contains it."""
    row = row_index(lat)
    step = lng_step(row)
    col = math.floor(lng / step + SNAP_TOLERANCE)
    grid_lat = min(max(row * STEP_LAT, -90.0), 90.0)
    grid_lng = min(max(col * step, -180.0), 180.0)
    return GridCell(lat=grid_lat, lng=grid_lng)


def grid_key(lat: float, lng: float) -> str:
    """Key of the cell containing (lat, lng)."""
    return snap(lat, lng).key


def cells_per_degree(lat: float) -> float:
    """Approximate number of grid cells covering one square degree at a latitude."""
    return (1.0 / STEP_LAT) * (1.0 / lng_step(row_index(lat)))
