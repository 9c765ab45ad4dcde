"""Batch validation for reveal and pixel batches.

Request-level problems (missing, empty or oversized batches) raise
``BatchValidationError``. Item-level problems only drop the item.
"""

import math
from dataclasses import dataclass, field
from typing import Any

from app.constants import DEFAULT_PIXEL_OPACITY
from app.errors import BatchValidationError
from app.services.grid import GridCell, snap


@dataclass(frozen=True)
class CellItem:
    """An accepted reveal, snapped to its grid cell."""

    cell: GridCell

    @property
    def key(self) -> str:
        return self.cell.key


@dataclass(frozen=True)
class PixelItem:
    """An accepted pixel placement, snapped to its grid cell."""

    cell: GridCell
    color: str
    opacity: float

    @property
    def key(self) -> str:
        return self.cell.key


@dataclass
class ValidatedBatch:
    accepted: list = field(default_factory=list)
    rejected: list = field(default_factory=list)

    @property
    def submitted(self) -> int:
        return len(self.accepted) + len(self.rejected)


def parse_coordinates(value: Any) -> tuple[float, float] | None:
    """Parse ``"lat,lng"`` into floats, or None when malformed or out of range."""
    if not isinstance(value, str):
        return None
    parts = value.split(",")
    if len(parts) != 2:
        return None
    try:
        lat = float(parts[0])
        lng = float(parts[1])
    except ValueError:
        return None
    if not valid_coordinates(lat, lng):
        return None
    return lat, lng


def valid_coordinates(lat: float, lng: float) -> bool:
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


def _check_batch(items: Any, noun: str, max_batch: int) -> list:
    if items is None or not isinstance(items, list):
        raise BatchValidationError(f"Invalid {noun} data")
    if not items:
        raise BatchValidationError("Empty batch")
    if len(items) > max_batch:
        raise BatchValidationError(f"Batch too large. Maximum {max_batch} {noun} per batch")
    return items


def check_cell_batch(items: Any, max_batch: int) -> list:
    """Request-level checks for a reveal batch."""
    return _check_batch(items, "cells", max_batch)


def check_pixel_batch(items: Any, max_batch: int) -> list:
    """Request-level checks for a pixel batch."""
    return _check_batch(items, "pixels", max_batch)


def validate_cells(items: list) -> ValidatedBatch:
    """Filter reveal items. Repeats of one cell are kept, in submission order."""
    batch = ValidatedBatch()
    for item in items:
        coords = parse_coordinates(item)
        if coords is None:
            batch.rejected.append(item)
            continue
        batch.accepted.append(CellItem(cell=snap(*coords)))

    if not batch.accepted:
        raise BatchValidationError("No valid cells in batch")
    return batch


def _parse_opacity(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return DEFAULT_PIXEL_OPACITY
    try:
        opacity = float(value)
    except (TypeError, ValueError):
        return DEFAULT_PIXEL_OPACITY
    if not math.isfinite(opacity) or opacity <= 0:
        return DEFAULT_PIXEL_OPACITY
    return min(opacity, 1.0)


def validate_pixels(items: list) -> ValidatedBatch:
    """Filter pixel items, keeping submission order.

    Repeated placements on one cell are all accepted; the ingest step
    applies them in order so the last one is the stored record.
    """
    batch = ValidatedBatch()
    for item in items:
        if not isinstance(item, dict):
            batch.rejected.append(item)
            continue
        position = item.get("position")
        color = item.get("color")
        if isinstance(color, str):
            color = color.strip().lower()
        if not position or not color or not isinstance(color, str):
            batch.rejected.append(item)
            continue
        coords = parse_coordinates(position)
        if coords is None:
            batch.rejected.append(item)
            continue
        pixel = PixelItem(
            cell=snap(*coords),
            color=color,
            opacity=_parse_opacity(item.get("opacity")),
        )
        batch.accepted.append(pixel)

    if not batch.accepted:
        raise BatchValidationError("No valid pixels in batch")
    return batch
