"""Schemas for reveal and pixel batches."""

from typing import Any

from pydantic import BaseModel, Field, field_validator

PLAYER_ID_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"


class BatchRequest(BaseModel):
    """Fields shared by both batch endpoints."""

    playerId: str | None = Field(default=None, pattern=PLAYER_ID_PATTERN)
    timestamp: float | None = Field(default=None, description="Client clock, informational only")

    @field_validator("playerId", mode="before")
    @classmethod
    def blank_player_is_anonymous(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class RevealBatchRequest(BatchRequest):
    """Request schema for a batch of revealed cells.

    ``cells`` is deliberately untyped so shape problems surface as the
    game's own 400 messages rather than generic schema errors.
    """

    cells: Any = None


class PixelBatchRequest(BatchRequest):
    """Request schema for a batch of pixel placements."""

    pixels: Any = None


class RevealBatchResponse(BaseModel):
    success: bool = True
    processed: int
    rejected: int
    totalRevealed: int
    onlinePlayers: int
    water: int | None = None
    countries: dict[str, int] | None = None


class PixelBatchResponse(BaseModel):
    success: bool = True
    processed: int
    rejected: int
    totalPixels: int
    onlinePlayers: int
