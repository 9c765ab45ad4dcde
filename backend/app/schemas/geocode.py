"""Schemas for point classification."""

from pydantic import BaseModel


class GeocodeRequest(BaseModel):
    lat: float
    lng: float


class GeocodeResponse(BaseModel):
    """Land/water classification of a single point."""

    lat: float
    lng: float
    type: str
    countryCode: str | None
    name: str | None
    source: str
