"""Point classification endpoints."""

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_classifier
from app.errors import InvalidCoordinatesError
from app.schemas.geocode import GeocodeRequest, GeocodeResponse
from app.services.geocoder import LocationClassifier
from app.services.validation import valid_coordinates

router = APIRouter(prefix="/api", tags=["geocode"])


async def _locate(lat: float, lng: float, classifier: LocationClassifier) -> GeocodeResponse:
    if not valid_coordinates(lat, lng):
        raise InvalidCoordinatesError("Invalid coordinates")
    location = await classifier.locate(lat, lng)
    return GeocodeResponse(
        lat=lat,
        lng=lng,
        type=location.type,
        countryCode=location.country_code,
        name=location.name,
        source=location.source,
    )


@router.get("/geocode", response_model=GeocodeResponse)
async def geocode(
    lat: float = Query(...),
    lng: float = Query(...),
    classifier: LocationClassifier = Depends(get_classifier),
) -> GeocodeResponse:
    return await _locate(lat, lng, classifier)


@router.post("/geocode", response_model=GeocodeResponse)
async def geocode_post(
    body: GeocodeRequest,
    classifier: LocationClassifier = Depends(get_classifier),
) -> GeocodeResponse:
    return await _locate(body.lat, body.lng, classifier)
