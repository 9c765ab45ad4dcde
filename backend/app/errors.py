"""Error taxonomy for the game API and its HTTP mapping."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings

logger = logging.getLogger(__name__)


class BattleMapError(Exception):
    """Base class for errors reported to clients."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class BatchValidationError(BattleMapError):
    """Malformed, empty or oversized batch, or no valid items after filtering."""

    status_code = 400


class InvalidCoordinatesError(BattleMapError):
    """Coordinates outside the valid latitude/longitude range."""

    status_code = 400


class RateLimitExceeded(BattleMapError):
    """Client exceeded its batch request budget for the current window."""

    status_code = 429

    def __init__(self, retry_after: int):
        super().__init__("Rate limit exceeded")
        self.retry_after = retry_after

    def to_dict(self) -> dict:
        return {"error": self.message, "retryAfter": self.retry_after}


class StoreError(BattleMapError):
    """The state store failed to serve a request."""

    status_code = 500


def internal_error_body(error_message: str, exc: Exception) -> dict:
    """Build a 500 body; the exception text is only exposed in debug mode."""
    body = {"error": error_message}
    if get_settings().debug:
        body["message"] = str(exc)
    return body


async def battlemap_error_handler(request: Request, exc: BattleMapError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=exc.status_code,
            content=internal_error_body("Internal server error", exc),
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report body schema errors as 400 like the rest of the input errors."""
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "details": jsonable_errors(exc)},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Reduce pydantic error entries to location and message."""
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


async def json_server_errors(request: Request, call_next):
    """Turn any unhandled exception into a JSON 500."""
    try:
        return await call_next(request)
    except Exception as e:
        logger.exception(f"{request.method} {request.url.path} failed")
        return JSONResponse(status_code=500, content=internal_error_body("Internal server error", e))


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the JSON error handlers to the application."""
    app.middleware("http")(json_server_errors)
    app.add_exception_handler(BattleMapError, battlemap_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
