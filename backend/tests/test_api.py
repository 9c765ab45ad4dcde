"""End-to-end tests for the HTTP API."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import pytest_asyncio

from app.config import Settings, get_settings
from app.dependencies import get_classifier, get_clock, get_rate_limiter, get_store
from app.errors import StoreError
from app.main import app
from app.services.geocoder import HeuristicClassifier, LocationClassifier
from app.services.rate_limiter import RateLimiter
from app.store import MemoryStore

NOW = 1_700_000_000_000
CELLS = ["55.75,37.62", "40.71,-74.00", "0.5,0.5"]


class BrokenClassifier(LocationClassifier):
    async def locate(self, lat, lng):
        raise RuntimeError("classifier exploded")


class UnreachableStore(MemoryStore):
    """Reads fail the way a dropped connection would."""

    async def smembers(self, key):
        raise ConnectionError("store unreachable")

    async def hgetall(self, key):
        raise ConnectionError("store unreachable")

    async def hgetall_int(self, key):
        raise ConnectionError("store unreachable")


@pytest.fixture
def ctx():
    """Fresh store, limiter and clock for every test."""
    state = SimpleNamespace(
        store=MemoryStore(),
        limiter=RateLimiter(max_requests=3, window_seconds=60),
        settings=Settings(store_backend="memory", admin_key="s3cret"),
        classifier=HeuristicClassifier(),
    )
    app.dependency_overrides[get_store] = lambda: state.store
    app.dependency_overrides[get_rate_limiter] = lambda: state.limiter
    app.dependency_overrides[get_settings] = lambda: state.settings
    app.dependency_overrides[get_classifier] = lambda: state.classifier
    app.dependency_overrides[get_clock] = lambda: (lambda: NOW)
    yield state
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(ctx):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestRevealBatch:
    @pytest.mark.asyncio
    async def test_reveal_then_repeat(self, client):
        response = await client.post("/api/reveal-batch", json={"cells": CELLS, "playerId": "p1"})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["processed"] == 3
        assert body["totalRevealed"] == 3
        assert body["onlinePlayers"] == 1
        assert body["countries"] == {"RU": 1, "US": 1, "XX": 1}

        response = await client.post("/api/reveal-batch", json={"cells": CELLS, "playerId": "p1"})
        body = response.json()
        assert body["totalRevealed"] == 3
        assert "countries" not in body

        state = (await client.get("/api/state")).json()
        assert len(state["cells"]) == 3
        assert state["stats"]["totalCells"] == 3
        assert state["truncated"] is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload,error",
        [
            ({}, "Invalid cells data"),
            ({"cells": "55.75,37.62"}, "Invalid cells data"),
            ({"cells": []}, "Empty batch"),
            ({"cells": ["1,1"] * 51}, "Batch too large. Maximum 50 cells per batch"),
            ({"cells": ["nope", "99,0"]}, "No valid cells in batch"),
        ],
    )
    async def test_bad_batches(self, client, payload, error):
        response = await client.post("/api/reveal-batch", json=payload)
        assert response.status_code == 400
        assert response.json() == {"error": error}

    @pytest.mark.asyncio
    async def test_bad_player_id(self, client):
        response = await client.post(
            "/api/reveal-batch", json={"cells": CELLS, "playerId": "a:b"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request body"

    @pytest.mark.asyncio
    async def test_body_that_is_not_json(self, client):
        response = await client.post(
            "/api/reveal-batch", content=b"cells", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_rate_limit(self, client):
        for _ in range(3):
            response = await client.post("/api/reveal-batch", json={"cells": CELLS})
            assert response.status_code == 200

        response = await client.post("/api/reveal-batch", json={"cells": CELLS})
        assert response.status_code == 429
        body = response.json()
        assert body["error"] == "Rate limit exceeded"
        assert body["retryAfter"] > 0

    @pytest.mark.asyncio
    async def test_forwarded_clients_are_limited_separately(self, client):
        for _ in range(3):
            await client.post(
                "/api/reveal-batch", json={"cells": CELLS}, headers={"X-Forwarded-For": "9.9.9.9"}
            )

        blocked = await client.post(
            "/api/reveal-batch",
            json={"cells": CELLS},
            headers={"X-Forwarded-For": "9.9.9.9, 10.0.0.1"},
        )
        other = await client.post(
            "/api/reveal-batch", json={"cells": CELLS}, headers={"X-Forwarded-For": "8.8.8.8"}
        )
        assert blocked.status_code == 429
        assert other.status_code == 200

    @pytest.mark.asyncio
    async def test_wrong_method(self, client):
        response = await client.get("/api/reveal-batch")
        assert response.status_code == 405
        assert "error" in response.json()

    @pytest.mark.asyncio
    async def test_unexpected_failure_hides_details(self, client, ctx):
        ctx.classifier = BrokenClassifier()
        response = await client.post("/api/reveal-batch", json={"cells": CELLS})
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to process batch"}

    @pytest.mark.asyncio
    async def test_cors_preflight(self, client):
        response = await client.options(
            "/api/reveal-batch",
            headers={
                "Origin": "https://example.org",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "POST" in response.headers["access-control-allow-methods"]
        assert response.content == b""

    @pytest.mark.asyncio
    async def test_plain_options_request(self, client):
        response = await client.options("/api/pixels-batch")
        assert response.status_code == 200
        assert response.content == b""

    @pytest.mark.asyncio
    async def test_store_failure_during_batch(self, client, ctx):
        ctx.store.sadd = AsyncMock(side_effect=StoreError("State store unavailable"))
        response = await client.post("/api/reveal-batch", json={"cells": CELLS})
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to process batch"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "path", ["/api/state", "/api/pixels-state", "/api/leaderboard", "/metrics"]
    )
    async def test_store_failure_on_reads_is_json(self, client, ctx, path):
        ctx.store = UnreachableStore()
        response = await client.get(path)
        assert response.status_code == 500
        assert response.headers["content-type"] == "application/json"
        assert response.json() == {"error": "Internal server error"}

    @pytest.mark.asyncio
    async def test_store_failure_message_shown_in_debug(self, client, ctx):
        ctx.store = UnreachableStore()
        ctx.settings = Settings(store_backend="memory", debug=True)
        with patch("app.errors.get_settings", return_value=ctx.settings):
            response = await client.get("/api/state")
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error", "message": "store unreachable"}


class TestPixels:
    @pytest.mark.asyncio
    async def test_paint_and_read_back(self, client):
        response = await client.post(
            "/api/pixels-batch",
            json={
                "pixels": [
                    {"position": "55.75,37.62", "color": "#FF0000"},
                    {"position": "55.75,37.62", "color": "#0000ff"},
                    {"position": "bad", "color": "#0000ff"},
                ],
                "playerId": "painter",
            },
        )
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "processed": 2,
            "rejected": 1,
            "totalPixels": 2,
            "onlinePlayers": 1,
        }

        state = (await client.get("/api/pixels-state")).json()
        assert len(state["pixels"]) == 1
        assert state["pixels"][0]["color"] == "#0000ff"
        top_colors = state["stats"]["topColors"]
        assert {color["name"] for color in top_colors} == {"Red", "Blue"}
        assert all(color["countries"][0]["code"] == "RU" for color in top_colors)

    @pytest.mark.asyncio
    async def test_invalid_pixels(self, client):
        response = await client.post("/api/pixels-batch", json={"pixels": None})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid pixels data"}


class TestOtherEndpoints:
    @pytest.mark.asyncio
    async def test_leaderboard(self, client):
        await client.post("/api/reveal-batch", json={"cells": CELLS, "playerId": "p1"})
        board = (await client.get("/api/leaderboard")).json()
        assert board["players"] == [{"playerId": "p1", "cells": 3}]
        assert len(board["recentActivity"]) == 3

    @pytest.mark.asyncio
    async def test_geocode(self, client):
        response = await client.get("/api/geocode", params={"lat": 55.75, "lng": 37.62})
        assert response.status_code == 200
        assert response.json()["countryCode"] == "RU"

        response = await client.post("/api/geocode", json={"lat": 40.71, "lng": -74.0})
        assert response.json()["countryCode"] == "US"

    @pytest.mark.asyncio
    async def test_geocode_out_of_range(self, client):
        response = await client.get("/api/geocode", params={"lat": 100, "lng": 0})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid coordinates"}

    @pytest.mark.asyncio
    async def test_admin_reset(self, client, ctx):
        await client.post(
            "/api/pixels-batch", json={"pixels": [{"position": "1,1", "color": "#ff0000"}]}
        )

        response = await client.post("/api/admin/reset-pixels", json={"adminKey": "wrong"})
        assert response.status_code == 401

        response = await client.post("/api/admin/reset-pixels", json={"adminKey": "s3cret"})
        assert response.status_code == 200
        assert response.json()["deletedKeys"] > 0
        assert await ctx.store.hlen("pixels:map") == 0

    @pytest.mark.asyncio
    async def test_admin_disabled_without_key(self, client, ctx):
        ctx.settings = Settings(store_backend="memory", admin_key=None)
        response = await client.post("/api/admin/reset-pixels", json={"adminKey": "anything"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.json() == {"status": "healthy", "store": "ok"}

    @pytest.mark.asyncio
    async def test_metrics(self, client):
        await client.post("/api/reveal-batch", json={"cells": CELLS})
        response = await client.get("/metrics")
        assert response.status_code == 200
        assert "battlemap_revealed_cells_total 3.0" in response.text
        assert 'battlemap_country_revealed_cells{country="RU",name="Russia"} 1.0' in response.text

    @pytest.mark.asyncio
    async def test_root(self, client):
        body = (await client.get("/")).json()
        assert body["name"] == "BattleMap"
