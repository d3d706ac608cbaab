"""Tests for the read-only sessions API."""

import httpx
import pytest
from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from game_queue.api.errors import app_error_handler
from game_queue.api.v1.routers.session import router
from game_queue.domain.session.session_registry import get_session_registry
from game_queue.utils.app_errors import AppError
from tests.fixtures.session_fixtures import ALICE, BOB, CHANNEL_ID, GUILD_ID, HOST, HOST_2


@pytest.fixture
def app(registry) -> FastAPI:
    app = FastAPI(default_response_class=ORJSONResponse)
    app.include_router(router, prefix="/api/v1")
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore
    app.dependency_overrides[get_session_registry] = lambda: registry
    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestListSessions:
    async def test_empty(self, client):
        response = await client.get("/api/v1/sessions")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["results"] == {"sessions": [], "total": 0}

    async def test_lists_sessions_oldest_first(self, client, registry, clock):
        await registry.start_session(HOST, "First", 2, guild_id=GUILD_ID, channel_id=CHANNEL_ID)
        clock.advance(minutes=5)
        await registry.start_session(HOST_2, "Second", 3, guild_id="g.other", channel_id=CHANNEL_ID)
        await registry.drain()

        response = await client.get("/api/v1/sessions")

        results = response.json()["results"]
        assert results["total"] == 2
        assert [s["title"] for s in results["sessions"]] == ["First", "Second"]
        assert results["sessions"][0]["start_time"] == "2026-01-01T12:00:00+00:00"

    async def test_filter_by_guild(self, client, registry):
        await registry.start_session(HOST, guild_id=GUILD_ID, channel_id=CHANNEL_ID)
        await registry.start_session(HOST_2, guild_id="g.other", channel_id=CHANNEL_ID)
        await registry.drain()

        response = await client.get("/api/v1/sessions", params={"guild_id": "g.other"})

        sessions = response.json()["results"]["sessions"]
        assert [s["host"]["id"] for s in sessions] == [HOST_2.id]


class TestGetSession:
    async def test_get_by_host(self, client, registry):
        await registry.start_session(HOST, "Ranked", 4, guild_id=GUILD_ID, channel_id=CHANNEL_ID)
        await registry.add_members(HOST, ["alice", "bob"])
        await registry.assign_teams(HOST, 2)
        await registry.drain()

        response = await client.get(f"/api/v1/sessions/{HOST.id}")

        results = response.json()["results"]
        assert results["title"] == "Ranked"
        assert results["status"] == "teams_active"
        assert results["connected_count"] == 2
        assert len(results["slots"]) == 4
        assert {s["member"]["id"] for s in results["slots"] if s["member"]} == {ALICE.id, BOB.id}
        assert [len(team) for team in results["teams"]] == [2, 2]
        assert results["rendered_message_id"] == registry.get_session(HOST.id).rendered_message_id

    async def test_missing_session_is_404(self, client):
        response = await client.get("/api/v1/sessions/unknown")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["errcode"] == "E_NO_ACTIVE_SESSION"
