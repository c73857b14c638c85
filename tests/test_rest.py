"""Integration tests for the REST decision surface.

Uses httpx AsyncClient with ASGITransport; the session's oracle client
is backed by a StubOracle MockTransport.
"""

from __future__ import annotations

import asyncio

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from loopguard.api.rest import create_app
from loopguard.interrupts.notifier import NullNotifier
from loopguard.session import LoopGuardSession
from tests.conftest import StubOracle

SCENARIO = [
    {"role": "user", "content": "fix bug"},
    {"role": "assistant", "content": "done"},
]


@pytest_asyncio.fixture
async def oracle():
    return StubOracle({"score": 4, "reason": "looping on the same command"})


@pytest_asyncio.fixture
async def session(settings, oracle):
    s = LoopGuardSession(settings, session_id="rest-1", http_client=oracle.client(), notifier=NullNotifier())
    await s.start()
    yield s
    await s.close()


@pytest_asyncio.fixture
async def client(session):
    app = create_app(session)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


async def _wait_pending(client: AsyncClient) -> dict:
    for _ in range(200):
        resp = await client.get("/interruptions")
        if resp.json()["pending"]:
            return resp.json()
        await asyncio.sleep(0.005)
    raise AssertionError("interruption never became pending")


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "session_id": "rest-1", "event_bus": True}


async def test_assess(client, oracle):
    resp = await client.post("/assess", json={"messages": SCENARIO})
    assert resp.status_code == 200
    data = resp.json()
    assert data["score"] == 4
    assert data["available"] is True
    assert len(data["relevant_messages"]) == 2
    assert oracle.calls == 1


async def test_assess_invalid_transcript(client, oracle):
    resp = await client.post("/assess", json={"messages": [{"role": "user", "content": "hi"}]})
    assert resp.status_code == 400
    assert "assistant" in resp.json()["error"]
    assert oracle.calls == 0


async def test_assess_missing_messages(client):
    resp = await client.post("/assess", json={})
    assert resp.status_code == 400


async def test_assess_oracle_failure(client, oracle):
    oracle.status_code = 500
    resp = await client.post("/assess", json={"messages": SCENARIO})
    assert resp.status_code == 502


async def test_interruption_round_trip(client):
    pending_call = asyncio.create_task(
        client.post("/interruptions", json={"score": 3, "reason": "stuck"})
    )
    state = await _wait_pending(client)
    assert state["request"]["score"] == 3
    assert state["skip_future_interruptions"] is False

    resp = await client.post("/interruptions/respond", json={"should_continue": True, "skip_future_prompts": True})
    assert resp.json() == {"resolved": True}

    result = (await pending_call).json()
    assert result["success"] is True
    assert result["halt"] is False

    state = (await client.get("/interruptions")).json()
    assert state == {"pending": False, "interruption_id": None, "request": None, "skip_future_interruptions": True}

    # Sticky skip answers immediately
    resp = await client.post("/interruptions", json={"score": 1, "reason": "worse"})
    assert resp.json()["success"] is True

    resp = await client.post("/session/reset")
    assert resp.json() == {"skip_future_interruptions": False}


async def test_stop_returns_halt(client):
    pending_call = asyncio.create_task(client.post("/interruptions", json={"score": 2, "reason": "loop"}))
    await _wait_pending(client)
    await client.post("/interruptions/respond", json={"should_continue": False})

    result = (await pending_call).json()
    assert result["success"] is False
    assert result["halt"] is True


async def test_busy_returns_409(client, session):
    pending_call = asyncio.create_task(client.post("/interruptions", json={"score": 2, "reason": "loop"}))
    await _wait_pending(client)

    resp = await client.post("/interruptions", json={"score": 1, "reason": "again"})
    assert resp.status_code == 409
    assert resp.json()["halt"] is False

    session.coordinator.respond_to_interruption(True)
    assert (await pending_call).json()["success"] is True


async def test_respond_with_stale_id_ignored(client):
    pending_call = asyncio.create_task(client.post("/interruptions", json={"score": 2, "reason": "loop"}))
    state = await _wait_pending(client)
    current = state["interruption_id"]
    assert current

    resp = await client.post("/interruptions/respond", json={"should_continue": True, "interruption_id": "old"})
    assert resp.json() == {"resolved": False}
    assert (await client.get("/interruptions")).json()["pending"] is True

    resp = await client.post("/interruptions/respond", json={"should_continue": False, "interruption_id": current})
    assert resp.json() == {"resolved": True}
    assert (await pending_call).json()["halt"] is True


async def test_respond_without_pending(client):
    resp = await client.post("/interruptions/respond", json={"should_continue": True})
    assert resp.json() == {"resolved": False}


async def test_respond_validates_body(client):
    resp = await client.post("/interruptions/respond", json={"should_continue": "yes"})
    assert resp.status_code == 400
    resp = await client.post("/interruptions/respond", json={"should_continue": True, "skip_future_prompts": "no"})
    assert resp.status_code == 400


async def test_request_validates_body(client):
    resp = await client.post("/interruptions", json={"reason": "no score"})
    assert resp.status_code == 400
