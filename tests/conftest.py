"""Shared fixtures: real EventBus and coordinator, stub oracle transport."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest
import pytest_asyncio

from loopguard.config import Settings
from loopguard.events import INTERRUPTION_REQUESTED, Event, EventBus
from loopguard.interrupts.coordinator import InterruptionCoordinator
from loopguard.interrupts.schemas import InterruptionRequest

# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class RecordingNotifier:
    """Notification sink that remembers every request it was given."""

    def __init__(self) -> None:
        self.requests: list[InterruptionRequest] = []

    async def notify(self, request: InterruptionRequest) -> None:
        self.requests.append(request)


class StubOracle:
    """httpx MockTransport handler answering like a chat-completion endpoint."""

    def __init__(self, reply: str | dict = "", status_code: int = 200) -> None:
        self.reply = reply
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        content = self.reply if isinstance(self.reply, str) else json.dumps(self.reply)
        return httpx.Response(
            self.status_code,
            json={"choices": [{"message": {"role": "assistant", "content": content}}]},
        )

    @property
    def calls(self) -> int:
        return len(self.requests)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def make_request(score: int = 3, reason: str = "Agent repeats the same failing command", count: int = 2) -> InterruptionRequest:
    messages = [{"role": "user", "content": "fix bug"}] + [
        {"role": "assistant", "content": f"attempt {i}"} for i in range(count - 1)
    ]
    return InterruptionRequest(score=score, reason=reason, relevant_messages=messages[:count])


def auto_respond(
    bus: EventBus,
    coordinator: InterruptionCoordinator,
    should_continue: bool,
    skip_future_prompts: bool | None = None,
) -> list[Event]:
    """Answer every interruption_requested event. Returns the seen events."""
    seen: list[Event] = []

    async def responder(event: Event) -> None:
        seen.append(event)
        coordinator.respond_to_interruption(should_continue, skip_future_prompts)

    bus.on(INTERRUPTION_REQUESTED, responder)
    return seen


async def wait_pending(coordinator: InterruptionCoordinator, pending: bool = True) -> None:
    for _ in range(200):
        if coordinator.is_pending() == pending:
            return
        await asyncio.sleep(0.005)
    raise AssertionError(f"coordinator never reached pending={pending}")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(
        GROK_API_KEY="test-key",
        notify_enabled=False,
        check_interval_turns=3,
        health_threshold=6,
    )


@pytest_asyncio.fixture
async def bus():
    b = EventBus()
    await b.start()
    yield b
    await b.stop()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def coordinator(bus, notifier):
    c = InterruptionCoordinator(bus, notifier, session_id="sess-1")
    yield c
    await c.close()
