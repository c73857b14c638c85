"""End-to-end scenarios: session wiring, stub oracle and terminal presenter."""

from __future__ import annotations

import io

import pytest_asyncio
from rich.console import Console

from loopguard.classifier.rubric import MAX_SCORE
from loopguard.events import INTERRUPTION_REQUESTED, Event
from loopguard.interrupts.notifier import NullNotifier
from loopguard.presenter.terminal import TerminalPresenter
from loopguard.session import LoopGuardSession
from tests.conftest import StubOracle, make_request

PRODUCTIVE = [
    {"role": "user", "content": "Add a --verbose flag to the CLI"},
    {"role": "assistant", "content": [{"type": "tool_use", "name": "edit", "input": {"path": "cli.py"}}]},
    {"role": "user", "content": [{"type": "tool_result", "content": "ok"}]},
    {"role": "assistant", "content": "Added the flag and a test for it."},
]

LOOPING = [
    {"role": "user", "content": "Make the tests pass"},
    {"role": "assistant", "content": "Running pytest"},
    {"role": "user", "content": "1 failed"},
    {"role": "assistant", "content": "Running pytest"},
    {"role": "user", "content": "1 failed"},
    {"role": "assistant", "content": "Running pytest again"},
]


class _Answers:
    """Scripted operator answers. Counts how often the dialog was shown."""

    def __init__(self, *answers: str) -> None:
        self._answers = list(answers)
        self.asked = 0

    def __call__(self) -> str:
        self.asked += 1
        return self._answers.pop(0)


@pytest_asyncio.fixture
async def make_session(settings):
    sessions: list[LoopGuardSession] = []

    async def factory(oracle: StubOracle, answers: _Answers) -> LoopGuardSession:
        session = LoopGuardSession(
            settings, session_id="scenario", http_client=oracle.client(), notifier=NullNotifier()
        )
        TerminalPresenter(
            session.bus, session.coordinator, Console(file=io.StringIO()), read_choice=answers
        )
        await session.start()
        sessions.append(session)
        return session

    yield factory
    for s in sessions:
        await s.close()


async def test_productive_session_never_interrupts(make_session):
    oracle = StubOracle({"score": 12, "reason": "Steady progress on the flag"})
    answers = _Answers()
    session = await make_session(oracle, answers)

    assessment = await session.classifier.assess(PRODUCTIVE)
    assert assessment.score == 12
    assert assessment.available is True
    assert await session.monitor.evaluate(PRODUCTIVE) is None
    assert answers.asked == 0


async def test_looping_session_operator_continues(make_session):
    oracle = StubOracle({"score": 3, "reason": "Same pytest run three times\nNo edits between runs"})
    answers = _Answers("2")
    session = await make_session(oracle, answers)
    seen: list[Event] = []

    async def record(event: Event) -> None:
        seen.append(event)

    session.bus.on(INTERRUPTION_REQUESTED, record)

    result = await session.monitor.evaluate(LOOPING)

    assert result.success is True
    assert result.halt is False
    assert answers.asked == 1
    assert seen[0].data["score"] == 3
    assert session.coordinator.get_skip_future_interruptions() is False


async def test_malformed_oracle_reply_is_unknown(make_session):
    oracle = StubOracle("I think the agent is fine")
    answers = _Answers()
    session = await make_session(oracle, answers)

    assessment = await session.classifier.assess(LOOPING)

    assert assessment.available is False
    assert 0 <= assessment.score <= MAX_SCORE
    assert await session.monitor.evaluate(LOOPING) is None
    assert answers.asked == 0


async def test_stop_then_next_request_still_suspends(make_session):
    oracle = StubOracle({"score": 1, "reason": "Looping"})
    answers = _Answers("1", "2")
    session = await make_session(oracle, answers)

    first = await session.tool.request_interruption(make_request(score=1))
    assert first.success is False
    assert first.halt is True
    assert first.error == "User chose to stop the agent"

    second = await session.tool.request_interruption(make_request(score=2))
    assert second.success is True
    assert answers.asked == 2


async def test_skip_bypasses_later_presentation(make_session):
    oracle = StubOracle({"score": 2, "reason": "Looping"})
    answers = _Answers("3")
    session = await make_session(oracle, answers)

    first = await session.monitor.evaluate(LOOPING)
    assert first.success is True
    assert session.coordinator.get_skip_future_interruptions() is True

    for _ in range(3):
        again = await session.monitor.evaluate(LOOPING)
        assert again.success is True
    assert answers.asked == 1

    session.tool.reset_session()
    assert session.tool.get_skip_future_interruptions() is False
