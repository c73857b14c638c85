"""Health Monitor — periodic circularity checks around the agent loop.

The agent loop reports each finished turn with record_turn(). Every
check_interval_turns turns a background task asks the classifier for an
assessment, so the oracle round trip stays off the critical path. At its
next safe point the loop calls checkpoint(); if the latest assessment
scored below health_threshold the operator is asked whether to continue.

Unavailable assessments (malformed oracle output) never interrupt the
agent, and oracle or transcript errors in the background are only logged.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from loopguard.classifier.classifier import CircularityClassifier, OracleError
from loopguard.classifier.schemas import HealthAssessment
from loopguard.classifier.transcript import InvalidTranscript
from loopguard.config import Settings
from loopguard.events import HEALTH_ASSESSED, Event, EventBus
from loopguard.interrupts.schemas import InterruptionRequest, ToolResult
from loopguard.interrupts.surface import InterruptionTool

logger = logging.getLogger(__name__)


class HealthMonitor:
    def __init__(
        self,
        classifier: CircularityClassifier,
        tool: InterruptionTool,
        bus: EventBus,
        settings: Settings,
        *,
        session_id: str | None = None,
    ):
        self._classifier = classifier
        self._tool = tool
        self._bus = bus
        self._settings = settings
        self._session_id = session_id
        self._turns = 0
        self._task: asyncio.Task | None = None
        self._latest: HealthAssessment | None = None

    @property
    def turns(self) -> int:
        return self._turns

    @property
    def latest(self) -> HealthAssessment | None:
        """Most recent assessment not yet consumed by checkpoint()."""
        return self._latest

    def record_turn(self, transcript: str | Sequence[Any]) -> bool:
        """Count a turn; schedule a background check when one is due.

        Returns True if a check was scheduled. A due check is skipped while
        the previous one is still running.
        """
        self._turns += 1
        if self._turns % self._settings.check_interval_turns != 0:
            return False
        if self._task is not None and not self._task.done():
            logger.debug("Health check still running, skipping turn %d", self._turns)
            return False
        # The agent keeps appending to its history; assess the turn as it was
        snapshot = transcript if isinstance(transcript, (str, bytes)) else list(transcript)
        self._task = asyncio.create_task(self._background_assess(snapshot), name="health-check")
        return True

    async def wait_idle(self) -> None:
        """Wait for the in-flight background check, if any."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def checkpoint(self) -> ToolResult | None:
        """Gate the agent on the latest finished assessment.

        Returns None when no interruption was needed.
        """
        assessment, self._latest = self._latest, None
        if assessment is None:
            return None
        return await self._gate(assessment)

    async def evaluate(self, transcript: str | Sequence[Any]) -> ToolResult | None:
        """Assess now and gate on the result. Validation and oracle errors propagate."""
        assessment = await self._assess(transcript)
        return await self._gate(assessment)

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    def _below_threshold(self, assessment: HealthAssessment) -> bool:
        return assessment.available and assessment.score < self._settings.health_threshold

    async def _gate(self, assessment: HealthAssessment) -> ToolResult | None:
        if not self._below_threshold(assessment):
            return None
        logger.info(
            "Health score %d below threshold %d, requesting interruption",
            assessment.score,
            self._settings.health_threshold,
        )
        return await self._tool.request_interruption(InterruptionRequest.from_assessment(assessment))

    async def _assess(self, transcript: str | Sequence[Any]) -> HealthAssessment:
        assessment = await self._classifier.assess(transcript)
        await self._bus.emit(Event(
            type=HEALTH_ASSESSED,
            data={
                "score": assessment.score,
                "reason": assessment.reason,
                "available": assessment.available,
                "message_count": len(assessment.relevant_messages),
            },
            session_id=self._session_id,
        ))
        return assessment

    async def _background_assess(self, transcript: str | Sequence[Any]) -> None:
        try:
            self._latest = await self._assess(transcript)
        except InvalidTranscript as e:
            logger.warning("Skipping health check on turn %d: %s", self._turns, e)
        except OracleError as e:
            logger.warning("Health check failed on turn %d: %s", self._turns, e)
