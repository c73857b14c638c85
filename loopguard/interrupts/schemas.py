"""Pydantic DTOs exchanged across the interruption protocol."""

from __future__ import annotations

from pydantic import BaseModel, Field

from loopguard.classifier.schemas import ConversationMessage, HealthAssessment


class InterruptionRequest(BaseModel):
    """What the agent reports when asking to be paused."""

    score: int
    reason: str
    relevant_messages: list[ConversationMessage] = Field(default_factory=list)

    @classmethod
    def from_assessment(cls, assessment: HealthAssessment) -> InterruptionRequest:
        return cls(
            score=assessment.score,
            reason=assessment.reason,
            relevant_messages=list(assessment.relevant_messages),
        )


class InterruptionResult(BaseModel):
    """The operator's decision. Produced once per request."""

    should_continue: bool
    skip_future_prompts: bool | None = None


class ToolResult(BaseModel):
    """Result handed back to the agent's tool loop.

    halt=True means the operator stopped the agent; the loop must end,
    not retry.
    """

    success: bool
    output: str | None = None
    error: str | None = None
    halt: bool = False
