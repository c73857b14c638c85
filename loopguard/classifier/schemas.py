"""Pydantic DTOs for conversation transcripts and health assessments."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Role(StrEnum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ConversationMessage(BaseModel):
    """One chronological entry of the agent's conversation."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    role: Role
    content: str | list[Any] | dict[str, Any] | None = None

    @property
    def is_structured(self) -> bool:
        return not isinstance(self.content, str)


class HealthAssessment(BaseModel):
    """Oracle verdict for a slice of the transcript.

    available=False marks the unknown/zero assessment returned when the
    oracle's answer could not be parsed.
    """

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=15)
    reason: str
    relevant_messages: list[ConversationMessage] = Field(default_factory=list)
    available: bool = True

    @classmethod
    def unknown(cls, relevant_messages: list[ConversationMessage]) -> HealthAssessment:
        return cls(
            score=0,
            reason="Assessment unavailable: oracle response was not valid JSON",
            relevant_messages=relevant_messages,
            available=False,
        )
