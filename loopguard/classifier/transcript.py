"""Transcript validation and shaping for the circularity oracle.

Shaping keeps the prompt bounded: system entries are dropped, only the
most recent window is kept, and every message body is cut to a fixed
character budget with a visible marker. Shaping is idempotent, so
re-shaping an already shaped transcript returns it unchanged.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from loopguard.classifier.schemas import ConversationMessage, Role

TRUNCATION_MARKER = "..."

DEFAULT_WINDOW = 10
DEFAULT_TEXT_BUDGET = 500
DEFAULT_STRUCTURED_BUDGET = 800


class InvalidTranscript(ValueError):
    """Transcript does not satisfy the shape the oracle expects."""


@dataclass(frozen=True)
class ShapedMessage:
    """A message reduced to bounded text, ready for the prompt."""

    role: Role
    text: str
    structured: bool = False


def parse_transcript(transcript: str | Sequence[Any]) -> list[ConversationMessage]:
    """Parse and validate a transcript.

    Accepts a JSON string, a list of dicts or a list of ConversationMessage.
    The transcript must be non-empty and end with an assistant message.
    """
    if isinstance(transcript, (str, bytes)):
        try:
            transcript = json.loads(transcript)
        except json.JSONDecodeError as e:
            raise InvalidTranscript(f"Failed to parse conversation JSON: {e}") from e

    if not isinstance(transcript, Sequence) or isinstance(transcript, (str, bytes)):
        raise InvalidTranscript("Conversation must be a list of messages")
    if len(transcript) == 0:
        raise InvalidTranscript("Conversation must contain at least one message")

    messages: list[ConversationMessage] = []
    for idx, raw in enumerate(transcript):
        if isinstance(raw, ConversationMessage):
            messages.append(raw)
            continue
        try:
            messages.append(ConversationMessage.model_validate(raw))
        except ValidationError as e:
            raise InvalidTranscript(f"Message {idx} is malformed: {e.errors()[0]['msg']}") from e

    if messages[-1].role != Role.ASSISTANT:
        raise InvalidTranscript("Last message in conversation must be from assistant role")
    return messages


def select_relevant(
    messages: Sequence[ConversationMessage],
    window: int = DEFAULT_WINDOW,
) -> list[ConversationMessage]:
    """Drop system entries and keep the last `window` messages in order."""
    non_system = [m for m in messages if m.role != Role.SYSTEM]
    return non_system[-window:]


def truncate_text(text: str, budget: int) -> str:
    """Cut text to `budget` characters and append the truncation marker."""
    if len(text) <= budget:
        return text
    return text[:budget] + TRUNCATION_MARKER


def shape_message(
    message: ConversationMessage | ShapedMessage,
    text_budget: int = DEFAULT_TEXT_BUDGET,
    structured_budget: int = DEFAULT_STRUCTURED_BUDGET,
) -> ShapedMessage:
    if isinstance(message, ShapedMessage):
        budget = structured_budget if message.structured else text_budget
        return ShapedMessage(message.role, truncate_text(message.text, budget), message.structured)

    if isinstance(message.content, str):
        return ShapedMessage(message.role, truncate_text(message.content, text_budget))

    # Tool calls and other payloads keep their structure, values get cut
    rendered = json.dumps(message.content, indent=2, ensure_ascii=False, default=str)
    return ShapedMessage(message.role, truncate_text(rendered, structured_budget), structured=True)


def shape_messages(
    messages: Sequence[ConversationMessage | ShapedMessage],
    text_budget: int = DEFAULT_TEXT_BUDGET,
    structured_budget: int = DEFAULT_STRUCTURED_BUDGET,
) -> list[ShapedMessage]:
    return [shape_message(m, text_budget, structured_budget) for m in messages]


def render_transcript(shaped: Sequence[ShapedMessage]) -> str:
    """Render shaped messages as numbered `[idx] ROLE:` blocks."""
    return "\n\n".join(
        f"[{idx}] {msg.role.value.upper()}:\n{msg.text}" for idx, msg in enumerate(shaped)
    )
