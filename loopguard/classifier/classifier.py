"""Circularity Classifier — asks the oracle whether the agent is looping.

One call in, one HealthAssessment out. The transcript is validated
before any network traffic, shaped to a bounded prompt, and scored by an
OpenAI-compatible chat-completion endpoint.

A malformed oracle answer never raises: the classifier logs it and
returns the unknown assessment. Transport failures raise OracleError.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from loopguard.classifier.rubric import MAX_SCORE, build_prompt
from loopguard.classifier.schemas import ConversationMessage, HealthAssessment
from loopguard.classifier.transcript import (
    parse_transcript,
    render_transcript,
    select_relevant,
    shape_messages,
)
from loopguard.config import Settings

logger = logging.getLogger(__name__)


class OracleError(RuntimeError):
    """The oracle could not be reached or answered with an HTTP error."""


def build_oracle_headers(settings: Settings) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if settings.oracle_api_key:
        headers["Authorization"] = f"Bearer {settings.oracle_api_key}"
    return headers


def _strip_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_verdict(text: str) -> tuple[int, str] | None:
    """Extract (score, reason) from the oracle's reply, or None if malformed."""
    try:
        data = json.loads(_strip_fence(text))
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    score = data.get("score")
    reason = data.get("reason")
    if isinstance(score, bool) or not isinstance(score, int):
        return None
    if not 0 <= score <= MAX_SCORE:
        return None
    if not isinstance(reason, str):
        return None
    return score, reason


class CircularityClassifier:
    """Scores a conversation transcript for unproductive looping.

    Stateless apart from the shared httpx client. If no client is given,
    one is created lazily and closed by close().
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None):
        self._settings = settings
        self._http = http_client
        self._owns_http = http_client is None

    def prepare(self, transcript: str | Sequence[Any]) -> tuple[list[ConversationMessage], str]:
        """Validate and shape a transcript. Returns (relevant slice, prompt).

        Raises InvalidTranscript without touching the network.
        """
        messages = parse_transcript(transcript)
        relevant = select_relevant(messages, self._settings.transcript_window)
        shaped = shape_messages(
            relevant,
            self._settings.text_char_budget,
            self._settings.structured_char_budget,
        )
        return relevant, build_prompt(render_transcript(shaped))

    async def assess(self, transcript: str | Sequence[Any]) -> HealthAssessment:
        """Assess the transcript. Score is always within 0-15."""
        relevant, prompt = self.prepare(transcript)

        text = await self._call_oracle(prompt)
        verdict = parse_verdict(text)
        if verdict is None:
            logger.warning("Oracle returned malformed assessment: %r", text[:200])
            return HealthAssessment.unknown(relevant)

        score, reason = verdict
        logger.debug("Oracle scored %d messages at %d/%d", len(relevant), score, MAX_SCORE)
        return HealthAssessment(score=score, reason=reason, relevant_messages=relevant)

    async def _call_oracle(self, prompt: str) -> str:
        """POST the prompt to the chat-completion endpoint, return the reply text."""
        http = self._client()
        payload = {
            "model": self._settings.oracle_model,
            "max_tokens": self._settings.oracle_max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        try:
            response = await http.post(
                f"{self._settings.oracle_base_url.rstrip('/')}/chat/completions",
                json=payload,
                headers=build_oracle_headers(self._settings),
            )
        except httpx.TimeoutException as e:
            raise OracleError(f"Oracle request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise OracleError(f"Oracle HTTP error: {e}") from e

        if response.status_code != 200:
            raise OracleError(f"Oracle error ({response.status_code}): {response.text[:500]}")

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            # Envelope is broken; treat like a malformed verdict
            logger.warning("Oracle response envelope unexpected: %s", response.text[:200])
            return ""
        if content is None:
            return ""
        if not isinstance(content, str):
            logger.warning("Oracle reply content is not text: %s", type(content).__name__)
            return ""
        return content

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    connect=self._settings.oracle_timeout_connect,
                    read=self._settings.oracle_timeout_read,
                    write=10,
                    pool=10,
                ),
            )
        return self._http

    async def close(self) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None
