"""Best-effort operator notification sinks.

A sink is told about every suspension. Delivery is fire-and-forget:
failures are logged and never reach the coordinator.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from loopguard.interrupts.schemas import InterruptionRequest

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """Anything that can be pinged about a pending interruption."""

    async def notify(self, request: InterruptionRequest) -> None: ...


class NullNotifier:
    """Sink that drops every notification."""

    async def notify(self, request: InterruptionRequest) -> None:
        return None


class WebhookNotifier:
    """POSTs {message, score} to an operator-paging webhook.

    Single attempt, no retry. The score is sent as a string.
    """

    def __init__(
        self,
        url: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self._url = url
        self._http = http_client
        self._timeout = timeout

    async def notify(self, request: InterruptionRequest) -> None:
        body = {"message": request.reason, "score": str(request.score)}
        try:
            if self._http is not None:
                response = await self._http.post(self._url, json=body, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, json=body)
        except httpx.HTTPError as e:
            logger.warning("Failed to send interrupt notification: %s", e)
            return

        if response.status_code >= 400:
            logger.warning(
                "Interrupt notification rejected (%d): %s",
                response.status_code,
                response.text[:200],
            )
        else:
            logger.info("Interrupt notification delivered (%d)", response.status_code)
