"""Interruption tool — the agent-facing side of the protocol.

Thin pass-through to the coordinator that turns its decision into a
ToolResult for the agent's tool loop. Holds no state of its own.
"""

from __future__ import annotations

import logging
from typing import Any

from loopguard.interrupts.coordinator import InterruptionCoordinator
from loopguard.interrupts.schemas import InterruptionRequest, ToolResult

logger = logging.getLogger(__name__)

STOP_MESSAGE = "User chose to stop the agent"


class InterruptionTool:
    def __init__(self, coordinator: InterruptionCoordinator):
        self._coordinator = coordinator

    async def request_interruption(
        self,
        request: InterruptionRequest | None = None,
        **fields: Any,
    ) -> ToolResult:
        """Ask the operator whether to continue.

        Accepts an InterruptionRequest or its fields as keyword arguments.
        A stop decision comes back with halt=True.
        """
        if request is None:
            request = InterruptionRequest(**fields)

        try:
            result = await self._coordinator.request_interruption(request)
        except Exception as e:
            logger.warning("Interruption request failed: %s", e)
            return ToolResult(success=False, error=f"Interruption error: {e}")

        if result.should_continue:
            return ToolResult(
                success=True,
                output=f"User chose to continue (skip future prompts: {bool(result.skip_future_prompts)})",
            )
        return ToolResult(success=False, error=STOP_MESSAGE, halt=True)

    def is_pending(self) -> bool:
        return self._coordinator.is_pending()

    def reset_session(self) -> None:
        self._coordinator.reset_session()

    def get_skip_future_interruptions(self) -> bool:
        return self._coordinator.get_skip_future_interruptions()
