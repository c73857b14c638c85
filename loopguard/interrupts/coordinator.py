"""Interruption Coordinator — the suspend/resume protocol.

States: Idle -> Suspended -> Idle. A request allocates a one-shot future,
records it as pending, then emits interruption_requested on the bus and
awaits the future. respond_to_interruption() resolves it exactly once.

The sticky skip flag is orthogonal: once an operator chooses to skip
warnings, every later request in the session returns immediately.

All transitions happen on one asyncio loop, so no locking is needed.
Hosting the coordinator across threads requires a lock around the
pending slot.
"""

from __future__ import annotations

import asyncio
import logging
from uuid import uuid4

from loopguard.events import INTERRUPTION_REQUESTED, INTERRUPTION_RESOLVED, Event, EventBus
from loopguard.interrupts.notifier import NotificationSink, NullNotifier
from loopguard.interrupts.schemas import InterruptionRequest, InterruptionResult

logger = logging.getLogger(__name__)

SKIPPED_RESULT = InterruptionResult(should_continue=True, skip_future_prompts=True)


class InterruptionBusyError(RuntimeError):
    """A second interruption was requested while one is still pending."""


class InterruptionCoordinator:
    """Arbitrates interruption requests for one agent session.

    At most one suspension is pending at any time. A second request while
    suspended is rejected with InterruptionBusyError rather than replacing
    the first caller's future, which would leave that caller waiting forever.

    decision_timeout (seconds) bounds the wait; on expiry the suspension is
    resolved with timeout_decision. None waits for a human indefinitely.
    """

    def __init__(
        self,
        bus: EventBus,
        notifier: NotificationSink | None = None,
        *,
        session_id: str | None = None,
        decision_timeout: float | None = None,
        timeout_decision: InterruptionResult | None = None,
    ):
        self._bus = bus
        self._notifier = notifier or NullNotifier()
        self._session_id = session_id
        self._decision_timeout = decision_timeout
        self._timeout_decision = timeout_decision or InterruptionResult(
            should_continue=True, skip_future_prompts=False
        )
        self._pending: asyncio.Future[InterruptionResult] | None = None
        self._pending_request: InterruptionRequest | None = None
        self._pending_id: str | None = None
        self._skip_future = False
        self._background: set[asyncio.Task] = set()

    async def request_interruption(self, request: InterruptionRequest) -> InterruptionResult:
        """Suspend the caller until an operator decides.

        Raises InterruptionBusyError if a suspension is already pending.
        """
        if self._skip_future:
            logger.debug("Interruption skipped (score=%d): operator disabled prompts", request.score)
            return SKIPPED_RESULT.model_copy()

        if self._pending is not None:
            raise InterruptionBusyError("An interruption is already awaiting a decision")

        future: asyncio.Future[InterruptionResult] = asyncio.get_running_loop().create_future()
        interruption_id = uuid4().hex
        self._pending = future
        self._pending_request = request
        self._pending_id = interruption_id
        logger.info("Agent suspended for operator decision (score=%d)", request.score)

        # Pending slot is set before listeners can see the event
        await self._bus.emit(Event(
            type=INTERRUPTION_REQUESTED,
            data={**request.model_dump(mode="json"), "interruption_id": interruption_id},
            session_id=self._session_id,
        ))
        self._notify_in_background(request)

        try:
            result = await self._wait(future)
        finally:
            if self._pending is future:
                # Caller was cancelled before anyone answered
                logger.warning("Interruption abandoned before a decision arrived")
                self._clear()

        logger.info(
            "Interruption resolved: continue=%s skip_future=%s",
            result.should_continue,
            result.skip_future_prompts,
        )
        await self._bus.emit(Event(
            type=INTERRUPTION_RESOLVED,
            data={**result.model_dump(mode="json"), "interruption_id": interruption_id},
            session_id=self._session_id,
        ))
        return result

    def respond_to_interruption(
        self,
        should_continue: bool,
        skip_future_prompts: bool | None = None,
        *,
        interruption_id: str | None = None,
    ) -> None:
        """Resolve the pending suspension. No-op when nothing is pending.

        With interruption_id, only the suspension carrying that id is
        resolved; an answer to an earlier, already settled suspension is
        dropped.
        """
        if interruption_id is not None and interruption_id != self._pending_id:
            logger.debug("Ignoring response for stale interruption %s", interruption_id)
            return
        result = InterruptionResult(
            should_continue=should_continue,
            skip_future_prompts=skip_future_prompts,
        )
        if not self._resolve(result):
            logger.debug("Ignoring interruption response: nothing pending")

    def is_pending(self) -> bool:
        return self._pending is not None

    @property
    def pending_id(self) -> str | None:
        """Id of the pending suspension, as carried on its events."""
        return self._pending_id

    def reset_session(self) -> None:
        """Re-enable prompts. A pending suspension is left untouched."""
        if self._skip_future:
            logger.info("Interruption prompts re-enabled for session")
        self._skip_future = False

    def get_skip_future_interruptions(self) -> bool:
        return self._skip_future

    @property
    def skip_future_interruptions(self) -> bool:
        return self._skip_future

    @property
    def pending_request(self) -> InterruptionRequest | None:
        return self._pending_request

    async def close(self) -> None:
        """Cancel in-flight notifications."""
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _wait(self, future: asyncio.Future[InterruptionResult]) -> InterruptionResult:
        if self._decision_timeout is None:
            return await future
        try:
            return await asyncio.wait_for(asyncio.shield(future), self._decision_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "No operator decision within %.0fs, applying default (continue=%s)",
                self._decision_timeout,
                self._timeout_decision.should_continue,
            )
            self._resolve(self._timeout_decision.model_copy())
            return future.result()

    def _resolve(self, result: InterruptionResult) -> bool:
        future = self._pending
        if future is None or future.done():
            return False
        future.set_result(result)
        if result.skip_future_prompts:
            self._skip_future = True
        self._clear()
        return True

    def _clear(self) -> None:
        self._pending = None
        self._pending_request = None
        self._pending_id = None

    def _notify_in_background(self, request: InterruptionRequest) -> None:
        task = asyncio.create_task(self._safe_notify(request), name="interruption-notify")
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _safe_notify(self, request: InterruptionRequest) -> None:
        try:
            await self._notifier.notify(request)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Interrupt notification failed: %s", e)
