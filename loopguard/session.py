"""Session wiring — builds and owns every loopguard component.

  Settings -> httpx client -> EventBus -> notifier -> Coordinator
           -> InterruptionTool -> Classifier -> HealthMonitor -> presenter

Each session owns its own coordinator, so several agent sessions can be
hosted in one process. default_session() hands out one shared session
for callers that want a process-wide instance.
"""

from __future__ import annotations

import logging
from uuid import uuid4

import httpx

from loopguard.classifier.classifier import CircularityClassifier
from loopguard.config import Settings
from loopguard.events import EventBus
from loopguard.handlers.health_monitor import HealthMonitor
from loopguard.interrupts.coordinator import InterruptionCoordinator
from loopguard.interrupts.notifier import NotificationSink, NullNotifier, WebhookNotifier
from loopguard.interrupts.schemas import InterruptionResult
from loopguard.interrupts.surface import InterruptionTool

logger = logging.getLogger(__name__)


class LoopGuardSession:
    """One monitored agent session and its components."""

    def __init__(
        self,
        settings: Settings,
        *,
        session_id: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        notifier: NotificationSink | None = None,
    ):
        self.settings = settings
        self.session_id = session_id or str(uuid4())
        self._owns_http = http_client is None
        self.http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=settings.oracle_timeout_connect,
                read=settings.oracle_timeout_read,
                write=10,
                pool=10,
            ),
        )
        self.bus = EventBus()

        if notifier is None:
            if settings.notify_enabled:
                notifier = WebhookNotifier(settings.notify_url, self.http, settings.notify_timeout)
            else:
                notifier = NullNotifier()

        self.coordinator = InterruptionCoordinator(
            self.bus,
            notifier,
            session_id=self.session_id,
            decision_timeout=settings.decision_timeout,
            timeout_decision=InterruptionResult(
                should_continue=settings.timeout_decision == "continue",
                skip_future_prompts=False,
            ),
        )
        self.tool = InterruptionTool(self.coordinator)
        self.classifier = CircularityClassifier(settings, self.http)
        self.monitor = HealthMonitor(
            self.classifier, self.tool, self.bus, settings, session_id=self.session_id
        )
        self.presenter = None
        if settings.terminal_presenter:
            from loopguard.presenter.terminal import TerminalPresenter

            self.presenter = TerminalPresenter(
                self.bus, self.coordinator, excerpt_lines=settings.reason_excerpt_lines
            )

    async def start(self) -> None:
        await self.bus.start()
        logger.info("loopguard session %s started", self.session_id)

    async def close(self) -> None:
        """Shut down in reverse order."""
        await self.monitor.stop()
        await self.coordinator.close()
        await self.bus.stop()
        if self.presenter is not None:
            await self.presenter.close()
        await self.classifier.close()
        if self._owns_http:
            await self.http.aclose()
        logger.info("loopguard session %s closed", self.session_id)

    async def __aenter__(self) -> LoopGuardSession:
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()


_default: LoopGuardSession | None = None


def default_session(settings: Settings | None = None) -> LoopGuardSession:
    """Return the process-wide session, creating it on first use.

    Settings are only read on the first call.
    """
    global _default
    if _default is None:
        _default = LoopGuardSession(settings or Settings())
    return _default
