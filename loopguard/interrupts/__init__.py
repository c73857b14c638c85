"""Interruption protocol — coordinator, tool surface and notification sinks."""

from loopguard.interrupts.coordinator import InterruptionBusyError, InterruptionCoordinator
from loopguard.interrupts.notifier import NotificationSink, NullNotifier, WebhookNotifier
from loopguard.interrupts.schemas import InterruptionRequest, InterruptionResult, ToolResult
from loopguard.interrupts.surface import InterruptionTool

__all__ = [
    "InterruptionBusyError",
    "InterruptionCoordinator",
    "InterruptionRequest",
    "InterruptionResult",
    "InterruptionTool",
    "NotificationSink",
    "NullNotifier",
    "ToolResult",
    "WebhookNotifier",
]
