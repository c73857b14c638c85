"""Handlers that run beside the agent loop.

Each handler owns a background task and is started and stopped by the
session that created it.
"""

from loopguard.handlers.health_monitor import HealthMonitor

__all__ = ["HealthMonitor"]
