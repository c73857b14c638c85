"""Tests for Settings defaults, env loading and validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from loopguard.config import Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("GROK_API_KEY", raising=False)
    s = Settings(_env_file=None)
    assert s.oracle_base_url == "https://api.x.ai/v1"
    assert s.transcript_window == 10
    assert s.text_char_budget == 500
    assert s.structured_char_budget == 800
    assert s.notify_url == "http://localhost:5001/trigger-ping"
    assert s.notify_timeout == 10.0
    assert s.decision_timeout is None
    assert s.timeout_decision == "continue"


def test_reads_env(monkeypatch):
    monkeypatch.setenv("GROK_API_KEY", "xai-secret")
    monkeypatch.setenv("LOOPGUARD_HEALTH_THRESHOLD", "4")
    monkeypatch.setenv("LOOPGUARD_DECISION_TIMEOUT", "300")
    s = Settings(_env_file=None)
    assert s.oracle_api_key == "xai-secret"
    assert s.health_threshold == 4
    assert s.decision_timeout == 300.0


@pytest.mark.parametrize(
    "overrides",
    [
        {"health_threshold": 16},
        {"health_threshold": -1},
        {"transcript_window": 0},
        {"text_char_budget": 0},
        {"check_interval_turns": 0},
        {"decision_timeout": 0},
        {"timeout_decision": "maybe"},
    ],
)
def test_rejects_invalid(overrides):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)
