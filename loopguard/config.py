"""Settings via pydantic-settings with LOOPGUARD_ env prefix.

The oracle key uses validation_alias to read the unprefixed GROK_API_KEY
env var, so the same .env that drives the agent drives the monitor.
"""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LOOPGUARD_", env_file=".env")

    log_level: str = "info"

    # Scoring oracle (OpenAI-compatible chat completions)
    oracle_base_url: str = "https://api.x.ai/v1"
    oracle_api_key: str = Field("", validation_alias="GROK_API_KEY")
    oracle_model: str = "grok-4-1-fast-non-reasoning"
    oracle_max_tokens: int = 1024
    oracle_timeout_connect: int = 10  # seconds
    oracle_timeout_read: int = 60  # seconds

    # Transcript shaping
    transcript_window: int = 10
    text_char_budget: int = 500
    structured_char_budget: int = 800

    # Health gate
    health_threshold: int = 6  # interrupt when score < threshold
    check_interval_turns: int = 3

    # Best-effort operator ping
    notify_enabled: bool = True
    notify_url: str = "http://localhost:5001/trigger-ping"
    notify_timeout: float = 10.0

    # Suspension policy. None waits for a human forever.
    decision_timeout: float | None = None
    timeout_decision: Literal["continue", "stop"] = "continue"

    # Presentation
    reason_excerpt_lines: int = 2
    terminal_presenter: bool = False

    # REST surface
    host: str = "127.0.0.1"
    port: int = 8765

    @model_validator(mode="after")
    def _validate_limits(self) -> "Settings":
        for name in ("transcript_window", "text_char_budget", "structured_char_budget", "check_interval_turns"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        if not 0 <= self.health_threshold <= 15:
            raise ValueError("health_threshold must be within 0-15")
        if self.decision_timeout is not None and self.decision_timeout <= 0:
            raise ValueError("decision_timeout must be positive when set")
        return self
