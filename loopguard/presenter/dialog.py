"""Decision dialog — the operator's three-way choice for one interruption.

The dialog owns selection state and input handling only; rendering lives
in presenter.terminal. At most one of on_continue / on_stop fires, at most
once. After that, an abort or a dismissal, all further input is ignored.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum

from loopguard.interrupts.schemas import InterruptionRequest


class Choice(StrEnum):
    STOP = "stop"
    CONTINUE = "continue"
    SKIP = "skip"


OPTIONS: tuple[tuple[Choice, str], ...] = (
    (Choice.STOP, "STOP OPERATION"),
    (Choice.CONTINUE, "CONTINUE ANYWAY"),
    (Choice.SKIP, "SKIP WARNINGS"),
)

_PREV_KEYS = frozenset({"up", "shift+tab"})
_NEXT_KEYS = frozenset({"down", "tab"})
_ABORT_INPUTS = frozenset({"escape", "esc", "q", "quit", "abort"})


def reason_excerpt(reason: str, max_lines: int = 2) -> list[str]:
    """First non-empty lines of the oracle's rationale."""
    lines = [line.strip() for line in reason.splitlines() if line.strip()]
    return lines[:max_lines]


class DecisionDialog:
    def __init__(
        self,
        request: InterruptionRequest,
        on_continue: Callable[[bool], None],
        on_stop: Callable[[], None],
        *,
        excerpt_lines: int = 2,
    ):
        self.request = request
        self._on_continue = on_continue
        self._on_stop = on_stop
        self._excerpt_lines = excerpt_lines
        self.selected = 0
        self.outcome: Choice | None = None
        self.dismissed = False

    @property
    def closed(self) -> bool:
        return self.outcome is not None or self.dismissed

    def dismiss(self) -> None:
        """Close without deciding; the suspension was settled elsewhere."""
        self.dismissed = True

    @property
    def score(self) -> int:
        return self.request.score

    @property
    def message_count(self) -> int:
        return len(self.request.relevant_messages)

    @property
    def excerpt(self) -> list[str]:
        return reason_excerpt(self.request.reason, self._excerpt_lines)

    def handle_key(self, key: str) -> bool:
        """Process one key press. Returns False when the input was ignored."""
        if self.closed:
            return False
        key = key.lower()
        if key in _PREV_KEYS:
            self.selected = (self.selected - 1) % len(OPTIONS)
        elif key in _NEXT_KEYS:
            self.selected = (self.selected + 1) % len(OPTIONS)
        elif key == "enter":
            self._decide(OPTIONS[self.selected][0])
        elif key in _ABORT_INPUTS:
            self.abort()
        else:
            return False
        return True

    def submit(self, answer: str) -> bool:
        """Process a typed answer: an option number, a choice name, or an abort word."""
        if self.closed:
            return False
        answer = answer.strip().lower()
        if answer in _ABORT_INPUTS:
            self.abort()
            return True
        if answer.isdigit() and 1 <= int(answer) <= len(OPTIONS):
            self.selected = int(answer) - 1
            self._decide(OPTIONS[self.selected][0])
            return True
        try:
            choice = Choice(answer)
        except ValueError:
            return False
        self._decide(choice)
        return True

    def abort(self) -> None:
        """Escape maps to stop."""
        if not self.closed:
            self._decide(Choice.STOP)

    def _decide(self, choice: Choice) -> None:
        if self.closed:
            return
        self.outcome = choice
        if choice is Choice.STOP:
            self._on_stop()
        else:
            self._on_continue(choice is Choice.SKIP)
