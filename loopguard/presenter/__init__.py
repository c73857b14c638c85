"""Decision presenters — turn interruption events into operator choices."""

from loopguard.presenter.dialog import OPTIONS, Choice, DecisionDialog, reason_excerpt
from loopguard.presenter.terminal import TerminalPresenter, render_dialog

__all__ = [
    "Choice",
    "DecisionDialog",
    "OPTIONS",
    "TerminalPresenter",
    "reason_excerpt",
    "render_dialog",
]
