"""Rich terminal presenter for interruption requests.

Listens for interruption_requested on the bus, draws the warning panel
and reads the operator's choice from the console. Blocking console reads
run in a worker thread so the event loop keeps serving other tasks.

Every dialog answers only the suspension it was opened for. When that
suspension is settled some other way (timeout, REST) the dialog is
dismissed and a late answer is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from rich.console import Console, Group
from rich.panel import Panel
from rich.prompt import Prompt
from rich.text import Text

from loopguard.classifier.rubric import MAX_SCORE
from loopguard.events import INTERRUPTION_REQUESTED, INTERRUPTION_RESOLVED, Event, EventBus
from loopguard.interrupts.coordinator import InterruptionCoordinator
from loopguard.interrupts.schemas import InterruptionRequest
from loopguard.presenter.dialog import OPTIONS, DecisionDialog

logger = logging.getLogger(__name__)


def render_dialog(dialog: DecisionDialog) -> Panel:
    """Build the warning panel for a dialog."""
    body: list[Text] = [
        Text("AGENT STATUS: ALERT DETECTED", style="bold red", justify="center"),
        Text(""),
        Text("HEALTH SCORE", style="red", justify="center"),
        Text(f"{dialog.score}/{MAX_SCORE}", style="bold red", justify="center"),
        Text(""),
        Text("ANALYSIS", style="red", justify="center"),
    ]
    excerpt = dialog.excerpt or ["(no rationale given)"]
    body.extend(Text(line, style="dim", justify="center", overflow="ellipsis", no_wrap=True) for line in excerpt)
    body.append(Text(""))
    body.append(Text(f"{dialog.message_count} MESSAGES ANALYZED", style="yellow", justify="center"))
    body.append(Text(""))

    for idx, (_, label) in enumerate(OPTIONS):
        style = "black on red" if idx == dialog.selected else "white"
        body.append(Text(f" {idx + 1}. {label} ", style=style, justify="center"))

    body.append(Text(""))
    body.append(Text("1-3 SELECT | stop / continue / skip | q ABORT", style="cyan", justify="center"))
    return Panel(Group(*body), title="[bold red]WARNING[/]", border_style="red", padding=(1, 2))


class TerminalPresenter:
    """Presents each interruption on a rich console and reports the decision.

    read_choice is injectable for tests; it is called in a worker thread.
    """

    def __init__(
        self,
        bus: EventBus,
        coordinator: InterruptionCoordinator,
        console: Console | None = None,
        *,
        excerpt_lines: int = 2,
        read_choice: Callable[[], str] | None = None,
    ):
        self._coordinator = coordinator
        self._console = console or Console()
        self._excerpt_lines = excerpt_lines
        self._read_choice = read_choice or self._prompt
        self._dialogs: dict[str | None, DecisionDialog] = {}
        self._tasks: set[asyncio.Task] = set()
        bus.on(INTERRUPTION_REQUESTED, self.handle)
        bus.on(INTERRUPTION_RESOLVED, self.handle_resolved)

    async def handle(self, event: Event) -> None:
        """Handle interruption_requested — open a dialog for that suspension.

        The console is read in a separate task so the bus keeps dispatching.
        """
        interruption_id = event.data.get("interruption_id")
        request = InterruptionRequest.model_validate(event.data)
        dialog = DecisionDialog(
            request,
            on_continue=lambda skip: self._coordinator.respond_to_interruption(
                True, skip, interruption_id=interruption_id
            ),
            on_stop=lambda: self._coordinator.respond_to_interruption(
                False, interruption_id=interruption_id
            ),
            excerpt_lines=self._excerpt_lines,
        )
        self._dialogs[interruption_id] = dialog
        task = asyncio.create_task(self._present(dialog, interruption_id), name="decision-dialog")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def handle_resolved(self, event: Event) -> None:
        """Handle interruption_resolved — dismiss the dialog if still open."""
        dialog = self._dialogs.pop(event.data.get("interruption_id"), None)
        if dialog is not None and not dialog.closed:
            logger.info("Interruption settled without operator input, dismissing dialog")
            dialog.dismiss()
            self._console.print("[yellow]Decision no longer needed; input ignored.[/]")

    async def wait_idle(self) -> None:
        """Wait for every open dialog to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.wait_idle()
        self._dialogs.clear()

    async def _present(self, dialog: DecisionDialog, interruption_id: str | None) -> None:
        self._console.print(render_dialog(dialog))
        try:
            while not dialog.closed:
                try:
                    answer = await asyncio.to_thread(self._read_choice)
                except (EOFError, KeyboardInterrupt):
                    logger.info("Console input closed, stopping agent")
                    dialog.abort()
                    break
                if dialog.closed:
                    break
                if not dialog.submit(answer):
                    self._console.print(f"[red]Unknown choice:[/] {answer!r}")
        finally:
            if self._dialogs.get(interruption_id) is dialog:
                del self._dialogs[interruption_id]

        if dialog.outcome is not None:
            logger.info("Operator chose %s (score=%d)", dialog.outcome, dialog.score)

    def _prompt(self) -> str:
        return Prompt.ask("[bold red]Decision[/]", console=self._console)
