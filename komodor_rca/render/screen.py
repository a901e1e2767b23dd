"""Interactive full-screen renderer built on ``rich.live.Live``.

The screen keeps the latest session state and redraws it on its own
refresh timer (spinner and clock keep moving between polls). It never
triggers polls itself; the poll loop pushes events in and the refresh
thread only reads the current state.

When the console is not a terminal no live display is started; the final
report (or error) is printed once instead.
"""

from __future__ import annotations

import sys
from datetime import datetime

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.spinner import Spinner
from rich.text import Text

from komodor_rca.models.session import SessionSnapshot

_REFRESH_PER_SECOND: float = 8.0
_MAX_MESSAGES: int = 3

_STATUS_STYLES: dict[str, str] = {
    "Complete": "bold green",
    "In Progress": "yellow",
    "Stuck": "bold yellow",
    "Failed": "bold red",
}


class ScreenSink:
    """Event-driven interactive screen.

    Args:
        console:     rich Console to draw on. Defaults to stdout.
        interactive: Whether :meth:`wait_for_exit` should wait for Enter.
                     Defaults to whether stdin is a terminal.
    """

    def __init__(self, console: Console | None = None, interactive: bool | None = None) -> None:
        self._console = console or Console()
        self._interactive = sys.stdin.isatty() if interactive is None else interactive
        self._spinner = Spinner("dots", style="magenta")
        self._live: Live | None = None

        self._snapshot: SessionSnapshot | None = None
        self._poll_count = 0
        self._last_update: datetime | None = None
        self._complete = False
        self._progress = ""
        self._messages: list[str] = []
        self._error: str = ""

    # ------------------------------------------------------------------
    # RenderSink
    # ------------------------------------------------------------------

    def on_message(self, text: str) -> None:
        text = text.strip()
        if not text:
            return
        self._messages = [*self._messages, text][-_MAX_MESSAGES:]
        if not self._ensure_live():
            self._console.print(Text(text))

    def on_progress(self, text: str) -> None:
        self._progress = text
        self._ensure_live()

    def on_live_update(self, snapshot: SessionSnapshot, poll_count: int) -> None:
        self._snapshot = snapshot
        self._poll_count = poll_count
        self._last_update = datetime.now()
        self._progress = ""
        self._ensure_live()

    def on_final(self, snapshot: SessionSnapshot) -> None:
        self._snapshot = snapshot
        self._complete = True
        self._last_update = datetime.now()
        self._progress = ""
        if not self._ensure_live():
            self._console.print(self.render(with_messages=False))

    def on_error(self, message: str, error: BaseException) -> None:
        self._error = f"{message}: {error}"
        if not self._ensure_live():
            self._console.print(self.render(with_messages=False))

    def clear(self) -> None:
        # The live display redraws the whole frame on every refresh.
        pass

    def wait_for_exit(self) -> None:
        if self._interactive:
            if self._live is None:
                self._console.print("Press Enter to exit...", style="dim")
            sys.stdin.readline()
        self.close()

    def close(self) -> None:
        """Stop the live display and restore the terminal. Idempotent."""
        if self._live is None:
            return
        live, self._live = self._live, None
        live.stop()
        # The alternate screen is gone; leave the messages and the outcome in
        # the scrollback.
        for message in self._messages:
            self._console.print(Text(message))
        if self._error:
            self._console.print(Text(f"Error: {self._error}", style="bold red"))
        elif self._complete and self._snapshot is not None:
            self._console.print(self.render(with_messages=False))

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, *, with_messages: bool = True) -> RenderableType:
        """Build the current frame.

        Messages are left out when they have already been printed outside the
        live display.
        """
        if self._error:
            return Group(
                Text(f"Error: {self._error}", style="bold red"),
                Text(""),
                Text(self._exit_hint(), style="dim"),
            )

        parts: list[RenderableType] = [self._title(), self._meta_panel()]
        snapshot = self._snapshot
        if snapshot is not None:
            if snapshot.problem_summary:
                parts += [Text("Problem", style="bold magenta"), Text(f"  {snapshot.problem_summary}")]
            if snapshot.recommendation:
                parts += [Text("Recommendation", style="bold magenta"), Text(f"  {snapshot.recommendation}")]
        parts += self._numbered("What Happened", snapshot.timeline if snapshot else [])
        parts += self._evidence(snapshot)
        if not self._complete:
            parts += self._numbered("Operations", snapshot.operations_log if snapshot else [])
        if self._complete and snapshot is not None and snapshot.extra_fields:
            parts.append(Text("Additional Fields", style="bold magenta"))
            for key in sorted(snapshot.extra_fields):
                parts.append(Text(f"  - {key}: {snapshot.extra_fields[key]!r}"))

        parts.append(Text(""))
        if self._progress:
            parts.append(Text(self._progress, style="yellow"))
        if with_messages:
            parts += [Text(message, style="dim") for message in self._messages]
        if self._complete:
            parts.append(Text("Analysis Complete", style="bold green"))
        parts.append(Text(self._exit_hint(), style="dim"))
        return Group(*parts)

    def _title(self) -> RenderableType:
        if self._complete:
            return Text(" RCA ANALYSIS COMPLETED ", style="bold cyan on grey15")
        self._spinner.update(text=Text(" RCA ANALYSIS IN PROGRESS", style="bold cyan"))
        return self._spinner

    def _meta_panel(self) -> Panel:
        snapshot = self._snapshot
        status = "Complete" if self._complete else (snapshot.status_text if snapshot else "In Progress")
        last_update = (self._last_update or datetime.now()).strftime("%H:%M:%S")
        body = Text.assemble(
            ("Session ID: ", "grey50"),
            (snapshot.session_id if snapshot else "", "white"),
            "\n",
            ("Status: ", "grey50"),
            (status, _STATUS_STYLES.get(status, "white")),
            "\n",
            ("Poll Count: ", "grey50"),
            str(self._poll_count),
            (" | Last Update: ", "grey50"),
            (last_update, "white"),
        )
        return Panel(body, border_style="blue", expand=False)

    @staticmethod
    def _numbered(title: str, items: list[str]) -> list[RenderableType]:
        rows: list[RenderableType] = [Text(title, style="bold magenta")]
        if items:
            rows += [Text(f"  {i}. {item}") for i, item in enumerate(items, start=1)]
        else:
            rows.append(Text("  Waiting for data...", style="grey50"))
        return rows

    @staticmethod
    def _evidence(snapshot: SessionSnapshot | None) -> list[RenderableType]:
        rows: list[RenderableType] = [Text("Evidence", style="bold magenta")]
        evidence = snapshot.evidence if snapshot else []
        if not evidence:
            rows.append(Text("  Waiting for data...", style="grey50"))
            return rows
        for i, item in enumerate(evidence, start=1):
            content = Text(f"{i}. {item.query}", style="bold sky_blue1")
            if item.snippet:
                content.append(f"\n   -> {item.snippet}", style="italic")
            rows.append(Panel(content, border_style="grey35", expand=False))
        return rows

    def _exit_hint(self) -> str:
        if self._complete or self._error:
            return "Press Enter or Ctrl+C to exit"
        return "Press Ctrl+C to stop monitoring"

    def _ensure_live(self) -> bool:
        """Start the live display if possible. Returns whether it is running."""
        if self._live is not None:
            return True
        if not self._console.is_terminal:
            return False
        self._live = Live(
            console=self._console,
            screen=True,
            auto_refresh=True,
            refresh_per_second=_REFRESH_PER_SECOND,
            get_renderable=self.render,
        )
        self._live.start()
        return True
