"""Line-oriented console renderer.

Prints with ``click.echo``; styling is dropped automatically when stdout is
not a terminal. Live updates redraw the whole report; progress text is
written on a single carriage-return line that the next progress text
overwrites.
"""

from __future__ import annotations

import sys
from datetime import datetime

import click

from komodor_rca.models.session import EvidenceItem, SessionSnapshot

_RULE_WIDTH = 40

_STATUS_COLORS: dict[str, str] = {
    "Complete": "green",
    "In Progress": "yellow",
    "Stuck": "yellow",
    "Failed": "red",
}


def _styled_status(status: str) -> str:
    return click.style(status, fg=_STATUS_COLORS.get(status, "white"), bold=True)


def _heading(text: str) -> str:
    return click.style(text, bold=True)


def _format_value(value: object) -> str:
    if isinstance(value, str):
        return value
    return repr(value)


class ConsoleSink:
    """Blocking console renderer.

    Args:
        interactive: Whether :meth:`wait_for_exit` should wait for Enter.
                     Defaults to whether stdin is a terminal.
    """

    def __init__(self, interactive: bool | None = None) -> None:
        self._interactive = sys.stdin.isatty() if interactive is None else interactive
        self._progress_width = 0

    # ------------------------------------------------------------------
    # RenderSink
    # ------------------------------------------------------------------

    def on_message(self, text: str) -> None:
        self._end_progress_line()
        click.echo(text)

    def on_progress(self, text: str) -> None:
        padding = " " * max(0, self._progress_width - len(text))
        click.echo(f"\r{text}{padding}", nl=False)
        self._progress_width = len(text)

    def on_live_update(self, snapshot: SessionSnapshot, poll_count: int) -> None:
        self._end_progress_line()
        now = datetime.now().strftime("%H:%M:%S")
        click.echo(click.style("RCA ANALYSIS IN PROGRESS", bold=True, fg="cyan"))
        click.echo("=" * _RULE_WIDTH)
        click.echo(f"Poll Count: {poll_count} | Last Update: {now}")
        click.echo(f"Session ID: {snapshot.session_id}")
        click.echo(f"Status: {_styled_status(snapshot.status_text)}")
        click.echo("")
        self._print_summary(snapshot)
        self._print_list("What Happened:", snapshot.timeline, "Waiting for data...")
        self._print_evidence(snapshot.evidence, "Waiting for data...")
        self._print_list("Operations:", snapshot.operations_log, "Waiting for data...")
        click.echo("=" * _RULE_WIDTH)
        click.echo(click.style("Press Ctrl+C to stop monitoring", fg="bright_black"))

    def on_final(self, snapshot: SessionSnapshot) -> None:
        self._end_progress_line()
        completed_at = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        click.echo(click.style("RCA ANALYSIS COMPLETED", bold=True, fg="green"))
        click.echo("=" * _RULE_WIDTH)
        click.echo(f"Session ID: {snapshot.session_id}")
        click.echo(f"Completed at: {completed_at}")
        click.echo("")
        self._print_summary(snapshot)
        self._print_list("What Happened:", snapshot.timeline, "No what happened data available")
        self._print_evidence(snapshot.evidence, "No evidence queries found")
        self._print_list("Operations Performed:", snapshot.operations_log, "No operations data available")

        extras = snapshot.extra_fields
        if extras:
            click.echo(_heading("Additional Fields:"))
            for key in sorted(extras):
                click.echo(f"  - {key}: {_format_value(extras[key])}")
            click.echo("")
        click.echo("=" * _RULE_WIDTH)

    def on_error(self, message: str, error: BaseException) -> None:
        self._end_progress_line()
        click.echo(click.style(f"Error: {message}: {error}", fg="red", bold=True))

    def clear(self) -> None:
        self._end_progress_line()
        click.clear()

    def wait_for_exit(self) -> None:
        self._end_progress_line()
        if not self._interactive:
            return
        click.echo("")
        click.echo("Press Enter to exit...")
        sys.stdin.readline()

    def close(self) -> None:
        self._end_progress_line()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _end_progress_line(self) -> None:
        if self._progress_width:
            click.echo("")
            self._progress_width = 0

    @staticmethod
    def _print_summary(snapshot: SessionSnapshot) -> None:
        if snapshot.problem_summary:
            click.echo(f"{_heading('Problem:')} {snapshot.problem_summary}")
        if snapshot.recommendation:
            click.echo(f"{_heading('Recommendation:')} {snapshot.recommendation}")
        if snapshot.problem_summary or snapshot.recommendation:
            click.echo("")

    @staticmethod
    def _print_list(title: str, items: list[str], empty_text: str) -> None:
        click.echo(_heading(title))
        if items:
            for i, item in enumerate(items, start=1):
                click.echo(f"  {i}. {item}")
        else:
            click.echo(click.style(f"  {empty_text}", fg="bright_black"))
        click.echo("")

    @staticmethod
    def _print_evidence(evidence: list[EvidenceItem], empty_text: str) -> None:
        click.echo(_heading("Evidence:"))
        if evidence:
            for i, item in enumerate(evidence, start=1):
                click.echo(f"  {i}. {click.style(item.query, fg='cyan')}")
                if item.snippet:
                    click.echo(click.style(f"     -> {item.snippet}", italic=True))
        else:
            click.echo(click.style(f"  {empty_text}", fg="bright_black"))
        click.echo("")
