"""Render sink capability interface.

The poll loop pushes every user-visible event through a ``RenderSink``.
Implementations are picked at startup (see :func:`komodor_rca.render.create_sink`)
and only need to provide these methods; no base class is required.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from komodor_rca.models.session import SessionSnapshot


@runtime_checkable
class RenderSink(Protocol):
    """Consumer of poll loop events."""

    def on_message(self, text: str) -> None:
        """A persistent informational line."""

    def on_progress(self, text: str) -> None:
        """An ephemeral status line; the next progress text replaces it."""

    def on_live_update(self, snapshot: SessionSnapshot, poll_count: int) -> None:
        """Session content changed since the last update."""

    def on_final(self, snapshot: SessionSnapshot) -> None:
        """The session completed; *snapshot* is the final result."""

    def on_error(self, message: str, error: BaseException) -> None:
        """A fatal error ended the run."""

    def clear(self) -> None:
        """Clear whatever the sink is currently showing."""

    def wait_for_exit(self) -> None:
        """Block until the user acknowledges the end of the run."""

    def close(self) -> None:
        """Release the terminal. Safe to call more than once."""
