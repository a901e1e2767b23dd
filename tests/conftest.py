"""Shared pytest configuration.

structlog's default configuration prints to stdout, which would mix log
lines into renderer output captured by the tests. Route logs to a file.
"""

from __future__ import annotations

import os

import pytest

from komodor_rca.observability.logging import setup_logging


@pytest.fixture(autouse=True, scope="session")
def _log_to_file(tmp_path_factory: pytest.TempPathFactory) -> None:
    setup_logging("debug", tmp_path_factory.mktemp("logs") / "komodor-rca.log")


class RecordingSink:
    """RenderSink that records every event as ``(kind, payload)`` tuples."""

    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []
        self.closed = 0

    def on_message(self, text: str) -> None:
        self.events.append(("message", text))

    def on_progress(self, text: str) -> None:
        self.events.append(("progress", text))

    def on_live_update(self, snapshot: object, poll_count: int) -> None:
        self.events.append(("live", poll_count))

    def on_final(self, snapshot: object) -> None:
        self.events.append(("final", snapshot))

    def on_error(self, message: str, error: BaseException) -> None:
        self.events.append(("error", f"{message}: {error}"))

    def clear(self) -> None:
        self.events.append(("clear", None))

    def wait_for_exit(self) -> None:
        self.events.append(("wait", None))

    def close(self) -> None:
        self.closed += 1

    def kinds(self, kind: str) -> list[object]:
        return [payload for k, payload in self.events if k == kind]


@pytest.fixture()
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def isolated_environ(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Swap os.environ for a copy so variables set during a test do not leak."""
    environ = dict(os.environ)
    monkeypatch.setattr(os, "environ", environ)
    return environ
