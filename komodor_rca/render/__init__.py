"""Render sinks: console and interactive screen."""

from __future__ import annotations

from komodor_rca.errors import ConfigError
from komodor_rca.render.base import RenderSink
from komodor_rca.render.console import ConsoleSink
from komodor_rca.render.screen import ScreenSink

__all__ = ["ConsoleSink", "RenderSink", "ScreenSink", "create_sink"]


def create_sink(ui: str) -> RenderSink:
    """Return the sink for *ui* (``console`` or ``screen``)."""
    if ui == "console":
        return ConsoleSink()
    if ui == "screen":
        return ScreenSink()
    raise ConfigError(f"unknown ui: {ui!r}")
