"""Prometheus metrics for komodor-rca.

The process is short-lived, so nothing is served over HTTP. Set
``KOMODOR_METRICS_FILE`` to have the registry written on exit in the
node-exporter textfile collector format.
"""

from __future__ import annotations

from pathlib import Path

from prometheus_client import REGISTRY, Counter, Histogram, write_to_textfile

# Trigger metrics
sessions_triggered_total = Counter(
    "komodor_rca_sessions_triggered_total",
    "Total RCA session trigger attempts",
    ["outcome"],  # success | rejected | empty_session
)

# Poll metrics
polls_total = Counter(
    "komodor_rca_polls_total",
    "Total poll iterations",
    ["outcome"],  # success | transient_failure
)

poll_duration_seconds = Histogram(
    "komodor_rca_poll_duration_seconds",
    "Duration of a single session status request",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 360.0),
)

poll_loop_outcomes_total = Counter(
    "komodor_rca_poll_loop_outcomes_total",
    "Terminal states reached by the poll loop",
    ["state"],
)

# Cluster resolution metrics
cluster_resolutions_total = Counter(
    "komodor_rca_cluster_resolutions_total",
    "Cluster name resolutions by matching strategy",
    ["strategy"],  # cache | name | uid | none
)


def write_metrics(path: Path) -> None:
    """Write the default registry to *path* (atomic, textfile format)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    write_to_textfile(str(path), REGISTRY)
