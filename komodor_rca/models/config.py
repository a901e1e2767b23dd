"""Runtime configuration for komodor-rca."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from komodor_rca.models.session import SessionRequest

DEFAULT_BASE_URL = "https://api.komodor.com"
DEFAULT_CONFIG_DIR = Path.home() / ".k9s-komodor-rca"
DEFAULT_MAPPING_FILE = DEFAULT_CONFIG_DIR / "clusters.yaml"
DEFAULT_LOG_FILE = Path.home() / ".k9s_komodor_logs.txt"


@dataclass(frozen=True)
class RCAConfig:
    """Resolved configuration for one run.

    ``cluster_name`` is the *local* cluster name; the Komodor-side name is
    produced later by the cluster resolver.
    """

    api_key: str = ""
    cluster_name: str = ""
    base_url: str = DEFAULT_BASE_URL
    namespace: str = ""
    name: str = ""
    kind: str = ""
    ui: str = "console"
    log_level: str = "info"
    log_file: Path = DEFAULT_LOG_FILE
    mapping_file: Path = DEFAULT_MAPPING_FILE
    metrics_file: Path | None = None

    def session_request(self, cluster_name: str) -> SessionRequest:
        """Build the RCA request for the resolved Komodor cluster name."""
        return SessionRequest(
            namespace=self.namespace,
            name=self.name,
            kind=self.kind,
            cluster_name=cluster_name,
        )
