"""Persisted local -> Komodor cluster name mapping.

File format (YAML)::

    mapping:
      my-kind-cluster: production-eu-1
      "arn:aws:eks:us-east-1:1234:cluster/prod": prod-us

A missing, empty, unreadable or malformed file is an empty mapping.
Writes replace the whole file atomically (temp file + ``os.replace``), so
an interrupted run never leaves a half-written mapping behind.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import yaml

from komodor_rca.observability.logging import get_logger

_logger = get_logger("cluster.mapping")

_MAPPING_KEY = "mapping"


class ClusterMappingStore:
    """Reads and writes the cluster mapping file at *path*."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, str]:
        """Return the stored mapping. Never raises."""
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            _logger.warning("cluster_mapping_unreadable", path=str(self._path), error=str(exc))
            return {}
        except UnicodeDecodeError as exc:
            _logger.warning("cluster_mapping_malformed", path=str(self._path), error=str(exc))
            return {}

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            _logger.warning("cluster_mapping_malformed", path=str(self._path), error=str(exc))
            return {}

        if data is None:
            return {}
        if not isinstance(data, dict):
            _logger.warning("cluster_mapping_malformed", path=str(self._path), error="top level is not a mapping")
            return {}

        raw = data.get(_MAPPING_KEY)
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            _logger.warning("cluster_mapping_malformed", path=str(self._path), error="'mapping' is not a mapping")
            return {}

        mapping: dict[str, str] = {}
        for local_name, remote_name in raw.items():
            if isinstance(local_name, str) and isinstance(remote_name, str) and remote_name:
                mapping[local_name] = remote_name
            else:
                _logger.warning("cluster_mapping_entry_skipped", local_name=str(local_name))
        return mapping

    def save(self, mapping: dict[str, str]) -> None:
        """Replace the file with *mapping*.

        Raises OSError if the directory or file cannot be written.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = yaml.safe_dump({_MAPPING_KEY: dict(mapping)}, default_flow_style=False, sort_keys=True)

        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
