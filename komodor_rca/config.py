"""Configuration loading from CLI flags and environment variables.

A non-empty flag value always wins over its environment variable.

Environment variables:
    KOMODOR_API_KEY               Komodor API key.
    KOMODOR_CLUSTER_NAME          Local cluster name (as k9s/kubectl see it).
    KOMODOR_BASE_URL              API base URL (default https://api.komodor.com).
    NAMESPACE, NAME, KIND         Target resource (set by k9s for plugins).
    KOMODOR_UI                    ``console`` or ``screen``.
    KOMODOR_LOG_LEVEL             debug | info | warning | error.
    KOMODOR_LOG_FILE              Log file path.
    KOMODOR_CLUSTER_MAPPING_FILE  Cluster mapping YAML path.
    KOMODOR_METRICS_FILE          If set, Prometheus textfile written on exit.

Any of these may also come from a ``.env`` file in the working directory or
in ``~/.k9s-komodor-rca/``; see :func:`load_env_files`.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from dotenv import load_dotenv

from komodor_rca.errors import ConfigError
from komodor_rca.models.config import (
    DEFAULT_BASE_URL,
    DEFAULT_CONFIG_DIR,
    DEFAULT_LOG_FILE,
    DEFAULT_MAPPING_FILE,
    RCAConfig,
)

_VALID_LOG_LEVELS: frozenset[str] = frozenset({"debug", "info", "warning", "error"})
_VALID_UIS: frozenset[str] = frozenset({"console", "screen"})

# Earlier files win: a variable is never overwritten once set.
DEFAULT_ENV_FILES: tuple[Path, ...] = (Path(".env"), DEFAULT_CONFIG_DIR / ".env")


def load_env_files(paths: Iterable[Path] | None = None) -> list[Path]:
    """Load ``KEY=value`` files into the process environment.

    Variables that are already set are left alone. Missing files are
    skipped. Returns the files that were read.
    """
    loaded: list[Path] = []
    for path in DEFAULT_ENV_FILES if paths is None else paths:
        if not path.is_file():
            continue
        load_dotenv(path, override=False)
        loaded.append(path)
    return loaded


def _flag_or_env(flag: str | None, env_var: str, default: str = "") -> str:
    if flag:
        return flag
    value = os.environ.get(env_var, "")
    if value:
        return value
    return default


def _path_from_env(env_var: str, default: Path) -> Path:
    value = os.environ.get(env_var, "").strip()
    return Path(value).expanduser() if value else default


def load_config(
    *,
    api_key: str | None = None,
    cluster: str | None = None,
    base_url: str | None = None,
    namespace: str | None = None,
    name: str | None = None,
    kind: str | None = None,
    ui: str | None = None,
    log_level: str | None = None,
) -> RCAConfig:
    """Build an RCAConfig from flags, falling back to the environment.

    Raises ConfigError for invalid ``ui`` or ``log_level`` values. Missing
    required inputs are reported by :func:`validate_config`, not here.
    """
    resolved_log_level = _flag_or_env(log_level, "KOMODOR_LOG_LEVEL", "info").strip().lower()
    if resolved_log_level not in _VALID_LOG_LEVELS:
        raise ConfigError(
            f"log level must be one of {', '.join(sorted(_VALID_LOG_LEVELS))}, got: {resolved_log_level!r}"
        )

    resolved_ui = _flag_or_env(ui, "KOMODOR_UI", "console").strip().lower()
    if resolved_ui not in _VALID_UIS:
        raise ConfigError(f"ui must be one of {', '.join(sorted(_VALID_UIS))}, got: {resolved_ui!r}")

    metrics_file = os.environ.get("KOMODOR_METRICS_FILE", "").strip()

    return RCAConfig(
        api_key=_flag_or_env(api_key, "KOMODOR_API_KEY"),
        cluster_name=_flag_or_env(cluster, "KOMODOR_CLUSTER_NAME"),
        base_url=_flag_or_env(base_url, "KOMODOR_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        namespace=_flag_or_env(namespace, "NAMESPACE"),
        name=_flag_or_env(name, "NAME"),
        kind=_flag_or_env(kind, "KIND"),
        ui=resolved_ui,
        log_level=resolved_log_level,
        log_file=_path_from_env("KOMODOR_LOG_FILE", DEFAULT_LOG_FILE),
        mapping_file=_path_from_env("KOMODOR_CLUSTER_MAPPING_FILE", DEFAULT_MAPPING_FILE),
        metrics_file=Path(metrics_file).expanduser() if metrics_file else None,
    )


def validate_config(config: RCAConfig) -> None:
    """Raise ConfigError naming the first missing required input."""
    if not config.api_key:
        raise ConfigError("KOMODOR_API_KEY environment variable is required")
    if not config.cluster_name:
        raise ConfigError("KOMODOR_CLUSTER_NAME environment variable is required")
    if not config.namespace:
        raise ConfigError("namespace is required (use --namespace flag)")
    if not config.name:
        raise ConfigError("name is required (use --name flag)")
    if not config.kind:
        raise ConfigError("kind is required (use --kind flag)")
