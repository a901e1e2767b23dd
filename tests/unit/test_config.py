"""Tests for komodor_rca.config: flag/env precedence and validation."""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path

import pytest

from komodor_rca.config import load_config, load_env_files, validate_config
from komodor_rca.errors import ConfigError
from komodor_rca.models.config import DEFAULT_BASE_URL, DEFAULT_MAPPING_FILE, RCAConfig

_ENV_VARS = (
    "KOMODOR_API_KEY",
    "KOMODOR_CLUSTER_NAME",
    "KOMODOR_BASE_URL",
    "NAMESPACE",
    "NAME",
    "KIND",
    "KOMODOR_UI",
    "KOMODOR_LOG_LEVEL",
    "KOMODOR_LOG_FILE",
    "KOMODOR_CLUSTER_MAPPING_FILE",
    "KOMODOR_METRICS_FILE",
)


@pytest.fixture(autouse=True)
def _clean_env(isolated_environ: dict[str, str]) -> None:
    for var in _ENV_VARS:
        isolated_environ.pop(var, None)


def _valid_config() -> RCAConfig:
    return RCAConfig(api_key="k", cluster_name="c", namespace="ns", name="n", kind="Pod")


class TestLoadConfig:
    def test_defaults(self) -> None:
        config = load_config()
        assert config.api_key == ""
        assert config.base_url == DEFAULT_BASE_URL
        assert config.ui == "console"
        assert config.log_level == "info"
        assert config.mapping_file == DEFAULT_MAPPING_FILE
        assert config.metrics_file is None

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KOMODOR_API_KEY", "env-key")
        monkeypatch.setenv("KOMODOR_CLUSTER_NAME", "kind-dev")
        monkeypatch.setenv("NAMESPACE", "default")
        monkeypatch.setenv("NAME", "web")
        monkeypatch.setenv("KIND", "Pod")

        config = load_config()

        assert config.api_key == "env-key"
        assert config.cluster_name == "kind-dev"
        assert (config.namespace, config.name, config.kind) == ("default", "web", "Pod")

    def test_flag_wins_over_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KOMODOR_API_KEY", "env-key")
        monkeypatch.setenv("NAMESPACE", "env-ns")

        config = load_config(api_key="flag-key", namespace="flag-ns")

        assert config.api_key == "flag-key"
        assert config.namespace == "flag-ns"

    def test_empty_flag_falls_back_to_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KIND", "Deployment")
        assert load_config(kind="").kind == "Deployment"

    def test_base_url_trailing_slash_removed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KOMODOR_BASE_URL", "https://eu.api.komodor.com/")
        assert load_config().base_url == "https://eu.api.komodor.com"

    def test_paths_from_environment(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("KOMODOR_LOG_FILE", str(tmp_path / "rca.log"))
        monkeypatch.setenv("KOMODOR_CLUSTER_MAPPING_FILE", str(tmp_path / "map.yaml"))
        monkeypatch.setenv("KOMODOR_METRICS_FILE", str(tmp_path / "rca.prom"))

        config = load_config()

        assert config.log_file == tmp_path / "rca.log"
        assert config.mapping_file == tmp_path / "map.yaml"
        assert config.metrics_file == tmp_path / "rca.prom"

    def test_ui_and_log_level_normalised(self) -> None:
        config = load_config(ui="SCREEN", log_level="DEBUG")
        assert config.ui == "screen"
        assert config.log_level == "debug"

    def test_invalid_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KOMODOR_LOG_LEVEL", "verbose")
        with pytest.raises(ConfigError, match="log level"):
            load_config()

    def test_invalid_ui(self) -> None:
        with pytest.raises(ConfigError, match="ui must be one of"):
            load_config(ui="gui")

    def test_missing_inputs_not_rejected_at_load(self) -> None:
        load_config()


class TestValidateConfig:
    def test_complete_config_passes(self) -> None:
        validate_config(_valid_config())

    @pytest.mark.parametrize(
        ("field", "message"),
        [
            ("api_key", "KOMODOR_API_KEY environment variable is required"),
            ("cluster_name", "KOMODOR_CLUSTER_NAME environment variable is required"),
            ("namespace", "namespace is required (use --namespace flag)"),
            ("name", "name is required (use --name flag)"),
            ("kind", "kind is required (use --kind flag)"),
        ],
    )
    def test_missing_field(self, field: str, message: str) -> None:
        with pytest.raises(ConfigError) as excinfo:
            validate_config(replace(_valid_config(), **{field: ""}))
        assert str(excinfo.value) == message

    def test_first_missing_field_reported(self) -> None:
        with pytest.raises(ConfigError, match="KOMODOR_API_KEY"):
            validate_config(RCAConfig())

    def test_session_request_uses_resolved_cluster(self) -> None:
        request = _valid_config().session_request("komodor-name")
        assert request.cluster_name == "komodor-name"
        assert request.kind == "Pod"


class TestLoadEnvFiles:
    def test_values_picked_up(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("KOMODOR_API_KEY=file-key\nKOMODOR_CLUSTER_NAME=kind-dev\n")

        assert load_env_files([env_file]) == [env_file]

        config = load_config()
        assert config.api_key == "file-key"
        assert config.cluster_name == "kind-dev"

    def test_existing_environment_not_overridden(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KOMODOR_API_KEY", "env-key")
        env_file = tmp_path / ".env"
        env_file.write_text("KOMODOR_API_KEY=file-key\n")

        load_env_files([env_file])

        assert os.environ["KOMODOR_API_KEY"] == "env-key"

    def test_first_file_wins(self, tmp_path: Path) -> None:
        local = tmp_path / "local.env"
        local.write_text("KIND=Deployment\n")
        home = tmp_path / "home.env"
        home.write_text("KIND=Pod\nNAMESPACE=default\n")

        load_env_files([local, home])

        assert os.environ["KIND"] == "Deployment"
        assert os.environ["NAMESPACE"] == "default"

    def test_missing_files_skipped(self, tmp_path: Path) -> None:
        assert load_env_files([tmp_path / "absent.env", tmp_path]) == []

    def test_working_directory_file_used_by_default(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".env").write_text("NAME=web\n")

        load_env_files()

        assert os.environ["NAME"] == "web"
