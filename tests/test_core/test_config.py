"""Tests for pingwatch/core/config.py — YAML, environment, overrides, bounds."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from pingwatch.core.config import (
    DEFAULT_HOSTS,
    ApiConfig,
    LoggingConfig,
    MonitorConfig,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    """Reset the global settings cache before each test."""
    reset_settings()


def _write_yaml(tmp_path: Path, data: dict[str, object]) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:
    def test_default_monitor_config(self) -> None:
        cfg = MonitorConfig()
        assert cfg.hosts == list(DEFAULT_HOSTS)
        assert cfg.interval_secs == 60
        assert cfg.timeout_ms == 5000
        assert cfg.retries == 3
        assert cfg.db_path == "./pingwatch.db"
        assert cfg.resolution_window == 10

    def test_default_api_config(self) -> None:
        cfg = ApiConfig()
        assert cfg.port == 3000
        assert cfg.password.get_secret_value() == ""

    def test_default_logging_config(self) -> None:
        cfg = LoggingConfig()
        assert cfg.level == "INFO"
        assert cfg.format == "json"

    def test_default_settings(self) -> None:
        s = Settings()
        assert s.monitor.retries == 3
        assert s.api.host == "0.0.0.0"


class TestHosts:
    def test_comma_separated_string(self) -> None:
        cfg = MonitorConfig(hosts=" a.example , b.example,,")  # type: ignore[arg-type]
        assert cfg.hosts == ["a.example", "b.example"]

    def test_empty_list_falls_back_to_defaults(self) -> None:
        assert MonitorConfig(hosts=[]).hosts == list(DEFAULT_HOSTS)

    def test_blank_string_falls_back_to_defaults(self) -> None:
        assert MonitorConfig(hosts="  ").hosts == list(DEFAULT_HOSTS)  # type: ignore[arg-type]

    def test_order_preserved(self) -> None:
        assert MonitorConfig(hosts=["z", "a", "m"]).hosts == ["z", "a", "m"]


class TestBounds:
    @pytest.mark.parametrize("field,value", [
        ("interval_secs", 9),
        ("interval_secs", 3601),
        ("timeout_ms", 999),
        ("timeout_ms", 30001),
        ("retries", 0),
        ("retries", 11),
        ("resolution_window", 0),
    ])
    def test_out_of_range_rejected(self, field: str, value: int) -> None:
        with pytest.raises(ValidationError):
            MonitorConfig(**{field: value})  # type: ignore[arg-type]

    def test_edges_accepted(self) -> None:
        cfg = MonitorConfig(interval_secs=10, timeout_ms=30000, retries=10)
        assert cfg.interval_secs == 10
        assert cfg.timeout_ms == 30000

    def test_api_port_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ApiConfig(port=80)


class TestLoadSettings:
    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        s = load_settings(tmp_path / "missing.yaml", environ={})
        assert s.monitor.retries == 3

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path, {
            "monitor": {"hosts": ["10.0.0.1"], "interval_secs": 30},
            "logging": {"level": "DEBUG", "format": "console"},
        })
        s = load_settings(path, environ={})
        assert s.monitor.hosts == ["10.0.0.1"]
        assert s.monitor.interval_secs == 30
        assert s.logging.format == "console"

    def test_env_overrides_yaml(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path, {"monitor": {"retries": 2}})
        s = load_settings(path, environ={
            "PINGWATCH_RETRIES": "5",
            "PINGWATCH_HOSTS": "a.example,b.example",
            "PINGWATCH_API_PORT": "8080",
        })
        assert s.monitor.retries == 5
        assert s.monitor.hosts == ["a.example", "b.example"]
        assert s.api.port == 8080

    def test_empty_env_value_ignored(self, tmp_path: Path) -> None:
        s = load_settings(tmp_path / "missing.yaml", environ={"PINGWATCH_TIMEOUT": ""})
        assert s.monitor.timeout_ms == 5000

    def test_overrides_beat_env(self, tmp_path: Path) -> None:
        s = load_settings(
            tmp_path / "missing.yaml",
            overrides={"monitor": {"retries": 7, "db_path": None}},
            environ={"PINGWATCH_RETRIES": "5", "PINGWATCH_DB_PATH": "/tmp/x.db"},
        )
        assert s.monitor.retries == 7
        assert s.monitor.db_path == "/tmp/x.db"

    def test_invalid_env_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ValidationError):
            load_settings(tmp_path / "missing.yaml", environ={"PINGWATCH_INTERVAL": "5"})

    def test_caches_settings(self, tmp_path: Path) -> None:
        s = load_settings(_write_yaml(tmp_path, {"monitor": {"retries": 4}}), environ={})
        assert get_settings() is s
