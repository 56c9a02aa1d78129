"""Pydantic settings loaded from YAML, environment, and CLI overrides."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")

DEFAULT_HOSTS: tuple[str, ...] = ("8.8.8.8", "google.com", "github.com")

ENV_PREFIX = "PINGWATCH_"

# Environment variable suffix -> (section, field)
_ENV_FIELDS: dict[str, tuple[str, str]] = {
    "HOSTS": ("monitor", "hosts"),
    "INTERVAL": ("monitor", "interval_secs"),
    "TIMEOUT": ("monitor", "timeout_ms"),
    "RETRIES": ("monitor", "retries"),
    "DB_PATH": ("monitor", "db_path"),
    "API_PORT": ("api", "port"),
    "LOG_LEVEL": ("logging", "level"),
}


class MonitorConfig(BaseModel):
    """What to probe, how often, and where incidents are stored."""

    hosts: list[str] = Field(default_factory=lambda: list(DEFAULT_HOSTS))
    interval_secs: int = Field(default=60, ge=10, le=3600)
    timeout_ms: int = Field(default=5000, ge=1000, le=30000)
    retries: int = Field(default=3, ge=1, le=10)
    db_path: str = "./pingwatch.db"
    resolution_window: int = Field(default=10, ge=1)

    @field_validator("hosts", mode="before")
    @classmethod
    def _split_hosts(cls, value: Any) -> Any:
        if value is None:
            return list(DEFAULT_HOSTS)
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple)):
            hosts = [str(h).strip() for h in value if str(h).strip()]
            return hosts or list(DEFAULT_HOSTS)
        return value


class ApiConfig(BaseModel):
    """HTTP query API configuration."""

    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1024, le=65535)
    username: str = ""
    password: SecretStr = SecretStr("")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container."""

    monitor: MonitorConfig = MonitorConfig()
    api: ApiConfig = ApiConfig()
    logging: LoggingConfig = LoggingConfig()


def _env_overrides(environ: Mapping[str, str]) -> dict[str, dict[str, str]]:
    """Collect ``PINGWATCH_*`` variables into a nested settings dict.

    Empty values are treated as unset.
    """
    data: dict[str, dict[str, str]] = {}
    for suffix, (section, field) in _ENV_FIELDS.items():
        raw = environ.get(ENV_PREFIX + suffix, "").strip()
        if raw:
            data.setdefault(section, {})[field] = raw
    return data


def _merge(base: dict[str, Any], extra: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in extra.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        elif value is not None:
            merged[key] = value
    return merged


def load_settings(
    path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings and cache them globally.

    Sources are layered in order: YAML file, ``PINGWATCH_*`` environment
    variables, then explicit overrides (usually CLI flags). ``None`` values
    in overrides are ignored so unset flags fall through.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.
        overrides: Nested dict, e.g. ``{"monitor": {"retries": 5}}``.
        environ: Environment mapping. Defaults to ``os.environ``.

    Returns:
        Parsed Settings instance.

    Raises:
        pydantic.ValidationError: If any value is out of bounds.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    data = _merge(data, _env_overrides(os.environ if environ is None else environ))
    if overrides:
        data = _merge(data, overrides)

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
