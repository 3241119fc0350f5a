"""Application configuration read from a YAML file."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

DEFAULT_HTTP_PORT = 8000


@dataclass
class HttpConfig:
    """HTTP server settings."""

    port: int = 0

    def with_defaults(self) -> HttpConfig:
        """Return a copy with a non-positive port replaced by the default."""
        if self.port <= 0:
            return replace(self, port=DEFAULT_HTTP_PORT)
        return replace(self)


@dataclass
class DatabaseConfig:
    """Database driver and connection string."""

    driver: str = ""
    connection: str = ""


@dataclass
class Config:
    """Top-level configuration; the log section is kept as read."""

    log: dict[str, Any] = field(default_factory=dict)
    http: HttpConfig = field(default_factory=HttpConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"config section {key!r} must be a mapping")
    return value


def _as_int(value: Any, name: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"config value {name!r} must be an integer")
    return value


def _as_str(value: Any, name: str) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ValueError(f"config value {name!r} must be a scalar")
    return str(value)


def read_config(file: str | Path) -> Config:
    """Read and parse the YAML configuration file."""
    data = yaml.safe_load(Path(file).read_text(encoding="utf-8"))
    if data is None:
        return Config()
    if not isinstance(data, dict):
        raise ValueError("config document must be a mapping")

    http = _section(data, "http")
    database = _section(data, "database")
    return Config(
        log=dict(_section(data, "log")),
        http=HttpConfig(port=_as_int(http.get("port"), "http.port")),
        database=DatabaseConfig(
            driver=_as_str(database.get("driver"), "database.driver"),
            connection=_as_str(database.get("connection"), "database.connection"),
        ),
    )