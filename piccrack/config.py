"""Application configuration loaded from YAML files."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any, Callable

import yaml


@dataclass
class PoolConfig:
    """Connection pool settings."""

    max_conns: int = 25
    min_conns: int = 5
    max_conn_lifetime: str = "1h"
    max_conn_idle_time: str = "30m"
    connect_timeout: str = "10s"
    dialer_keep_alive: str = "5s"


@dataclass
class DatabaseConfig:
    """Database connection settings."""

    user: str = ""
    password: str = ""
    host: str = ""
    port: str = ""
    name: str = ""
    pool: PoolConfig = field(default_factory=PoolConfig)


@dataclass
class APIConfig:
    """HTTP API server settings."""

    host: str = "0.0.0.0"
    port: str = "8080"
    tls_enabled: bool = False


@dataclass
class AppConfig:
    """General application settings."""

    environment: str = "development"


@dataclass
class Config:
    """The whole configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    http: APIConfig = field(default_factory=APIConfig)
    app: AppConfig = field(default_factory=AppConfig)


_TRUE_STRINGS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_STRINGS = {"", "0", "f", "F", "FALSE", "false", "False"}


def _as_str(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError as exc:
            raise ValueError(f"unmarshal config: cannot parse {value!r} as int") from exc
    raise ValueError(f"unmarshal config: cannot convert {value!r} to int")


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        if value in _TRUE_STRINGS:
            return True
        if value in _FALSE_STRINGS:
            return False
    raise ValueError(f"unmarshal config: cannot parse {value!r} as bool")


_CONVERTERS: dict[str, Callable[[Any], Any]] = {
    "str": _as_str,
    "int": _as_int,
    "bool": _as_bool,
}


def _lower_keys(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key).lower(): _lower_keys(item) for key, item in value.items()}
    return value


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"unmarshal config: {key!r} must be a mapping")
    return value


def _scalars(cls: type, data: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for item in fields(cls):
        converter = _CONVERTERS.get(str(item.type))
        if converter is None:
            continue
        raw = data.get(item.name)
        if raw is not None:
            values[item.name] = converter(raw)
    return values


def load(path: str) -> Config:
    """Read a YAML configuration file, filling in defaults for missing keys."""
    with open(os.path.normpath(path), encoding="utf-8") as handle:
        try:
            raw = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ValueError(f"reading config: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValueError("reading config: top level must be a mapping")
    data = _lower_keys(raw)

    database_data = _section(data, "database")
    pool = PoolConfig(**_scalars(PoolConfig, _section(database_data, "pool")))
    database = DatabaseConfig(pool=pool, **_scalars(DatabaseConfig, database_data))
    http = APIConfig(**_scalars(APIConfig, _section(data, "http")))
    app = AppConfig(**_scalars(AppConfig, _section(data, "app")))

    return Config(database=database, http=http, app=app)