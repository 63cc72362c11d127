"""Configuration management for the userhub API."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .proxy import DEFAULT_SERVICE_URL
from .query import normalize_base_url
from .transport import DEFAULT_TIMEOUT, TRANSPORTS

ENV_PREFIX = "USERHUB_"
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_flag(value: object, key: str) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value for '{key}': {value!r}")


def _parse_port(value: object) -> int:
    try:
        port = int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid port: {value!r}") from exc
    if not 1 <= port <= 65535:
        raise ValueError(f"Port must be between 1 and 65535, got {port}")
    return port


def _parse_timeout(value: object) -> Optional[float]:
    if value is None or str(value).strip().lower() in {"", "none"}:
        return None
    try:
        timeout = float(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid service timeout: {value!r}") from exc
    if timeout <= 0:
        raise ValueError("Service timeout must be positive")
    return timeout


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the API process."""

    host: str = "0.0.0.0"
    port: int = 8080
    service_url: str = DEFAULT_SERVICE_URL
    service_timeout: Optional[float] = DEFAULT_TIMEOUT
    transport: str = "httpx"
    report_outages: bool = False
    connect_on_startup: bool = True

    @staticmethod
    def from_dict(data: Mapping[str, object], base: "Settings | None" = None) -> "Settings":
        """Create :class:`Settings` from raw mapping data layered over ``base``."""
        known = {item.name for item in fields(Settings)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        values: Dict[str, object] = {}
        if "host" in data:
            host = str(data["host"]).strip()
            if not host:
                raise ValueError("Host must not be empty")
            values["host"] = host
        if "port" in data:
            values["port"] = _parse_port(data["port"])
        if "service_url" in data:
            values["service_url"] = normalize_base_url(str(data["service_url"]))
        if "service_timeout" in data:
            values["service_timeout"] = _parse_timeout(data["service_timeout"])
        if "transport" in data:
            transport = str(data["transport"]).strip().lower()
            if transport not in TRANSPORTS:
                raise ValueError(f"Unknown transport '{data['transport']}'")
            values["transport"] = transport
        for key in ("report_outages", "connect_on_startup"):
            if key in data:
                values[key] = _parse_flag(data[key], key)

        return replace(base or Settings(), **values)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (Path(__file__).resolve().parent.parent / "config" / "userhub.yaml").resolve(strict=False)


def _read_config_file(config_path: Path) -> Dict[str, object]:
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")
    section = raw.get("userhub", raw)
    if not isinstance(section, dict):
        raise ValueError("The 'userhub' configuration section must be a mapping")
    return section


def _environment_overrides(environ: Mapping[str, str]) -> Dict[str, object]:
    overrides: Dict[str, object] = {}
    for item in fields(Settings):
        value = environ.get(ENV_PREFIX + item.name.upper())
        if value is not None and value.strip():
            overrides[item.name] = value
    return overrides


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from an optional YAML file, then apply environment overrides.

    An explicitly requested file must exist; the default location is optional.
    """
    env = os.environ if environ is None else environ

    explicit = config_path is not None or bool(env.get(ENV_PREFIX + "CONFIG"))
    path = config_path or resolve_config_path(env.get(ENV_PREFIX + "CONFIG"))

    settings = Settings()
    if path.exists():
        settings = Settings.from_dict(_read_config_file(path), base=settings)
    elif explicit:
        raise FileNotFoundError(f"Configuration file not found: {path}")

    return Settings.from_dict(_environment_overrides(env), base=settings)


__all__ = ["ENV_PREFIX", "Settings", "load_settings", "resolve_config_path"]
