"""Configuration loading for the hotel reservation API."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3001
DEFAULT_API_PREFIX = "/api"
DEFAULT_STORE_TIMEOUT = 10.0
DEFAULT_LOG_LEVEL = "info"

_LOG_LEVELS = {"critical", "error", "warning", "info", "debug"}

_ENV_KEYS: Dict[str, str] = {
    "store_url": "SUPABASE_URL",
    "store_key": "SUPABASE_KEY",
    "host": "HOST",
    "port": "PORT",
    "api_prefix": "HOTEL_API_PREFIX",
    "store_timeout": "HOTEL_API_STORE_TIMEOUT",
    "log_level": "HOTEL_API_LOG_LEVEL",
}


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, loaded once at start-up."""

    store_url: str
    store_key: str
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    api_prefix: str = DEFAULT_API_PREFIX
    store_timeout: float = DEFAULT_STORE_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL

    @staticmethod
    def from_dict(data: Mapping[str, object]) -> "Settings":
        """Create :class:`Settings` from raw configuration values."""
        required_fields = {"store_url", "store_key"}
        missing = {name for name in required_fields if not str(data.get(name) or "").strip()}
        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(sorted(missing))}")

        try:
            port = int(data.get("port") or DEFAULT_PORT)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid port: {data.get('port')!r}") from exc
        if not 0 < port < 65536:
            raise ValueError(f"Port out of range: {port}")

        try:
            store_timeout = float(data.get("store_timeout") or DEFAULT_STORE_TIMEOUT)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid store timeout: {data.get('store_timeout')!r}") from exc
        if store_timeout <= 0:
            raise ValueError("Store timeout must be positive")

        log_level = str(data.get("log_level") or DEFAULT_LOG_LEVEL).strip().lower()
        if log_level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {log_level!r}")

        return Settings(
            store_url=str(data["store_url"]).strip().rstrip("/"),
            store_key=str(data["store_key"]).strip(),
            host=str(data.get("host") or DEFAULT_HOST).strip(),
            port=port,
            api_prefix=normalize_prefix(data.get("api_prefix", DEFAULT_API_PREFIX)),
            store_timeout=store_timeout,
            log_level=log_level,
        )


def normalize_prefix(value: object) -> str:
    """Return ``value`` as ``/segment`` form, or ``""`` for the root."""
    if value is None:
        return ""
    cleaned = str(value).strip().strip("/")
    return f"/{cleaned}" if cleaned else ""


def resolve_config_path(env_value: Optional[str]) -> Optional[Path]:
    if not env_value:
        return None
    return Path(env_value).expanduser().resolve(strict=False)


def _load_file(config_path: Path) -> Dict[str, object]:
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")
    return {str(key): value for key, value in raw.items()}


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from an optional YAML file, then the environment.

    Environment variables take precedence over values from the file.
    """
    env = os.environ if environ is None else environ

    path = config_path or resolve_config_path(env.get("HOTEL_API_CONFIG"))
    data: Dict[str, object] = _load_file(path) if path is not None else {}

    for field_name, env_name in _ENV_KEYS.items():
        value = env.get(env_name)
        if value is None:
            continue
        # An empty prefix is meaningful: it serves the routes at the root.
        if value.strip() or field_name == "api_prefix":
            data[field_name] = value

    return Settings.from_dict(data)


__all__ = ["Settings", "load_settings", "normalize_prefix", "resolve_config_path"]
