"""Runtime configuration for the account directory service."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .database import DEFAULT_BUSY_TIMEOUT, resolve_database_path


@dataclass(frozen=True)
class Settings:
    """Values needed to wire the stores and serve the HTTP API."""

    database_path: Path
    busy_timeout: float = DEFAULT_BUSY_TIMEOUT
    host: str = "127.0.0.1"
    port: int = 8000

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw dictionary data."""
        known = {field.name for field in fields(Settings)}
        unknown = set(data.keys()) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        raw_path = data.get("database_path")
        if raw_path:
            candidate = Path(str(raw_path)).expanduser()
            if not candidate.is_absolute() and base_path is not None:
                candidate = base_path / candidate
            database_path = candidate.resolve(strict=False)
        else:
            database_path = resolve_database_path(None)

        return Settings(
            database_path=database_path,
            busy_timeout=_parse_timeout(data.get("busy_timeout", DEFAULT_BUSY_TIMEOUT)),
            host=str(data.get("host", "127.0.0.1")),
            port=_parse_port(data.get("port", 8000)),
        )


def _parse_timeout(value: object) -> float:
    try:
        timeout = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"busy_timeout must be a number, got {value!r}") from exc
    if timeout < 0:
        raise ValueError("busy_timeout must not be negative")
    return timeout


def _parse_port(value: object) -> int:
    try:
        port = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"port must be an integer, got {value!r}") from exc
    if port < 1 or port > 65535:
        raise ValueError("port must be between 1 and 65535")
    return port


def _read_config_file(config_path: Path) -> Dict[str, object]:
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")
    return raw


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from an optional YAML file, then apply environment overrides."""

    env = os.environ if environ is None else environ

    if config_path is None and env.get("ACCOUNTS_CONFIG"):
        config_path = Path(env["ACCOUNTS_CONFIG"]).expanduser()

    if config_path is not None:
        settings = Settings.from_dict(_read_config_file(config_path), base_path=config_path.parent)
    else:
        settings = Settings.from_dict({})

    if env.get("ACCOUNTS_DB_PATH"):
        settings = replace(settings, database_path=resolve_database_path(env["ACCOUNTS_DB_PATH"]))
    if env.get("ACCOUNTS_DB_TIMEOUT"):
        settings = replace(settings, busy_timeout=_parse_timeout(env["ACCOUNTS_DB_TIMEOUT"]))
    if env.get("ACCOUNTS_HOST"):
        settings = replace(settings, host=env["ACCOUNTS_HOST"].strip())
    if env.get("ACCOUNTS_PORT"):
        settings = replace(settings, port=_parse_port(env["ACCOUNTS_PORT"]))
    return settings


__all__ = ["Settings", "load_settings"]
