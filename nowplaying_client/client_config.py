"""Configuration helpers for the now-playing overlay client."""
from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8765
MIN_PORT = 1024
MAX_PORT = 65535

ENV_HOST = "NOWPLAYING_OVERLAY_HOST"
ENV_PORT = "NOWPLAYING_OVERLAY_PORT"
ENV_AUTOHIDE = "NOWPLAYING_OVERLAY_AUTOHIDE"
ENV_HIDE_ALBUM_ART = "NOWPLAYING_OVERLAY_HIDE_ALBUM_ART"
ENV_DEBUG = "NOWPLAYING_OVERLAY_DEBUG"
ENV_SETTINGS = "NOWPLAYING_OVERLAY_SETTINGS"

_TRUE_TOKENS = {"1", "true", "yes", "on"}
_FALSE_TOKENS = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    """Raised for settings the operator has to fix before the overlay can start."""


@dataclass(frozen=True)
class OverlaySettings:
    """Values read once at startup."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    autohide_seconds: float = 0.0
    hide_album_art: bool = False
    log_retention: int = 5
    debug: bool = False

    @property
    def endpoint_url(self) -> str:
        return f"ws://{self.host}:{self.port}"


def coerce_port(value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Port must be a number, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ConfigError(f"Port must be a whole number, got {value!r}")
        value = int(value)
    if isinstance(value, str):
        token = value.strip()
        if not token.isdigit():
            raise ConfigError(f"Port must be a number, got {value!r}")
        value = int(token)
    if not isinstance(value, int):
        raise ConfigError(f"Port must be a number, got {value!r}")
    if not MIN_PORT <= value <= MAX_PORT:
        raise ConfigError(f"Port {value} is outside {MIN_PORT}-{MAX_PORT}")
    return value


def coerce_autohide(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise ConfigError(f"Auto-hide duration must be a number, got {value!r}")
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Auto-hide duration must be a number, got {value!r}") from None
    if not math.isfinite(seconds) or seconds < 0:
        raise ConfigError(f"Auto-hide duration must be zero or positive, got {value!r}")
    return seconds


def coerce_host(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Host must be a non-empty string, got {value!r}")
    return value.strip()


def coerce_flag(value: Any, *, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        token = value.strip().lower()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _apply(settings: OverlaySettings, values: Mapping[str, Any]) -> OverlaySettings:
    changes: Dict[str, Any] = {}
    if values.get("host") is not None:
        changes["host"] = coerce_host(values["host"])
    if values.get("port") is not None:
        changes["port"] = coerce_port(values["port"])
    if values.get("autohide_seconds") is not None:
        changes["autohide_seconds"] = coerce_autohide(values["autohide_seconds"])
    if values.get("hide_album_art") is not None:
        changes["hide_album_art"] = coerce_flag(values["hide_album_art"], name="hide_album_art")
    if values.get("debug") is not None:
        changes["debug"] = coerce_flag(values["debug"], name="debug")
    if values.get("log_retention") is not None:
        try:
            changes["log_retention"] = max(1, int(values["log_retention"]))
        except (TypeError, ValueError):
            raise ConfigError(f"log_retention must be a number, got {values['log_retention']!r}") from None
    return replace(settings, **changes) if changes else settings


def load_settings_file(settings_path: Optional[Path]) -> Dict[str, Any]:
    """Read overlay_settings.json; a missing or unreadable file means defaults."""
    if settings_path is None:
        return {}
    try:
        raw = settings_path.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    if not isinstance(data, dict):
        return {}
    return {
        "host": data.get("host"),
        "port": data.get("port"),
        "autohide_seconds": data.get("autohide_seconds", data.get("duration")),
        "hide_album_art": data.get("hide_album_art"),
        "log_retention": data.get("log_retention"),
        "debug": data.get("debug"),
    }


def _env_values(env: Mapping[str, str]) -> Dict[str, Any]:
    return {
        "host": env.get(ENV_HOST),
        "port": env.get(ENV_PORT),
        "autohide_seconds": env.get(ENV_AUTOHIDE),
        "hide_album_art": env.get(ENV_HIDE_ALBUM_ART),
        "debug": env.get(ENV_DEBUG),
    }


def resolve_settings_path(arg_path: Optional[str], env: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if env is None else env
    if arg_path:
        return Path(arg_path).expanduser().resolve()
    env_override = env.get(ENV_SETTINGS)
    if env_override:
        return Path(env_override).expanduser().resolve()
    return (Path.cwd() / "overlay_settings.json").resolve()


def load_settings(
    *,
    settings_path: Optional[Path] = None,
    cli_values: Optional[Mapping[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> OverlaySettings:
    """Merge defaults, settings file, environment and CLI values (later wins).

    Raises ConfigError as soon as any provided value is invalid.
    """
    env = os.environ if env is None else env
    settings = OverlaySettings()
    settings = _apply(settings, load_settings_file(settings_path))
    settings = _apply(settings, _env_values(env))
    settings = _apply(settings, cli_values or {})
    return settings
