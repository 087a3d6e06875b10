from __future__ import annotations

import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Mapping, Optional

CLIENT_LOGGER_NAME = "NowPlayingOverlay.Client"
LOG_DIR_ENV_VAR = "NOWPLAYING_OVERLAY_LOG_DIR"
LOG_FILENAME = "overlay-client.log"

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def resolve_logs_dir(log_dir_name: str = "NowPlayingOverlay", env: Optional[Mapping[str, str]] = None) -> Path:
    """
    Resolve the directory to store overlay logs.

    Strategy:
    - Use NOWPLAYING_OVERLAY_LOG_DIR if set.
    - Fall back to XDG state/cache locations, then `cwd/logs/<log_dir_name>`.
    - Final fallback: tempdir/<log_dir_name>.
    """
    env = os.environ if env is None else env
    candidates = []

    env_override = env.get(LOG_DIR_ENV_VAR)
    if env_override:
        candidates.append(Path(env_override).expanduser())

    state_home = Path(env.get("XDG_STATE_HOME") or Path.home() / ".local" / "state")
    cache_home = Path(env.get("XDG_CACHE_HOME") or Path.home() / ".cache")
    candidates.append(state_home / log_dir_name)
    candidates.append(cache_home / log_dir_name)
    candidates.append(Path.cwd() / "logs" / log_dir_name)

    for target in candidates:
        try:
            target.mkdir(parents=True, exist_ok=True)
            return target
        except OSError:
            continue

    temp_fallback = Path(tempfile.gettempdir()) / log_dir_name
    temp_fallback.mkdir(parents=True, exist_ok=True)
    return temp_fallback


def build_rotating_file_handler(
    log_dir: Path,
    filename: str = LOG_FILENAME,
    *,
    retention: int = 5,
    max_bytes: int = 512 * 1024,
    formatter: Optional[logging.Formatter] = None,
) -> logging.Handler:
    """Construct a rotating file handler with sane defaults."""
    retention = max(1, retention)
    backup_count = max(0, retention - 1)
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / filename,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(formatter or logging.Formatter(_LOG_FORMAT))
    return handler


def resolve_log_level(debug_enabled: bool) -> int:
    return logging.DEBUG if debug_enabled else logging.INFO


def configure_client_logging(
    *,
    debug_enabled: bool,
    retention: int = 5,
    log_dir: Optional[Path] = None,
    stream: bool = True,
) -> logging.Logger:
    """Attach file (and optionally stderr) handlers to the client logger once."""
    logger = logging.getLogger(CLIENT_LOGGER_NAME)
    logger.setLevel(resolve_log_level(debug_enabled))
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    try:
        target_dir = log_dir or resolve_logs_dir()
        logger.addHandler(build_rotating_file_handler(target_dir, retention=retention))
    except OSError as exc:
        logging.getLogger(__name__).warning("File logging unavailable: %s", exc)
    if stream:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(stream_handler)
    return logger
