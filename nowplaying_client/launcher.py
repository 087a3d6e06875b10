from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Any, Dict, Optional

from PyQt6.QtWidgets import QApplication

from nowplaying_client.client_config import ConfigError, OverlaySettings, load_settings, resolve_settings_path
from nowplaying_client.data_client import WebSocketTransport
from nowplaying_client.engine import SyncEngine
from nowplaying_client.logging_utils import CLIENT_LOGGER_NAME, configure_client_logging
from nowplaying_client.overlay_window import NowPlayingWindow
from nowplaying_client.scheduler import QtScheduler

_LOGGER = logging.getLogger(CLIENT_LOGGER_NAME)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Now playing overlay client")
    parser.add_argument("--host", help="Host of the now-playing WebSocket source (default localhost)")
    parser.add_argument("--port", help="Port of the now-playing WebSocket source (default 8765)")
    parser.add_argument("--autohide", help="Seconds to keep the overlay visible after a change (0 disables)")
    parser.add_argument("--hide-album-art", action="store_true", default=None, help="Do not render artwork")
    parser.add_argument("--settings", help="Path to overlay_settings.json")
    parser.add_argument("--debug", action="store_true", default=None, help="Enable debug logging")
    return parser


def resolve_settings(argv: Optional[list[str]] = None) -> OverlaySettings:
    """Parse CLI arguments and merge them with env/file settings; raises ConfigError."""
    args = build_parser().parse_args(argv)
    cli_values: Dict[str, Any] = {
        "host": args.host,
        "port": args.port,
        "autohide_seconds": args.autohide,
        "hide_album_art": args.hide_album_art,
        "debug": args.debug,
    }
    return load_settings(settings_path=resolve_settings_path(args.settings), cli_values=cli_values)


def main(argv: Optional[list[str]] = None) -> int:
    try:
        settings = resolve_settings(argv)
    except ConfigError as exc:
        print(f"Invalid overlay configuration: {exc}", file=sys.stderr)
        return 2

    configure_client_logging(
        debug_enabled=settings.debug,
        retention=settings.log_retention,
    )
    _LOGGER.info("Starting overlay client (pid=%s) for %s", os.getpid(), settings.endpoint_url)

    app = QApplication(sys.argv[:1])
    scheduler = QtScheduler()
    engine = SyncEngine(
        settings,
        transport_factory=WebSocketTransport,
        after=scheduler.after,
        after_cancel=scheduler.after_cancel,
    )
    window = NowPlayingWindow()
    engine.add_frame_listener(window.apply_state)
    app.aboutToQuit.connect(engine.shutdown)

    window.show()
    engine.start()

    exit_code = app.exec()
    engine.shutdown()
    scheduler.cancel_all()
    _LOGGER.info("Overlay client exiting with code %s", exit_code)
    return int(exit_code)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
