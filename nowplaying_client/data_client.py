"""WebSocket transport that runs one connection attempt off-thread and forwards events to the Qt thread."""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Optional

import websockets
from PyQt6.QtCore import QObject, pyqtSignal
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK, WebSocketException

_LOGGER = logging.getLogger("NowPlayingOverlay.Client.DataClient")


class WebSocketTransport(QObject):
    """Single-use WebSocket connection. A new instance is created for every attempt.

    Signals are emitted from the background thread; Qt queues them onto the
    thread that owns this object, so callbacks always run on the GUI thread.
    `closed` is emitted exactly once per instance, after `error_occurred` when
    the attempt failed.
    """

    opened = pyqtSignal()
    message_received = pyqtSignal(str)
    error_occurred = pyqtSignal(str)
    closed = pyqtSignal()

    def __init__(
        self,
        url: str,
        *,
        on_open: Callable[[], None],
        on_message: Callable[[str], None],
        on_error: Callable[[str], None],
        on_close: Callable[[], None],
        open_timeout: float = 10.0,
    ) -> None:
        super().__init__()
        self._url = url
        self._open_timeout = open_timeout
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._stop_event = threading.Event()
        self.opened.connect(on_open)
        self.message_received.connect(on_message)
        self.error_occurred.connect(on_error)
        self.closed.connect(on_close)

    @property
    def url(self) -> str:
        return self._url

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._thread_main, name="NowPlayingOverlay-Socket", daemon=True)
        self._thread.start()

    def close(self) -> None:
        self._stop_event.set()
        loop = self._loop
        task = self._task
        if loop is not None and task is not None:
            try:
                loop.call_soon_threadsafe(task.cancel)
            except RuntimeError as exc:
                _LOGGER.debug("Socket loop already closed: %s", exc)
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
            if thread.is_alive():
                _LOGGER.warning("Socket thread did not exit cleanly within 2.0s")
        self._thread = None

    # Background thread ----------------------------------------------------

    def _thread_main(self) -> None:
        loop = asyncio.new_event_loop()
        self._loop = loop
        asyncio.set_event_loop(loop)
        try:
            self._task = loop.create_task(self._run())
            try:
                loop.run_until_complete(self._task)
            except asyncio.CancelledError:
                pass
        finally:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()
            self._task = None
            self._loop = None

    async def _run(self) -> None:
        try:
            if self._stop_event.is_set():
                return
            async with websockets.connect(self._url, open_timeout=self._open_timeout) as ws:
                if self._stop_event.is_set():
                    return
                self.opened.emit()
                async for frame in ws:
                    if self._stop_event.is_set():
                        break
                    if isinstance(frame, (bytes, bytearray)):
                        try:
                            frame = frame.decode("utf-8")
                        except UnicodeDecodeError as exc:
                            _LOGGER.debug("Dropped undecodable binary frame: %s", exc)
                            continue
                    self.message_received.emit(frame)
        except asyncio.CancelledError:
            raise
        except ConnectionClosedOK:
            _LOGGER.debug("Server closed %s cleanly", self._url)
        except ConnectionClosedError as exc:
            self.error_occurred.emit(f"Connection lost: {exc}")
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            self.error_occurred.emit(f"Connect failed: {exc}")
        finally:
            self.closed.emit()
