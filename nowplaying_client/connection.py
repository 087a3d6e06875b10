"""Connection lifecycle for the now-playing socket with a fixed reconnect interval."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol

from nowplaying_client.models import ConnectionState

AfterFn = Callable[[int, Callable[[], None]], object]
AfterCancelFn = Callable[[object], None]

RECONNECT_DELAY_MS = 5000

_LOGGER = logging.getLogger("NowPlayingOverlay.Client.Connection")


class Transport(Protocol):
    def start(self) -> None: ...

    def close(self) -> None: ...


class TransportFactory(Protocol):
    def __call__(
        self,
        url: str,
        *,
        on_open: Callable[[], None],
        on_message: Callable[[str], None],
        on_error: Callable[[str], None],
        on_close: Callable[[], None],
    ) -> Transport: ...


class ConnectionManager:
    """Owns the active transport, its state, and the pending reconnect timer.

    A close always leads to exactly one reconnect attempt after
    RECONNECT_DELAY_MS; there is no backoff and no retry cap. Once `close()`
    has been called the manager never reconnects and drops every event from
    transports it created.
    """

    def __init__(
        self,
        url: str,
        *,
        transport_factory: TransportFactory,
        after: AfterFn,
        after_cancel: AfterCancelFn,
        on_message: Callable[[str], None],
        reconnect_delay_ms: int = RECONNECT_DELAY_MS,
    ) -> None:
        self._url = url
        self._transport_factory = transport_factory
        self._after = after
        self._after_cancel = after_cancel
        self._on_message = on_message
        self._reconnect_delay_ms = reconnect_delay_ms
        self._state = ConnectionState.DISCONNECTED
        self._transport: Optional[Transport] = None
        self._reconnect_handle: object | None = None
        self._closed = False
        self._attempts = 0
        self._state_listeners: List[Callable[[ConnectionState], None]] = []

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def add_state_listener(self, callback: Callable[[ConnectionState], None]) -> None:
        self._state_listeners.append(callback)

    def connect(self) -> None:
        if self._closed:
            return
        self._reconnect_handle = None
        self._attempts += 1
        self._set_state(ConnectionState.CONNECTING)
        _LOGGER.debug("Connecting to %s (attempt %d)", self._url, self._attempts)

        holder: List[Transport] = []

        def _is_current() -> bool:
            return not self._closed and bool(holder) and self._transport is holder[0]

        def _opened() -> None:
            if _is_current():
                self._handle_open()

        def _message(raw_text: str) -> None:
            if _is_current():
                self._on_message(raw_text)

        def _error(reason: str) -> None:
            if _is_current():
                _LOGGER.warning("Connection error on %s: %s", self._url, reason)

        def _closed() -> None:
            if _is_current():
                self._handle_close()

        transport = self._transport_factory(
            self._url,
            on_open=_opened,
            on_message=_message,
            on_error=_error,
            on_close=_closed,
        )
        holder.append(transport)
        self._transport = transport
        transport.start()

    def cancel_reconnect(self) -> None:
        handle = self._reconnect_handle
        self._reconnect_handle = None
        if handle is not None:
            try:
                self._after_cancel(handle)
            except Exception as exc:
                _LOGGER.debug("Failed to cancel reconnect timer: %s", exc)

    def close(self) -> None:
        self._closed = True
        self.cancel_reconnect()
        transport = self._transport
        self._transport = None
        if transport is not None:
            try:
                transport.close()
            except Exception as exc:
                _LOGGER.debug("Error closing transport: %s", exc)

    def _handle_open(self) -> None:
        _LOGGER.info("Connected to %s", self._url)
        self._set_state(ConnectionState.CONNECTED)

    def _handle_close(self) -> None:
        self._transport = None
        self._set_state(ConnectionState.DISCONNECTED)
        _LOGGER.info("Disconnected from %s; retrying in %.1fs", self._url, self._reconnect_delay_ms / 1000.0)
        self.cancel_reconnect()
        self._reconnect_handle = self._after(self._reconnect_delay_ms, self.connect)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        self._state = state
        for callback in list(self._state_listeners):
            try:
                callback(state)
            except Exception:
                _LOGGER.exception("Connection state listener failed")
