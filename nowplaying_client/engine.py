"""Synchronisation engine tying the socket, clock and visibility state together."""
from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from nowplaying_client.client_config import OverlaySettings
from nowplaying_client.clock import ClockExtrapolator
from nowplaying_client.connection import AfterCancelFn, AfterFn, ConnectionManager, TransportFactory
from nowplaying_client.models import ConnectionState, PlaybackSnapshot, VisibilityState
from nowplaying_client.protocol import InboundMessage, MessageDispatcher
from nowplaying_client.render_feed import RenderState, build_render_state
from nowplaying_client.status_presenter import StatusPresenter
from nowplaying_client.visibility import VisibilityController

FRAME_INTERVAL_MS = 16

_LOGGER = logging.getLogger("NowPlayingOverlay.Client.Engine")


class SyncEngine:
    """Owns every timer, socket and frame tick of the overlay core.

    All entry points run on one thread and return immediately. `start()` opens
    the connection and begins the frame tick; `shutdown()` releases every
    resource and is safe to call repeatedly or before `start()`.
    """

    def __init__(
        self,
        settings: OverlaySettings,
        *,
        transport_factory: TransportFactory,
        after: AfterFn,
        after_cancel: AfterCancelFn,
        time_source: Callable[[], float] = time.monotonic,
        frame_interval_ms: int = FRAME_INTERVAL_MS,
    ) -> None:
        self._settings = settings
        self._after = after
        self._after_cancel = after_cancel
        self._time = time_source
        self._frame_interval_ms = max(1, int(frame_interval_ms))
        self._frame_handle: object | None = None
        self._frame_listeners: List[Callable[[RenderState], None]] = []
        self._started = False
        self._shut_down = False

        self._clock = ClockExtrapolator()
        self._visibility = VisibilityController(
            autohide_seconds=settings.autohide_seconds,
            after=after,
            after_cancel=after_cancel,
            time_source=time_source,
        )
        self._dispatcher = MessageDispatcher(self._clock, self._visibility, time_source=time_source)
        self._connection = ConnectionManager(
            settings.endpoint_url,
            transport_factory=transport_factory,
            after=after,
            after_cancel=after_cancel,
            on_message=self._dispatcher.dispatch,
        )
        self._presenter = StatusPresenter(settings.endpoint_url)
        self._connection.add_state_listener(self._log_connection_state)

    # Read-only views ---------------------------------------------------

    @property
    def settings(self) -> OverlaySettings:
        return self._settings

    @property
    def clock(self) -> ClockExtrapolator:
        return self._clock

    @property
    def visibility(self) -> VisibilityController:
        return self._visibility

    @property
    def connection(self) -> ConnectionManager:
        return self._connection

    @property
    def metadata(self) -> Optional[PlaybackSnapshot]:
        return self._dispatcher.snapshot

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection.state

    @property
    def visibility_state(self) -> VisibilityState:
        return self._visibility.state

    @property
    def frames_running(self) -> bool:
        return self._frame_handle is not None

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    # Lifecycle ---------------------------------------------------------

    def add_frame_listener(self, callback: Callable[[RenderState], None]) -> None:
        self._frame_listeners.append(callback)

    def start(self) -> None:
        if self._started or self._shut_down:
            return
        self._started = True
        _LOGGER.info(
            "Starting overlay sync against %s (autohide=%.1fs)",
            self._settings.endpoint_url,
            self._settings.autohide_seconds,
        )
        self._connection.connect()
        self._schedule_frame()

    def shutdown(self) -> None:
        if not self._shut_down:
            _LOGGER.info("Shutting down overlay sync")
        self._shut_down = True
        self._connection.cancel_reconnect()
        self._visibility.cancel_pending()
        self._stop_frames()
        self._connection.close()
        self._dispatcher.disable()

    def handle_message(self, raw_text: str) -> InboundMessage:
        """Feed one raw frame through the dispatcher, bypassing the transport."""
        return self._dispatcher.dispatch(raw_text)

    # Frame tick --------------------------------------------------------

    def render_state(self, now: Optional[float] = None) -> RenderState:
        current = self._time() if now is None else now
        return build_render_state(
            estimate=self._clock.estimate(current),
            is_playing=self._clock.is_playing,
            visibility_state=self._visibility.state,
            connection_state=self._connection.state,
            metadata=self._dispatcher.snapshot,
            presenter=self._presenter,
            hide_album_art=self._settings.hide_album_art,
        )

    def tick(self, now: float) -> RenderState:
        state = self.render_state(now)
        for callback in list(self._frame_listeners):
            try:
                callback(state)
            except Exception:
                _LOGGER.exception("Frame listener failed")
        return state

    def _schedule_frame(self) -> None:
        self._frame_handle = self._after(self._frame_interval_ms, self._run_frame)

    def _run_frame(self) -> None:
        self._frame_handle = None
        try:
            self.tick(self._time())
        finally:
            if not self._shut_down:
                self._schedule_frame()

    def _stop_frames(self) -> None:
        handle = self._frame_handle
        self._frame_handle = None
        if handle is not None:
            try:
                self._after_cancel(handle)
            except Exception as exc:
                _LOGGER.debug("Failed to cancel frame tick: %s", exc)

    def _log_connection_state(self, state: ConnectionState) -> None:
        _LOGGER.debug("Connection state changed to %s", state.value)
