from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from nowplaying_client.models import VisibilityState

AfterFn = Callable[[int, Callable[[], None]], object]
AfterCancelFn = Callable[[object], None]

_LOGGER = logging.getLogger("NowPlayingOverlay.Client.Visibility")


class VisibilityController:
    """Show/hide state machine with an optional auto-hide countdown."""

    def __init__(
        self,
        *,
        autohide_seconds: Optional[float],
        after: AfterFn,
        after_cancel: AfterCancelFn,
        time_source: Callable[[], float] = time.monotonic,
    ) -> None:
        self._autohide_seconds = max(0.0, float(autohide_seconds or 0.0))
        self._after = after
        self._after_cancel = after_cancel
        self._time = time_source
        self._state = VisibilityState.HIDDEN
        self._hide_handle: object | None = None
        self._hide_deadline: Optional[float] = None
        self._listeners: List[Callable[[VisibilityState], None]] = []

    @property
    def state(self) -> VisibilityState:
        return self._state

    @property
    def autohide_seconds(self) -> float:
        return self._autohide_seconds

    @property
    def pending_hide_deadline(self) -> Optional[float]:
        return self._hide_deadline

    @property
    def has_pending_hide(self) -> bool:
        return self._hide_handle is not None

    def add_listener(self, callback: Callable[[VisibilityState], None]) -> None:
        self._listeners.append(callback)

    def show(self) -> None:
        self.cancel_pending()
        self._set_state(VisibilityState.VISIBLE)
        if self._autohide_seconds > 0:
            self._hide_deadline = self._time() + self._autohide_seconds
            self._hide_handle = self._after(int(self._autohide_seconds * 1000), self._run_autohide)

    def hide(self) -> None:
        self.cancel_pending()
        self._set_state(VisibilityState.HIDDEN)

    def cancel_pending(self) -> None:
        handle = self._hide_handle
        self._hide_handle = None
        self._hide_deadline = None
        if handle is not None:
            try:
                self._after_cancel(handle)
            except Exception as exc:
                _LOGGER.debug("Failed to cancel auto-hide timer: %s", exc)

    def _run_autohide(self) -> None:
        self._hide_handle = None
        self._hide_deadline = None
        _LOGGER.debug("Auto-hide elapsed after %.1fs", self._autohide_seconds)
        self._set_state(VisibilityState.HIDDEN)

    def _set_state(self, state: VisibilityState) -> None:
        if state == self._state:
            return
        self._state = state
        _LOGGER.debug("Overlay visibility set to %s", state.value)
        for callback in list(self._listeners):
            try:
                callback(state)
            except Exception:
                _LOGGER.exception("Visibility listener failed")
