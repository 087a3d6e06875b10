from __future__ import annotations

from typing import Callable, Optional, Set

from PyQt6.QtCore import QObject, QTimer


class QtScheduler:
    """`after`/`after_cancel` pair backed by single-shot QTimers on the GUI thread."""

    def __init__(self, parent: Optional[QObject] = None) -> None:
        self._parent = parent
        self._timers: Set[QTimer] = set()

    def after(self, delay_ms: int, callback: Callable[[], None]) -> QTimer:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)
        timer.setInterval(max(0, int(delay_ms)))

        def _fire() -> None:
            self._timers.discard(timer)
            timer.deleteLater()
            callback()

        timer.timeout.connect(_fire)
        self._timers.add(timer)
        timer.start()
        return timer

    def after_cancel(self, handle: object) -> None:
        if not isinstance(handle, QTimer) or handle not in self._timers:
            return
        self._timers.discard(handle)
        handle.stop()
        handle.deleteLater()

    def cancel_all(self) -> None:
        for timer in list(self._timers):
            self.after_cancel(timer)

    @property
    def pending(self) -> int:
        return len(self._timers)
