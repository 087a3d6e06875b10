import os
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from nowplaying_client.client_config import OverlaySettings
from nowplaying_client.engine import SyncEngine


def pytest_runtest_setup(item):
    if item.get_closest_marker("pyqt_required"):
        if not os.getenv("PYQT_TESTS"):
            pytest.skip("PYQT_TESTS not set; skipping PyQt-dependent test")


class FakeScheduler:
    """Virtual-time stand-in for the Qt `after`/`after_cancel` pair."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self._seq = 0
        self._pending: Dict[int, Tuple[float, int, Callable[[], None]]] = {}
        self.scheduled: List[Tuple[int, int]] = []
        self.cancelled: List[int] = []

    def time(self) -> float:
        return self.now

    def after(self, delay_ms: int, callback: Callable[[], None]) -> int:
        self._seq += 1
        handle = self._seq
        self._pending[handle] = (self.now + delay_ms / 1000.0, handle, callback)
        self.scheduled.append((handle, delay_ms))
        return handle

    def after_cancel(self, handle: object) -> None:
        if self._pending.pop(handle, None) is not None:  # type: ignore[arg-type]
            self.cancelled.append(handle)  # type: ignore[arg-type]

    @property
    def pending(self) -> int:
        return len(self._pending)

    def pending_delays(self) -> List[float]:
        return sorted(due - self.now for due, _seq, _cb in self._pending.values())

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [entry for entry in self._pending.values() if entry[0] <= target + 1e-9]
            if not due:
                break
            when, handle, callback = min(due)
            del self._pending[handle]
            self.now = max(self.now, when)
            callback()
        self.now = target


class FakeTransport:
    def __init__(self, url, *, on_open, on_message, on_error, on_close) -> None:
        self.url = url
        self._on_open = on_open
        self._on_message = on_message
        self._on_error = on_error
        self._on_close = on_close
        self.started = False
        self.close_calls = 0

    def start(self) -> None:
        self.started = True

    def close(self) -> None:
        self.close_calls += 1

    # Server-side events ---------------------------------------------------

    def open(self) -> None:
        self._on_open()

    def message(self, raw_text: str) -> None:
        self._on_message(raw_text)

    def fail(self, reason: str = "boom") -> None:
        self._on_error(reason)
        self._on_close()

    def drop(self) -> None:
        self._on_close()


class TransportRecorder:
    def __init__(self) -> None:
        self.created: List[FakeTransport] = []

    def __call__(self, url, **callbacks) -> FakeTransport:
        transport = FakeTransport(url, **callbacks)
        self.created.append(transport)
        return transport

    @property
    def latest(self) -> Optional[FakeTransport]:
        return self.created[-1] if self.created else None


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def transports() -> TransportRecorder:
    return TransportRecorder()


@pytest.fixture
def make_engine(scheduler, transports):
    def _make(**overrides) -> SyncEngine:
        settings = OverlaySettings(**overrides)
        return SyncEngine(
            settings,
            transport_factory=transports,
            after=scheduler.after,
            after_cancel=scheduler.after_cancel,
            time_source=scheduler.time,
        )

    return _make
