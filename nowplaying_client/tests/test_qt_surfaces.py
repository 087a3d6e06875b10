from __future__ import annotations

import time

import pytest
from PyQt6.QtWidgets import QApplication

from nowplaying_client.models import ConnectionState, PlaybackSnapshot, VisibilityState
from nowplaying_client.overlay_window import PROGRESS_STEPS, NowPlayingWindow
from nowplaying_client.render_feed import build_render_state
from nowplaying_client.scheduler import QtScheduler
from nowplaying_client.status_presenter import StatusPresenter


@pytest.fixture
def qt_app():
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


def _pump(app, seconds):
    deadline = time.monotonic() + seconds
    while time.monotonic() < deadline:
        app.processEvents()
        time.sleep(0.005)


def _render(metadata, estimate=30.0, visibility=VisibilityState.VISIBLE, state=ConnectionState.CONNECTED):
    return build_render_state(
        estimate=estimate,
        is_playing=True,
        visibility_state=visibility,
        connection_state=state,
        metadata=metadata,
        presenter=StatusPresenter("ws://localhost:8765"),
    )


@pytest.mark.pyqt_required
def test_scheduler_fires_and_cancels(qt_app):
    scheduler = QtScheduler()
    fired = []
    scheduler.after(10, lambda: fired.append("kept"))
    cancelled = scheduler.after(10, lambda: fired.append("cancelled"))
    scheduler.after_cancel(cancelled)
    scheduler.after_cancel(cancelled)
    assert scheduler.pending == 1

    _pump(qt_app, 0.2)

    assert fired == ["kept"]
    assert scheduler.pending == 0


@pytest.mark.pyqt_required
def test_scheduler_cancel_all(qt_app):
    scheduler = QtScheduler()
    fired = []
    for _ in range(3):
        scheduler.after(10, lambda: fired.append(True))
    scheduler.cancel_all()
    _pump(qt_app, 0.1)
    assert fired == []
    assert scheduler.pending == 0


@pytest.mark.pyqt_required
def test_window_shows_status_until_metadata(qt_app):
    window = NowPlayingWindow()
    try:
        window.apply_state(_render(None, state=ConnectionState.DISCONNECTED))
        assert not window.status_label.isHidden()
        assert window.status_label.text() == "Disconnected - retrying ws://localhost:8765"
        assert window.track_label.isHidden()
        assert window.progress_bar.isHidden()
    finally:
        window.close()


@pytest.mark.pyqt_required
def test_window_mirrors_playback(qt_app):
    snapshot = PlaybackSnapshot("A", "B", "", 120.0, 30.0, True, None)
    window = NowPlayingWindow()
    try:
        window.apply_state(_render(snapshot, estimate=30.0))
        assert window.status_label.isHidden()
        assert window.track_label.text() == "A"
        assert not window.track_label.isHidden()
        assert window.album_label.isHidden()
        assert window.progress_bar.value() == PROGRESS_STEPS // 4
        assert window.elapsed_label.text() == "0:30"
        assert window.remaining_label.text() == "-1:30"

        window.apply_state(_render(snapshot, visibility=VisibilityState.HIDDEN))
        assert window.track_label.isHidden()
        assert window.last_state.visibility_state == VisibilityState.HIDDEN
    finally:
        window.close()
