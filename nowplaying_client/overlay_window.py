"""Minimal PyQt6 presentation of the now-playing render state."""
from __future__ import annotations

from typing import Optional

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import QHBoxLayout, QLabel, QProgressBar, QVBoxLayout, QWidget

from nowplaying_client.render_feed import RenderState

PROGRESS_STEPS = 1000


class NowPlayingWindow(QWidget):
    """Frameless always-on-top strip that mirrors each RenderState it is given."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Now Playing")
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground)
        self.setWindowFlags(
            Qt.WindowType.FramelessWindowHint | Qt.WindowType.WindowStaysOnTopHint | Qt.WindowType.Tool
        )
        self.resize(500, 100)

        self.track_label = QLabel(self)
        self.artist_label = QLabel(self)
        self.album_label = QLabel(self)
        self.elapsed_label = QLabel("0:00", self)
        self.remaining_label = QLabel("-0:00", self)
        self.status_label = QLabel(self)
        self.progress_bar = QProgressBar(self)
        self.progress_bar.setRange(0, PROGRESS_STEPS)
        self.progress_bar.setTextVisible(False)

        times = QHBoxLayout()
        times.addWidget(self.elapsed_label)
        times.addStretch(1)
        times.addWidget(self.remaining_label)

        layout = QVBoxLayout(self)
        layout.addWidget(self.status_label)
        layout.addWidget(self.track_label)
        layout.addWidget(self.artist_label)
        layout.addWidget(self.album_label)
        layout.addWidget(self.progress_bar)
        layout.addLayout(times)

        self._last_state: Optional[RenderState] = None

    @property
    def last_state(self) -> Optional[RenderState]:
        return self._last_state

    def apply_state(self, state: RenderState) -> None:
        self._last_state = state
        metadata = state.metadata
        self.status_label.setVisible(state.status_visible)
        if state.status_visible:
            self.status_label.setText(state.status_text)
            self.status_label.setStyleSheet(f"color: {state.status_color}; font-weight: 600;")
        if metadata is not None:
            self.track_label.setText(metadata.track)
            self.artist_label.setText(metadata.artist)
            self.album_label.setText(metadata.album)
        self.progress_bar.setValue(int(round(state.progress_percent / 100.0 * PROGRESS_STEPS)))
        self.elapsed_label.setText(state.elapsed_text)
        self.remaining_label.setText(state.remaining_text)
        for widget in (self.track_label, self.artist_label, self.progress_bar, self.elapsed_label, self.remaining_label):
            widget.setVisible(state.overlay_visible)
        self.album_label.setVisible(state.overlay_visible and bool(metadata and metadata.album))
