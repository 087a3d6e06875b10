"""Read-only state handed to the presentation layer once per frame."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from nowplaying_client.models import ConnectionState, PlaybackSnapshot, VisibilityState
from nowplaying_client.status_presenter import StatusPresenter


def format_time(seconds: float) -> str:
    """Render seconds as m:ss, flooring partial seconds."""
    if not math.isfinite(seconds) or seconds < 0:
        seconds = 0.0
    total = int(math.floor(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"


def clamp_elapsed(estimate: float, duration: float) -> float:
    # Extrapolation can overshoot the track end until the next correction arrives.
    value = max(0.0, estimate)
    if duration > 0:
        value = min(value, duration)
    return value


def progress_percent(elapsed: float, duration: float) -> float:
    if duration <= 0:
        return 0.0
    return min(max(elapsed / duration * 100.0, 0.0), 100.0)


@dataclass(frozen=True)
class RenderState:
    displayed_elapsed: float
    duration: float
    is_playing: bool
    visibility_state: VisibilityState
    connection_state: ConnectionState
    metadata: Optional[PlaybackSnapshot]
    status_text: str = ""
    status_color: str = ""
    hide_album_art: bool = False

    @property
    def progress_percent(self) -> float:
        return progress_percent(self.displayed_elapsed, self.duration)

    @property
    def remaining(self) -> float:
        if self.duration <= 0:
            return 0.0
        return max(self.duration - self.displayed_elapsed, 0.0)

    @property
    def elapsed_text(self) -> str:
        return format_time(self.displayed_elapsed)

    @property
    def remaining_text(self) -> str:
        return f"-{format_time(self.remaining)}"

    @property
    def overlay_visible(self) -> bool:
        return self.visibility_state == VisibilityState.VISIBLE and self.metadata is not None

    @property
    def status_visible(self) -> bool:
        return self.metadata is None

    @property
    def show_artwork(self) -> bool:
        return bool(self.metadata and self.metadata.artwork_url) and not self.hide_album_art


def build_render_state(
    *,
    estimate: float,
    is_playing: bool,
    visibility_state: VisibilityState,
    connection_state: ConnectionState,
    metadata: Optional[PlaybackSnapshot],
    presenter: StatusPresenter,
    hide_album_art: bool = False,
) -> RenderState:
    duration = metadata.duration if metadata is not None else 0.0
    text, color = presenter.present(connection_state)
    return RenderState(
        displayed_elapsed=clamp_elapsed(estimate, duration),
        duration=duration,
        is_playing=is_playing,
        visibility_state=visibility_state,
        connection_state=connection_state,
        metadata=metadata,
        status_text=text,
        status_color=color,
        hide_album_art=hide_album_art,
    )
