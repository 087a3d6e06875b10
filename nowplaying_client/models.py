"""Playback data carried over the overlay socket and the state derived from it."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Optional


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class VisibilityState(str, Enum):
    HIDDEN = "hidden"
    VISIBLE = "visible"


@dataclass(frozen=True)
class PlaybackSnapshot:
    """Full track metadata plus position, authoritative as of receipt."""

    track: str
    artist: str
    album: str
    duration: float
    elapsed: float
    is_playing: bool
    artwork_url: Optional[str] = None


@dataclass(frozen=True)
class ProgressSample:
    elapsed: float
    duration: float
    is_playing: bool


# Wire key -> PlaybackSnapshot attribute for the fields a partial update may carry.
SNAPSHOT_FIELDS: Mapping[str, str] = {
    "track": "track",
    "artist": "artist",
    "album": "album",
    "duration": "duration",
    "elapsed": "elapsed",
    "isPlaying": "is_playing",
    "artworkURL": "artwork_url",
}


@dataclass(frozen=True)
class PlaybackStateUpdate:
    """Play/pause flip with an optional subset of snapshot fields."""

    is_playing: bool
    fields: Mapping[str, Any] = field(default_factory=dict)

    def merge_into(self, snapshot: Optional[PlaybackSnapshot]) -> Optional[PlaybackSnapshot]:
        """Shallow-overwrite the provided fields; nothing to merge without a snapshot."""
        if snapshot is None:
            return None
        changes = dict(self.fields)
        changes["is_playing"] = self.is_playing
        return replace(snapshot, **changes)


@dataclass(frozen=True)
class ClockAnchor:
    value: float
    captured_at: float
    is_playing: bool
