"""Parsing and routing of the JSON envelopes pushed by the now-playing source."""
from __future__ import annotations

import json
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Union

from nowplaying_client.clock import ClockExtrapolator
from nowplaying_client.models import (
    SNAPSHOT_FIELDS,
    PlaybackSnapshot,
    PlaybackStateUpdate,
    ProgressSample,
)
from nowplaying_client.visibility import VisibilityController

_LOGGER = logging.getLogger("NowPlayingOverlay.Client.Protocol")

MSG_WELCOME = "welcome"
MSG_NOW_PLAYING = "now_playing"
MSG_PROGRESS = "progress"
MSG_PLAYBACK_STATE = "playback_state"


@dataclass(frozen=True)
class WelcomeMessage:
    server: Optional[str] = None
    version: Optional[str] = None


@dataclass(frozen=True)
class NowPlayingMessage:
    snapshot: PlaybackSnapshot


@dataclass(frozen=True)
class ProgressMessage:
    sample: ProgressSample


@dataclass(frozen=True)
class PlaybackStateMessage:
    update: PlaybackStateUpdate


@dataclass(frozen=True)
class IgnoredMessage:
    reason: str


InboundMessage = Union[WelcomeMessage, NowPlayingMessage, ProgressMessage, PlaybackStateMessage, IgnoredMessage]


class _InvalidField(ValueError):
    pass


def _number(data: Mapping[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _InvalidField(f"{key} must be a number")
    try:
        numeric = float(value)
    except OverflowError:
        raise _InvalidField(f"{key} is out of range") from None
    if not math.isfinite(numeric):
        raise _InvalidField(f"{key} must be finite")
    return numeric


def _string(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise _InvalidField(f"{key} must be a string")
    return value


def _flag(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if not isinstance(value, bool):
        raise _InvalidField(f"{key} must be a boolean")
    return value


def _optional_string(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise _InvalidField(f"{key} must be a string")
    return value


def _parse_snapshot(data: Mapping[str, Any]) -> PlaybackSnapshot:
    return PlaybackSnapshot(
        track=_string(data, "track"),
        artist=_string(data, "artist"),
        album=_string(data, "album"),
        duration=_number(data, "duration"),
        elapsed=_number(data, "elapsed"),
        is_playing=_flag(data, "isPlaying"),
        artwork_url=_optional_string(data, "artworkURL"),
    )


def _parse_progress(data: Mapping[str, Any]) -> ProgressSample:
    return ProgressSample(
        elapsed=_number(data, "elapsed"),
        duration=_number(data, "duration"),
        is_playing=_flag(data, "isPlaying"),
    )


def _parse_playback_state(data: Mapping[str, Any]) -> PlaybackStateUpdate:
    is_playing = _flag(data, "isPlaying")
    fields: Dict[str, Any] = {}
    for wire_key, attribute in SNAPSHOT_FIELDS.items():
        if wire_key == "isPlaying" or wire_key not in data:
            continue
        if wire_key in {"duration", "elapsed"}:
            fields[attribute] = _number(data, wire_key)
        elif wire_key == "artworkURL":
            fields[attribute] = _optional_string(data, wire_key)
        else:
            fields[attribute] = _string(data, wire_key)
    return PlaybackStateUpdate(is_playing=is_playing, fields=fields)


def parse_message(raw_text: Any) -> InboundMessage:
    """Turn one text frame into a closed message variant. Never raises."""
    if isinstance(raw_text, (bytes, bytearray)):
        try:
            raw_text = raw_text.decode("utf-8")
        except UnicodeDecodeError:
            return IgnoredMessage("frame is not valid UTF-8")
    if not isinstance(raw_text, str):
        return IgnoredMessage("frame is not text")
    try:
        envelope = json.loads(raw_text)
    except (ValueError, RecursionError):
        return IgnoredMessage("frame is not valid JSON")
    if not isinstance(envelope, dict):
        return IgnoredMessage("envelope is not an object")
    message_type = envelope.get("type")
    if not isinstance(message_type, str):
        return IgnoredMessage("envelope has no type")

    if message_type == MSG_WELCOME:
        server = envelope.get("server")
        version = envelope.get("version")
        return WelcomeMessage(
            server=server if isinstance(server, str) else None,
            version=version if isinstance(version, str) else None,
        )

    parsers: Dict[str, Callable[[Mapping[str, Any]], InboundMessage]] = {
        MSG_NOW_PLAYING: lambda data: NowPlayingMessage(_parse_snapshot(data)),
        MSG_PROGRESS: lambda data: ProgressMessage(_parse_progress(data)),
        MSG_PLAYBACK_STATE: lambda data: PlaybackStateMessage(_parse_playback_state(data)),
    }
    parser = parsers.get(message_type)
    if parser is None:
        return IgnoredMessage(f"unknown type {message_type!r}")
    data = envelope.get("data")
    if not isinstance(data, dict):
        return IgnoredMessage(f"{message_type} has no data object")
    try:
        return parser(data)
    except _InvalidField as exc:
        return IgnoredMessage(f"{message_type}: {exc}")


class MessageDispatcher:
    """Routes parsed messages to the clock and visibility state machine in arrival order."""

    def __init__(
        self,
        clock: ClockExtrapolator,
        visibility: VisibilityController,
        *,
        time_source: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._visibility = visibility
        self._time = time_source
        self._snapshot: Optional[PlaybackSnapshot] = None
        self._enabled = True

    @property
    def snapshot(self) -> Optional[PlaybackSnapshot]:
        return self._snapshot

    def disable(self) -> None:
        """Drop every later frame; used once the engine has shut down."""
        self._enabled = False

    def dispatch(self, raw_text: Any) -> InboundMessage:
        message = parse_message(raw_text)
        if not self._enabled:
            return IgnoredMessage("dispatcher disabled")
        now = self._time()
        if isinstance(message, NowPlayingMessage):
            snapshot = message.snapshot
            self._snapshot = snapshot
            self._clock.apply_authoritative(snapshot.elapsed, snapshot.is_playing, now)
            if snapshot.is_playing:
                self._visibility.show()
            _LOGGER.debug(
                "Now playing: %s - %s (elapsed=%.1f duration=%.1f playing=%s)",
                snapshot.track,
                snapshot.artist,
                snapshot.elapsed,
                snapshot.duration,
                snapshot.is_playing,
            )
        elif isinstance(message, ProgressMessage):
            sample = message.sample
            self._clock.apply_authoritative(sample.elapsed, sample.is_playing, now)
            if self._snapshot is not None and self._snapshot.duration != sample.duration:
                self._snapshot = PlaybackStateUpdate(
                    is_playing=self._snapshot.is_playing, fields={"duration": sample.duration}
                ).merge_into(self._snapshot)
        elif isinstance(message, PlaybackStateMessage):
            update = message.update
            self._snapshot = update.merge_into(self._snapshot)
            self._clock.set_playing(update.is_playing, now)
            if update.is_playing:
                self._visibility.show()
            else:
                self._visibility.hide()
            _LOGGER.debug("Playback state changed: playing=%s", update.is_playing)
        elif isinstance(message, WelcomeMessage):
            _LOGGER.info(
                "Welcome received from %s (version %s)",
                message.server or "unknown server",
                message.version or "unknown",
            )
        else:
            _LOGGER.debug("Dropped inbound frame: %s", message.reason)
        return message
