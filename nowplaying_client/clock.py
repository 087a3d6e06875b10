from __future__ import annotations

from typing import Optional

from nowplaying_client.models import ClockAnchor


class ClockExtrapolator:
    """Synthesises a continuously advancing playback position between authoritative samples.

    The source only reports position periodically, so the displayed value is
    extrapolated from the last anchor at real-time rate. Every authoritative
    sample replaces the anchor outright; drift never accumulates.
    """

    def __init__(self) -> None:
        self._anchor: Optional[ClockAnchor] = None

    @property
    def anchor(self) -> Optional[ClockAnchor]:
        return self._anchor

    @property
    def is_playing(self) -> bool:
        anchor = self._anchor
        return bool(anchor and anchor.is_playing)

    def apply_authoritative(self, value: float, is_playing: bool, now: float) -> None:
        # Single assignment so readers never observe a half-updated anchor.
        self._anchor = ClockAnchor(value=float(value), captured_at=now, is_playing=bool(is_playing))

    def set_playing(self, is_playing: bool, now: float) -> None:
        """Flip the play flag, re-anchoring at the current estimate to avoid a jump."""
        self.apply_authoritative(self.estimate(now), is_playing, now)

    def estimate(self, now: float) -> float:
        anchor = self._anchor
        if anchor is None:
            return 0.0
        if not anchor.is_playing:
            return anchor.value
        return anchor.value + (now - anchor.captured_at)

    def reset(self) -> None:
        self._anchor = None
