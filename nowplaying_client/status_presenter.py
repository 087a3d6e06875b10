from __future__ import annotations

from typing import Dict, Tuple

from nowplaying_client.models import ConnectionState

STATUS_COLORS: Dict[ConnectionState, str] = {
    ConnectionState.CONNECTED: "#22c55e",
    ConnectionState.CONNECTING: "#eab308",
    ConnectionState.DISCONNECTED: "#ef4444",
}


class StatusPresenter:
    """Formats the connection status indicator shown until track metadata arrives."""

    def __init__(self, endpoint_url: str) -> None:
        self._endpoint_url = endpoint_url

    @property
    def endpoint_url(self) -> str:
        return self._endpoint_url

    def status_text(self, state: ConnectionState) -> str:
        if state == ConnectionState.CONNECTED:
            return "Connected"
        if state == ConnectionState.CONNECTING:
            return "Connecting..."
        return f"Disconnected - retrying {self._endpoint_url}"

    def status_color(self, state: ConnectionState) -> str:
        return STATUS_COLORS.get(state, STATUS_COLORS[ConnectionState.DISCONNECTED])

    def present(self, state: ConnectionState) -> Tuple[str, str]:
        return self.status_text(state), self.status_color(state)
