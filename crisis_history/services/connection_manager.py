"""Manages responder WebSocket connections that receive escalation pages."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks connected responder consoles and broadcasts JSON to them."""

    def __init__(self) -> None:
        self._connections: list[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.append(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._connections:
            self._connections.remove(websocket)

    @property
    def active_count(self) -> int:
        return len(self._connections)

    async def broadcast_json(self, data: dict[str, Any]) -> int:
        """Send a JSON payload to every connected responder.

        Connections that fail are dropped.  Returns how many sends succeeded.
        """
        delivered = 0
        for ws in list(self._connections):
            try:
                await ws.send_json(data)
                delivered += 1
            except Exception as exc:
                logger.warning("Dropping responder connection after failed send: %s", exc)
                self.disconnect(ws)
        return delivered
