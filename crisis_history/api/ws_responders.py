"""WebSocket endpoint: streams escalation pages to responder consoles."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from crisis_history.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


def create_responder_router(manager: ConnectionManager) -> APIRouter:
    """Factory that wires the responder endpoint to a ConnectionManager."""

    router = APIRouter()

    @router.websocket("/ws/responders")
    async def stream_pages(websocket: WebSocket) -> None:
        """Responder consoles connect here to receive live escalation pages."""
        await manager.connect(websocket)
        logger.info("Responder connected — total: %d", manager.active_count)

        try:
            while True:
                # Keep the connection alive; pages are pushed server-side
                await websocket.receive_text()

        except WebSocketDisconnect:
            manager.disconnect(websocket)
            logger.info("Responder disconnected — total: %d", manager.active_count)

    return router
