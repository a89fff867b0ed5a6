"""Paging collaborators — deliver escalation pages to human responders.

Every pager raises EscalationDeliveryError when a page was not delivered.
A pager must never report success for a page nobody received.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from crisis_history.domain.errors import EscalationDeliveryError
from crisis_history.domain.escalation import EscalationPage
from crisis_history.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


class Pager(Protocol):
    """Accepts ``(targetAudience, title, message, priority, type)`` pages."""

    async def send(self, page: EscalationPage) -> None:
        ...


class ResponderBroadcastPager:
    """Pushes pages to every responder console on ``/ws/responders``."""

    def __init__(self, connections: ConnectionManager) -> None:
        self._connections = connections

    async def send(self, page: EscalationPage) -> None:
        if self._connections.active_count == 0:
            raise EscalationDeliveryError("no responder console is connected")
        delivered = await self._connections.broadcast_json(
            {"event": "escalation", "page": page.model_dump(mode="json")}
        )
        if delivered == 0:
            raise EscalationDeliveryError("every responder console rejected the page")
        logger.info("Page for user %s delivered to %d responder(s)", page.user_id, delivered)


class WebhookPager:
    """POSTs pages to an external notification service."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def send(self, page: EscalationPage) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json=page.model_dump(mode="json"))
        except httpx.HTTPError as exc:
            raise EscalationDeliveryError(f"webhook unreachable: {exc}") from exc
        if response.status_code >= 300:
            raise EscalationDeliveryError(f"webhook answered HTTP {response.status_code}")
        logger.info("Page for user %s accepted by webhook", page.user_id)
