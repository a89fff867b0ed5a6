"""Shared resources for the API layer."""

from __future__ import annotations

from crisis_history.services.connection_manager import ConnectionManager

# Responder consoles subscribed to escalation pages
responder_manager = ConnectionManager()
