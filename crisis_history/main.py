"""crisis-history — Crisis History & Risk Prediction service.

This is the application entry point.  It wires the HistoryStore, the
paging collaborator, the CrisisHistoryService, and the HTTP / WebSocket
endpoints together.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from crisis_history.api.dependencies import responder_manager
from crisis_history.api.errors import install_error_handlers
from crisis_history.api.history import create_history_router
from crisis_history.api.ws_responders import create_responder_router
from crisis_history.config import settings
from crisis_history.core.alerts import AlertManager
from crisis_history.core.escalation import AutoEscalationDecider
from crisis_history.core.history_service import CrisisHistoryService
from crisis_history.core.risk_predictor import RiskPredictor, RiskWeights
from crisis_history.services.connection_manager import ConnectionManager
from crisis_history.services.paging import Pager, ResponderBroadcastPager, WebhookPager
from crisis_history.store.history_store import HistoryStore

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)


# ── Factory ──────────────────────────────────────────────────────────────────

def create_app(service: CrisisHistoryService, responders: ConnectionManager) -> FastAPI:
    """Build the FastAPI app around an already-constructed service."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("%s started", settings.app_name)
        yield
        # Drain mining so no mined-but-unpublished pattern set is lost
        await service.shutdown()

    app = FastAPI(
        title=settings.app_name,
        description="Crisis history, pattern mining, risk prediction and alerts",
        version="1.0.0",
        debug=settings.debug,
        lifespan=lifespan,
    )
    install_error_handlers(app)
    app.include_router(create_history_router(service))
    app.include_router(create_responder_router(responders))

    @app.get("/health")
    async def health() -> dict:
        summary = await service.store_summary()
        return {
            "status": "ok",
            **summary.to_dict(),
            "mining_in_flight": service.mining_in_flight,
            "pages_in_flight": service.pages_in_flight,
            "responders_connected": responders.active_count,
        }

    return app


# ── State ────────────────────────────────────────────────────────────────────

store = HistoryStore(
    max_cached_users=settings.max_cached_users,
    idle_ttl=timedelta(minutes=settings.user_cache_ttl_minutes),
    persistence_timeout=settings.persistence_timeout_seconds,
)

# ── Paging ───────────────────────────────────────────────────────────────────

pager: Pager
if settings.paging_webhook_url:
    pager = WebhookPager(settings.paging_webhook_url, timeout=settings.paging_timeout_seconds)
else:
    pager = ResponderBroadcastPager(responder_manager)

# ── Service ──────────────────────────────────────────────────────────────────

service = CrisisHistoryService(
    store=store,
    pager=pager,
    predictor=RiskPredictor(RiskWeights(
        recent_critical_window=timedelta(days=settings.risk_recent_critical_days),
        frequency_window=timedelta(days=settings.risk_frequency_window_days),
        frequency_threshold=settings.risk_frequency_threshold,
        history_limit=settings.risk_history_limit,
    )),
    alert_manager=AlertManager(alert_lifetime=timedelta(hours=settings.alert_lifetime_hours)),
    decider=AutoEscalationDecider(target_audience=settings.paging_target_audience),
    paging_timeout=settings.paging_timeout_seconds,
)

# ── App ──────────────────────────────────────────────────────────────────────

app = create_app(service, responder_manager)
