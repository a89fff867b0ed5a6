"""REST endpoints for crisis history, patterns, risk and alerts.

Path prefix: /api/users/{user_id}

Every endpoint is a thin adapter over CrisisHistoryService.  Service errors
are translated to HTTP status codes by the handlers in api/errors.py.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from crisis_history.core.history_service import CrisisHistoryService
from crisis_history.domain.entry import (
    AnnotationPatch,
    ContextualData,
    CrisisAnalysis,
    HistoryFilter,
)
from crisis_history.domain.enums import SeverityLevel, SortField, SortOrder, Timeframe

logger = logging.getLogger(__name__)


class RecordEventRequest(BaseModel):
    """A finished classifier verdict plus optional context."""

    analysis: CrisisAnalysis
    contextual_data: Optional[ContextualData] = None


def create_history_router(service: CrisisHistoryService) -> APIRouter:
    """Factory that wires the history endpoints to a CrisisHistoryService."""

    router = APIRouter(prefix="/api/users/{user_id}", tags=["crisis-history"])

    @router.post("/events", status_code=201)
    async def record_event(user_id: str, body: RecordEventRequest) -> dict[str, Any]:
        entry = await service.record_event(user_id, body.analysis, body.contextual_data)
        return entry.model_dump(mode="json")

    @router.patch("/events/{entry_id}")
    async def annotate_event(user_id: str, entry_id: str, patch: AnnotationPatch) -> dict[str, Any]:
        entry = await service.annotate_event(user_id, entry_id, patch)
        return entry.model_dump(mode="json")

    @router.get("/events")
    async def query_history(
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        severity: Optional[list[SeverityLevel]] = Query(default=None),
        include_false_positives: bool = False,
        sort_by: Optional[SortField] = None,
        sort_order: SortOrder = SortOrder.ASC,
        limit: Optional[int] = Query(default=None, ge=1),
    ) -> dict[str, Any]:
        history_filter = HistoryFilter(
            start=start,
            end=end,
            severities=severity or [],
            include_false_positives=include_false_positives,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
        )
        entries = await service.query_history(user_id, history_filter)
        return {
            "entries": [e.model_dump(mode="json") for e in entries],
            "count": len(entries),
        }

    @router.get("/statistics")
    async def get_statistics(user_id: str) -> dict[str, Any]:
        stats = await service.get_statistics(user_id)
        return stats.model_dump(mode="json")

    @router.get("/patterns")
    async def get_patterns(user_id: str) -> dict[str, Any]:
        patterns = await service.get_patterns(user_id)
        return {
            "patterns": [p.model_dump(mode="json") for p in patterns],
            "count": len(patterns),
        }

    @router.get("/prediction")
    async def predict_risk(user_id: str, timeframe: Timeframe = Timeframe.HOURS_24) -> dict[str, Any]:
        prediction = await service.predict_risk(user_id, timeframe)
        return prediction.model_dump(mode="json")

    @router.get("/alerts")
    async def get_active_alerts(user_id: str) -> dict[str, Any]:
        alerts = await service.get_active_alerts(user_id)
        return {
            "alerts": [a.model_dump(mode="json") for a in alerts],
            "count": len(alerts),
        }

    @router.get("/analytics")
    async def get_analytics(user_id: str) -> dict[str, Any]:
        analytics = await service.get_analytics(user_id)
        if analytics is None:
            raise HTTPException(status_code=404, detail=f"No history for user {user_id}")
        return analytics.model_dump(mode="json")

    return router
