"""EscalationPage — the notification handed to the paging collaborator."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class EscalationTrigger(str, Enum):
    """Which auto-escalation rule fired."""

    CRITICAL_EVENT = "critical_event"
    REPEATED_HIGH_SEVERITY = "repeated_high_severity"


class EscalationPage(BaseModel):
    """``(targetAudience, title, message, priority, type)`` plus routing context."""

    target_audience: str
    title: str
    message: str
    priority: str = "critical"
    type: str = "crisis"
    user_id: str
    entry_id: str
    trigger: EscalationTrigger
    created_at: datetime = Field(..., description="When the decision was taken")

    model_config = {"frozen": True}
