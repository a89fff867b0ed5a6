"""CrisisAlert — a time-bound actionable notice for a user's responders."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from crisis_history.domain.enums import AlertSeverity, AlertType


class CrisisAlert(BaseModel):
    """Alerts are never deleted; they stop being active once ``expires_at`` passes."""

    id: str
    user_id: str
    type: AlertType
    severity: AlertSeverity
    message: str
    timestamp: datetime
    action_required: bool = False
    suggested_actions: list[str] = Field(default_factory=list)
    expires_at: Optional[datetime] = None
    entry_id: Optional[str] = Field(default=None, description="Entry that raised the alert, if any")

    model_config = {"frozen": True}

    def is_active(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now
