"""CrisisPattern — a regularity mined from a user's full history.

Patterns are recomputed wholesale after every new event.  The previous set
for a user is replaced, never merged.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from crisis_history.domain.enums import PatternSeverity, PatternType


class CrisisPattern(BaseModel):
    """One mined pattern and the scoring inputs it contributes."""

    id: str = Field(..., description="Deterministic '<type>:<key>' identifier")
    type: PatternType
    pattern: str = Field(..., description="Human-readable description")
    frequency: int = Field(..., ge=0)
    last_occurrence: datetime
    confidence: float = Field(..., ge=0.0, le=1.0)
    severity: PatternSeverity
    predictive_value: float = Field(..., ge=0.0, le=1.0)
    recommendations: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}
