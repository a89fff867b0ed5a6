"""RiskPrediction — stateless output of the risk predictor."""

from __future__ import annotations

from pydantic import BaseModel, Field

from crisis_history.domain.enums import RiskLevel, Timeframe


class RiskPrediction(BaseModel):
    """Forward-looking risk estimate.  Computed fresh per request, never stored."""

    risk_level: RiskLevel
    probability: float = Field(..., ge=0.0, le=1.0)
    timeframe: Timeframe
    factors: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    confidence: float = Field(..., ge=0.0, le=1.0)
    based_on_patterns: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}
