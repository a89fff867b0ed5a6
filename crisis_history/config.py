"""Application configuration loaded from environment variables."""

from __future__ import annotations

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "crisis-history"
    debug: bool = False
    log_level: str = "INFO"

    # Per-user cache over the repository
    max_cached_users: int = 10_000
    user_cache_ttl_minutes: int = 60
    persistence_timeout_seconds: float = 5.0

    # Alerts
    alert_lifetime_hours: int = 24

    # Paging
    paging_timeout_seconds: float = 10.0
    paging_webhook_url: Optional[str] = None
    paging_target_audience: str = "crisis-escalation-team"

    # Risk prediction
    risk_recent_critical_days: int = 7
    risk_frequency_window_days: int = 30
    risk_frequency_threshold: int = 10
    risk_history_limit: int = 30

    model_config = {"env_prefix": "CRISIS_"}


settings = Settings()
