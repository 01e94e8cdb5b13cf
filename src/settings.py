"""Centralized settings for the trade billing reconciliation services.

Uses pydantic-settings to load from environment variables (prefixed
TRADEBILL_) or a local .env file, with defaults matching the
reconciliation engine's built-in behaviour.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Reconciliation settings loaded from environment variables."""

    # --- Reconciliation ---
    reconciliation_tolerance: float = 0.01  # absolute, currency units
    batch_chunk_size: int = 50
    batch_chunk_delay_seconds: float = 0.0
    invoice_due_days: int = 30

    # --- Logging ---
    log_level: str = "INFO"
    log_format: str = "json"
    slow_threshold_ms: float = 1000.0
    service_name: str = "trade-billing"

    model_config = {
        "env_prefix": "TRADEBILL_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
