"""Engine configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class AnalyticsSettings(BaseSettings):
    # Cache TTLs per operation class
    ttl_totals_seconds: float = Field(default=300.0, gt=0)
    ttl_analytics_seconds: float = Field(default=600.0, gt=0)
    ttl_range_seconds: float = Field(default=900.0, gt=0)

    # Cache ceiling
    cache_max_entries: int = Field(default=50, ge=1)
    cache_max_memory_bytes: int = Field(default=10 * 1024 * 1024, ge=1)

    # Change handling
    modify_debounce_seconds: float = Field(default=1.0, ge=0)

    # Aggregation
    batch_size: int = Field(default=50, ge=1)
    analysis_window_days: int = Field(default=90, ge=1)

    # Service
    log_level: str = "INFO"
    documents_path: str = "."
    document_extensions: list[str] = [".md"]

    model_config = {"env_prefix": "NOTES_ANALYTICS_"}


settings = AnalyticsSettings()
