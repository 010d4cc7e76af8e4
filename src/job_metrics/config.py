"""Collector configuration (environment-driven, Pydantic Settings)."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MetricsConfig(BaseSettings):
    """Settings read from ``JOB_METRICS_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="JOB_METRICS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    redis_url: str = Field(default="redis://localhost:6379", description="Redis URL of the job runtime")
    namespace: str = Field(default="", description="Key prefix used by the job runtime, empty for none")
    metric_prefix: str = Field(default="", description="Prefix prepended to every exported metric name")
    server: bool = Field(default=True, description="Register execution and polled metrics, not just enqueue")
    collect_interval_seconds: float = Field(default=15.0, gt=0, description="Seconds between collection ticks")
    metrics_port: int = Field(default=9394, ge=1, le=65535, description="Port for the Prometheus endpoint")
    log_level: str = Field(default="INFO")
