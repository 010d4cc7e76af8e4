"""Data models: metric definitions and the per-tick runtime snapshots."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

MetricKind = Literal["counter", "gauge", "histogram"]


class MetricDefinition(BaseModel):
    """One exported metric. Built once at startup and never changed."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Metric name without prefix")
    kind: MetricKind
    documentation: str = Field(description="Help text shown on the /metrics endpoint")
    labels: tuple[str, ...] = Field(default=())
    unit: str | None = Field(default=None, description="Informational only, not appended to the name")
    buckets: tuple[float, ...] | None = Field(default=None)

    @model_validator(mode="after")
    def _buckets_only_for_histograms(self) -> MetricDefinition:
        if self.kind == "histogram" and not self.buckets:
            raise ValueError(f"histogram {self.name!r} needs bucket boundaries")
        if self.kind != "histogram" and self.buckets is not None:
            raise ValueError(f"{self.kind} {self.name!r} cannot have buckets")
        return self


class ProcessSnapshot(BaseModel):
    """One polled worker process of the job runtime."""

    model_config = ConfigDict(frozen=True)

    identity: str
    concurrency: int = Field(ge=0, description="Configured max parallel jobs")
    busy: int = Field(ge=0, description="Jobs currently executing")
    quiet: bool = Field(default=False, description="Draining: accepts no new work")

    @property
    def available(self) -> int:
        # Quieted processes report as full so draining capacity is not counted as idle.
        if self.quiet:
            return 0
        return self.concurrency - self.busy


class QueueSnapshot(BaseModel):
    """Pending size and latency of one queue."""

    model_config = ConfigDict(frozen=True)

    name: str
    size: int = Field(ge=0)
    latency: float = Field(default=0.0, ge=0.0, description="Age of the oldest job in seconds, 0.0 when empty")


class RuntimeStats(BaseModel):
    """Global counters read from the runtime in a single round trip."""

    model_config = ConfigDict(frozen=True)

    processes_size: int = Field(ge=0, description="Registered processes, live or not")
    scheduled_size: int = Field(ge=0)
    retry_size: int = Field(ge=0)
    dead_size: int = Field(ge=0)


class FleetAggregate(BaseModel):
    """Capacity totals over every process seen in one tick."""

    model_config = ConfigDict(frozen=True)

    total_concurrency: int = 0
    total_busy: int = 0
    total_available: int = 0

    @property
    def saturation(self) -> float | None:
        """Fraction of capacity unavailable for new work; None with no capacity."""
        if self.total_concurrency == 0:
            return None
        return 1 - self.total_available / self.total_concurrency
