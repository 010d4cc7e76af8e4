"""job_metrics: Prometheus instrumentation for a background job runtime."""

from job_metrics.errors import (
    ConfigurationError,
    JobMetricsError,
    SnapshotError,
    UnknownMetricError,
)
from job_metrics.labels import labelize, worker_name
from job_metrics.middleware import ClientMiddleware, ServerMiddleware, install
from job_metrics.models import (
    FleetAggregate,
    MetricDefinition,
    ProcessSnapshot,
    QueueSnapshot,
    RuntimeStats,
)
from job_metrics.poller import StatsPoller, aggregate_processes
from job_metrics.registry import LONG_RUNNING_JOB_RUNTIME_BUCKETS, MetricsRegistry
from job_metrics.runtime import JobRuntime, RedisJobRuntime

__all__ = [
    "ClientMiddleware",
    "ConfigurationError",
    "FleetAggregate",
    "JobMetricsError",
    "JobRuntime",
    "LONG_RUNNING_JOB_RUNTIME_BUCKETS",
    "MetricDefinition",
    "MetricsRegistry",
    "ProcessSnapshot",
    "QueueSnapshot",
    "RedisJobRuntime",
    "RuntimeStats",
    "ServerMiddleware",
    "SnapshotError",
    "StatsPoller",
    "UnknownMetricError",
    "aggregate_processes",
    "install",
    "labelize",
    "worker_name",
]
