"""Prometheus metric definitions and the registry that owns them."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

from job_metrics.errors import UnknownMetricError
from job_metrics.models import MetricDefinition

# Standard Prometheus buckets, extended for jobs that run for minutes or hours.
LONG_RUNNING_JOB_RUNTIME_BUCKETS: tuple[float, ...] = (
    0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10,
    30, 60, 120, 300, 1800, 3600, 21_600,
)  # fmt: skip

JOB_LABELS = ("queue", "worker")

CLIENT_METRICS: tuple[MetricDefinition, ...] = (
    MetricDefinition(
        name="jobs_enqueued_total",
        kind="counter",
        labels=JOB_LABELS,
        documentation="A counter of the total number of jobs enqueued.",
    ),
)

SERVER_METRICS: tuple[MetricDefinition, ...] = (
    # Counters
    MetricDefinition(
        name="jobs_executed_total",
        kind="counter",
        labels=JOB_LABELS,
        documentation="A counter of the total number of jobs executed.",
    ),
    MetricDefinition(
        name="jobs_success_total",
        kind="counter",
        labels=JOB_LABELS,
        documentation="A counter of the total number of jobs successfully processed.",
    ),
    MetricDefinition(
        name="jobs_failed_total",
        kind="counter",
        labels=JOB_LABELS,
        documentation="A counter of the total number of jobs failed.",
    ),
    # Gauges
    MetricDefinition(
        name="jobs_waiting_count",
        kind="gauge",
        labels=("queue",),
        documentation="The number of jobs waiting to process.",
    ),
    MetricDefinition(
        name="queue_latency",
        kind="gauge",
        labels=("queue",),
        unit="seconds",
        documentation="Seconds since the oldest job in the queue was enqueued, 0 for an empty queue.",
    ),
    MetricDefinition(
        name="active_workers_count",
        kind="gauge",
        documentation="The number of distinct live worker processes.",
    ),
    MetricDefinition(
        name="jobs_scheduled_count",
        kind="gauge",
        documentation="The number of jobs scheduled for later execution.",
    ),
    MetricDefinition(
        name="jobs_retry_count",
        kind="gauge",
        documentation="The number of failed jobs waiting to be retried.",
    ),
    MetricDefinition(
        name="jobs_dead_count",
        kind="gauge",
        documentation="The number of jobs that exceeded their retry count.",
    ),
    MetricDefinition(
        name="active_processes",
        kind="gauge",
        documentation="The number of registered worker processes.",
    ),
    MetricDefinition(
        name="concurrency",
        kind="gauge",
        documentation="The total number of jobs that can run at a time across all processes.",
    ),
    MetricDefinition(
        name="busy_workers",
        kind="gauge",
        documentation="The number of jobs currently running across all processes.",
    ),
    MetricDefinition(
        name="available_workers",
        kind="gauge",
        documentation="The number of workers available for new jobs across all processes.",
    ),
    MetricDefinition(
        name="saturation",
        kind="gauge",
        documentation="Fraction of capacity unavailable for new jobs, 0 when no process is registered.",
    ),
    # Histograms
    MetricDefinition(
        name="job_latency",
        kind="histogram",
        labels=JOB_LABELS,
        unit="seconds",
        buckets=LONG_RUNNING_JOB_RUNTIME_BUCKETS,
        documentation="Seconds between a job being enqueued and starting to run.",
    ),
    MetricDefinition(
        name="job_runtime",
        kind="histogram",
        labels=JOB_LABELS,
        unit="seconds",
        buckets=LONG_RUNNING_JOB_RUNTIME_BUCKETS,
        documentation="A histogram of the job execution time.",
    ),
)

_Metric = Counter | Gauge | Histogram


class MetricsRegistry:
    """
    Owns every job metric in a dedicated :class:`CollectorRegistry`.

    Constructed once at startup and handed to the middlewares and the poller.
    Writes go through :meth:`increment`, :meth:`set` and :meth:`observe`,
    addressed by unprefixed metric name and a label mapping (empty for
    unlabelled metrics). With ``server=False`` only the enqueue counter is
    registered, for processes that submit jobs but never run them.
    """

    def __init__(
        self,
        *,
        prefix: str = "",
        server: bool = True,
        collector_registry: CollectorRegistry | None = None,
    ) -> None:
        self.prefix = prefix
        self.server = server
        self.collector_registry = (
            collector_registry if collector_registry is not None else CollectorRegistry()
        )
        definitions = CLIENT_METRICS + SERVER_METRICS if server else CLIENT_METRICS
        self._definitions: dict[str, MetricDefinition] = {d.name: d for d in definitions}
        self._metrics: dict[str, _Metric] = {
            d.name: self._build(d) for d in definitions
        }

    def _build(self, definition: MetricDefinition) -> _Metric:
        full_name = self.full_name(definition.name)
        match definition.kind:
            case "counter":
                return Counter(
                    full_name,
                    definition.documentation,
                    definition.labels,
                    registry=self.collector_registry,
                )
            case "gauge":
                return Gauge(
                    full_name,
                    definition.documentation,
                    definition.labels,
                    registry=self.collector_registry,
                )
            case "histogram":
                assert definition.buckets is not None
                return Histogram(
                    full_name,
                    definition.documentation,
                    definition.labels,
                    buckets=definition.buckets,
                    registry=self.collector_registry,
                )

    def full_name(self, name: str) -> str:
        """Exported name of ``name``, with the configured prefix."""
        return f"{self.prefix}_{name}" if self.prefix else name

    @property
    def definitions(self) -> Iterable[MetricDefinition]:
        return self._definitions.values()

    def __contains__(self, name: object) -> bool:
        return name in self._metrics

    def _child(self, name: str, labels: Mapping[str, str]) -> _Metric:
        try:
            metric = self._metrics[name]
        except KeyError:
            raise UnknownMetricError(name) from None
        if labels:
            return metric.labels(**labels)
        return metric

    def increment(self, name: str, labels: Mapping[str, str], by: float = 1) -> None:
        child = self._child(name, labels)
        assert isinstance(child, Counter)
        child.inc(by)

    def set(self, name: str, labels: Mapping[str, str], value: float) -> None:
        child = self._child(name, labels)
        assert isinstance(child, Gauge)
        child.set(value)

    def observe(self, name: str, labels: Mapping[str, str], value: float) -> None:
        child = self._child(name, labels)
        assert isinstance(child, Histogram)
        child.observe(value)

    def value(self, name: str, labels: Mapping[str, str] | None = None) -> float | None:
        """Current sample of a counter or gauge, None if never written."""
        if name not in self._definitions:
            raise UnknownMetricError(name)
        return self.collector_registry.get_sample_value(self.full_name(name), dict(labels or {}))
