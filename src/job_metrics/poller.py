"""One collection tick: read the job runtime and update the polled gauges."""

from __future__ import annotations

from collections.abc import Iterable

from job_metrics.errors import ConfigurationError
from job_metrics.logging import get_logger
from job_metrics.models import FleetAggregate, ProcessSnapshot
from job_metrics.registry import MetricsRegistry
from job_metrics.runtime import JobRuntime

_logger = get_logger(__name__)

# Written to the saturation gauge when no process is registered.
EMPTY_FLEET_SATURATION = 0.0

_NO_LABELS: dict[str, str] = {}


def aggregate_processes(processes: Iterable[ProcessSnapshot]) -> FleetAggregate:
    """Sum capacity over the fleet in a single pass. Quiet processes count as full."""
    total_concurrency = 0
    total_busy = 0
    total_available = 0
    for process in processes:
        total_concurrency += process.concurrency
        total_busy += process.busy
        total_available += process.available
    return FleetAggregate(
        total_concurrency=total_concurrency,
        total_busy=total_busy,
        total_available=total_available,
    )


class StatsPoller:
    """
    Pushes queue, fleet and capacity gauges to the registry on each :meth:`collect`.

    Queries are not transactional and failures are not retried: an error
    from the runtime propagates to the caller, and gauges written earlier in
    the same tick keep their new values.
    """

    def __init__(self, registry: MetricsRegistry, runtime: JobRuntime) -> None:
        if not registry.server:
            raise ConfigurationError("StatsPoller needs a registry built with server=True")
        self._registry = registry
        self._runtime = runtime

    def collect(self) -> FleetAggregate:
        try:
            return self._collect()
        except Exception:
            _logger.warning("Collection tick failed", exc_info=True)
            raise

    def _collect(self) -> FleetAggregate:
        registry = self._registry

        for queue in self._runtime.queues():
            labels = {"queue": queue.name}
            registry.set("jobs_waiting_count", labels, queue.size)
            registry.set("queue_latency", labels, queue.latency)

        stats = self._runtime.stats()
        registry.set("jobs_scheduled_count", _NO_LABELS, stats.scheduled_size)
        registry.set("jobs_dead_count", _NO_LABELS, stats.dead_size)
        registry.set("active_processes", _NO_LABELS, stats.processes_size)
        registry.set("jobs_retry_count", _NO_LABELS, stats.retry_size)

        processes = self._runtime.processes()
        fleet = aggregate_processes(processes)
        registry.set("active_workers_count", _NO_LABELS, len(processes))
        saturation = fleet.saturation
        registry.set("concurrency", _NO_LABELS, fleet.total_concurrency)
        registry.set("busy_workers", _NO_LABELS, fleet.total_busy)
        registry.set("available_workers", _NO_LABELS, fleet.total_available)
        registry.set(
            "saturation",
            _NO_LABELS,
            saturation if saturation is not None else EMPTY_FLEET_SATURATION,
        )

        _logger.debug(
            "Collection tick complete",
            extra={
                "processes": stats.processes_size,
                "concurrency": fleet.total_concurrency,
                "busy": fleet.total_busy,
                "available": fleet.total_available,
                "saturation": saturation,
            },
        )
        return fleet
