"""Client and server middlewares recording job throughput, latency and runtime.

Both follow the host runtime's middleware signature::

    middleware(worker, job, queue, call_next)

``worker`` is the job class, instance or plain class name, ``job`` the job
payload mapping and ``queue`` the queue name. ``call_next`` continues the
chain (submission or execution) and its result is returned unchanged.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from typing import Any

from job_metrics.errors import ConfigurationError
from job_metrics.labels import labelize
from job_metrics.logging import get_logger
from job_metrics.registry import MetricsRegistry

_logger = get_logger(__name__)

CallNext = Callable[[], Any]
Middleware = Callable[[Any, Mapping[str, Any], str, CallNext], Any]


def job_latency(job: Mapping[str, Any], now: float | None = None) -> float:
    """Seconds between the job being enqueued and ``now``; 0.0 when unknown."""
    timestamp = job.get("enqueued_at")
    if timestamp is None:
        timestamp = job.get("created_at")
    if timestamp is None:
        return 0.0
    try:
        enqueued_at = float(timestamp)
    except (TypeError, ValueError):
        _logger.debug("Unreadable job timestamp", extra={"timestamp": repr(timestamp)})
        return 0.0
    current = time.time() if now is None else now
    return max(0.0, current - enqueued_at)


class ClientMiddleware:
    """Counts every job submission."""

    def __init__(self, registry: MetricsRegistry) -> None:
        self._registry = registry

    def __call__(
        self,
        worker: Any,
        job: Mapping[str, Any],
        queue: str,
        call_next: CallNext,
    ) -> Any:
        self._registry.increment("jobs_enqueued_total", labelize(worker, job, queue))
        return call_next()


class ServerMiddleware:
    """
    Wraps job execution: Started -> Succeeded | Failed.

    On start the enqueue-to-start latency is observed and the job counted as
    executed. Runtime is observed for both outcomes. A job ending in any
    exception, including SystemExit or cancellation, is counted as failed and
    the exception re-raised as-is.
    """

    def __init__(self, registry: MetricsRegistry) -> None:
        if not registry.server:
            raise ConfigurationError("ServerMiddleware needs a registry built with server=True")
        self._registry = registry

    def __call__(
        self,
        worker: Any,
        job: Mapping[str, Any],
        queue: str,
        call_next: CallNext,
    ) -> Any:
        labels = labelize(worker, job, queue)
        self._registry.observe("job_latency", labels, job_latency(job))
        self._registry.increment("jobs_executed_total", labels)
        start = time.monotonic()
        try:
            result = call_next()
        except BaseException:
            self._registry.increment("jobs_failed_total", labels)
            raise
        else:
            self._registry.increment("jobs_success_total", labels)
            return result
        finally:
            self._registry.observe("job_runtime", labels, time.monotonic() - start)


def install(
    registry: MetricsRegistry,
    client_chain: list[Middleware],
    server_chain: list[Middleware] | None = None,
) -> None:
    """Append the metrics middlewares to the host's middleware chains."""
    client_chain.append(ClientMiddleware(registry))
    if server_chain is not None:
        server_chain.append(ServerMiddleware(registry))
