"""Metrics collector: polls the job runtime on an interval and serves /metrics."""

from __future__ import annotations

import signal
import time
from collections.abc import Callable

from prometheus_client import start_http_server

from job_metrics.config import MetricsConfig
from job_metrics.errors import ConfigurationError
from job_metrics.logging import configure_logging, get_logger
from job_metrics.poller import StatsPoller
from job_metrics.registry import MetricsRegistry
from job_metrics.runtime import RedisJobRuntime

COMPONENT = "job_metrics"
_shutdown_requested = False
_logger = get_logger(COMPONENT)


def _request_shutdown(*args: object) -> None:
    global _shutdown_requested
    _shutdown_requested = True


def build_registry(config: MetricsConfig) -> MetricsRegistry:
    return MetricsRegistry(prefix=config.metric_prefix, server=config.server)


def run_collector(
    poller: StatsPoller,
    interval_seconds: float,
    should_stop: Callable[[], bool],
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """
    Call ``poller.collect()`` every ``interval_seconds`` until ``should_stop()``.

    Ticks never overlap: the next one starts only after the previous one has
    returned, and a tick that overran its interval is followed immediately.
    A failed tick is logged and the next tick retries. Returns the number of
    failed ticks.
    """
    failures = 0
    while not should_stop():
        started = clock()
        try:
            poller.collect()
        except Exception:  # noqa: BLE001
            failures += 1
            _logger.exception("Metrics collection failed", extra={"failures": failures})
        remaining = interval_seconds - (clock() - started)
        if remaining > 0 and not should_stop():
            sleep(remaining)
    return failures


def main() -> None:
    config = MetricsConfig()
    configure_logging(config.log_level)

    if not config.server:
        # Client-only processes have no polled gauges to collect.
        _logger.error(
            "Collector requires server mode; unset JOB_METRICS_SERVER or set it to true",
            extra={"server": config.server},
        )
        raise ConfigurationError("the collector entry point requires server=True")

    _logger.info(
        "Collector starting",
        extra={
            "redis_url": config.redis_url,
            "namespace": config.namespace,
            "metric_prefix": config.metric_prefix,
            "metrics_port": config.metrics_port,
            "collect_interval_seconds": config.collect_interval_seconds,
        },
    )

    signal.signal(signal.SIGINT, _request_shutdown)
    signal.signal(signal.SIGTERM, _request_shutdown)

    registry = build_registry(config)
    runtime = RedisJobRuntime.from_url(config.redis_url, config.namespace)
    poller = StatsPoller(registry, runtime)
    start_http_server(config.metrics_port, registry=registry.collector_registry)

    run_collector(
        poller,
        config.collect_interval_seconds,
        lambda: _shutdown_requested,
    )
    _logger.info("Shutting down")


if __name__ == "__main__":
    main()
