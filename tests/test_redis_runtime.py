"""Integration tests for RedisJobRuntime and a full collection tick (Redis)."""

from __future__ import annotations

import json
import time
import uuid
from typing import Any

import pytest

from job_metrics.errors import SnapshotError
from job_metrics.poller import StatsPoller
from job_metrics.registry import MetricsRegistry
from job_metrics.runtime import JobRuntime, RedisJobRuntime


def _push_job(client: Any, queue: str, enqueued_at: float, prefix: str = "") -> None:
    ns = f"{prefix}:" if prefix else ""
    client.sadd(f"{ns}queues", queue)
    payload = {"class": "ReportJob", "queue": queue, "jid": uuid.uuid4().hex, "enqueued_at": enqueued_at}
    client.lpush(f"{ns}queue:{queue}", json.dumps(payload))


def _register_process(
    client: Any,
    identity: str,
    concurrency: int,
    busy: int,
    quiet: bool = False,
    info: dict[str, Any] | None = None,
) -> None:
    client.sadd("processes", identity)
    client.hset(
        identity,
        mapping={
            "info": json.dumps(info if info is not None else {"hostname": "h", "concurrency": concurrency}),
            "busy": busy,
            "quiet": "true" if quiet else "false",
            "beat": time.time(),
        },
    )


@pytest.fixture
def runtime(redis_client: Any) -> RedisJobRuntime:
    return RedisJobRuntime(redis_client)


def test_implements_protocol(runtime: RedisJobRuntime) -> None:
    assert isinstance(runtime, JobRuntime)


def test_empty_runtime(runtime: RedisJobRuntime) -> None:
    stats = runtime.stats()
    assert stats.processes_size == 0
    assert runtime.queues() == []
    assert runtime.processes() == []


def test_queue_size_and_latency_of_oldest_job(redis_client: Any, runtime: RedisJobRuntime) -> None:
    now = time.time()
    _push_job(redis_client, "default", now - 30)
    _push_job(redis_client, "default", now - 5)

    (queue,) = runtime.queues()
    assert queue.name == "default"
    assert queue.size == 2
    assert 30 <= queue.latency < 40


def test_empty_queue_has_zero_latency(redis_client: Any, runtime: RedisJobRuntime) -> None:
    redis_client.sadd("queues", "mailers")
    (queue,) = runtime.queues()
    assert queue.size == 0
    assert queue.latency == 0.0


def test_unreadable_oldest_job_fails(redis_client: Any, runtime: RedisJobRuntime) -> None:
    redis_client.sadd("queues", "default")
    redis_client.lpush("queue:default", "not json")
    with pytest.raises(SnapshotError):
        runtime.queues()


def test_global_counts(redis_client: Any, runtime: RedisJobRuntime) -> None:
    redis_client.zadd("schedule", {"a": 1, "b": 2})
    redis_client.zadd("retry", {"c": 1})
    redis_client.zadd("dead", {"d": 1, "e": 2, "f": 3})
    _register_process(redis_client, "host-1:1", concurrency=10, busy=2)
    _register_process(redis_client, "host-2:1", concurrency=5, busy=0)
    redis_client.sadd("processes", "host-3:1")  # heartbeat expired

    stats = runtime.stats()
    assert stats.scheduled_size == 2
    assert stats.retry_size == 1
    assert stats.dead_size == 3
    assert stats.processes_size == 3
    assert len(runtime.processes()) == 2


def test_processes_skip_expired_and_read_quiet(redis_client: Any, runtime: RedisJobRuntime) -> None:
    _register_process(redis_client, "host-1:1", concurrency=10, busy=3)
    _register_process(redis_client, "host-2:1", concurrency=5, busy=5, quiet=True)
    redis_client.sadd("processes", "host-3:1")

    processes = {p.identity: p for p in runtime.processes()}
    assert set(processes) == {"host-1:1", "host-2:1"}
    assert processes["host-1:1"].concurrency == 10
    assert processes["host-1:1"].quiet is False
    assert processes["host-2:1"].quiet is True


def test_process_missing_concurrency_fails(redis_client: Any, runtime: RedisJobRuntime) -> None:
    _register_process(redis_client, "host-1:1", concurrency=0, busy=1, info={"hostname": "h"})
    with pytest.raises(SnapshotError) as excinfo:
        runtime.processes()
    assert excinfo.value.source == "host-1:1"


def test_namespace_prefixes_keys(redis_client: Any) -> None:
    _push_job(redis_client, "default", time.time(), prefix="myapp")
    assert RedisJobRuntime(redis_client, namespace="myapp").queues()[0].size == 1
    assert RedisJobRuntime(redis_client).queues() == []


def test_from_url(redis_url: str) -> None:
    runtime = RedisJobRuntime.from_url(redis_url)
    assert runtime.stats().processes_size == 0


def test_full_tick(redis_client: Any, runtime: RedisJobRuntime) -> None:
    _push_job(redis_client, "default", time.time() - 10)
    _register_process(redis_client, "host-1:1", concurrency=10, busy=3)
    _register_process(redis_client, "host-2:1", concurrency=5, busy=5, quiet=True)
    registry = MetricsRegistry()

    StatsPoller(registry, runtime).collect()

    assert registry.value("jobs_waiting_count", {"queue": "default"}) == 1
    assert registry.value("queue_latency", {"queue": "default"}) >= 10
    assert registry.value("active_processes") == 2
    assert registry.value("active_workers_count") == 2
    assert registry.value("concurrency") == 15
    assert registry.value("busy_workers") == 8
    assert registry.value("available_workers") == 7
    assert registry.value("saturation") == pytest.approx(1 - 7 / 15)


def test_broken_process_fails_the_tick(redis_client: Any, runtime: RedisJobRuntime) -> None:
    _register_process(redis_client, "host-1:1", concurrency=4, busy=1, info={"hostname": "h"})
    with pytest.raises(SnapshotError):
        StatsPoller(MetricsRegistry(), runtime).collect()
