"""Introspection of the job runtime: queues, global counters and processes."""

from __future__ import annotations

import json
import time
from typing import Any, Protocol, runtime_checkable

import redis
from pydantic import ValidationError

from job_metrics.errors import SnapshotError
from job_metrics.models import ProcessSnapshot, QueueSnapshot, RuntimeStats


@runtime_checkable
class JobRuntime(Protocol):
    """Read-only view of a job runtime. Implementation-agnostic."""

    def stats(self) -> RuntimeStats:
        """Global counters: registered processes, scheduled, retry and dead jobs."""
        ...

    def queues(self) -> list[QueueSnapshot]:
        """Size and latency of every known queue."""
        ...

    def processes(self) -> list[ProcessSnapshot]:
        """One snapshot per live worker process, read in a single pass."""
        ...


class RedisJobRuntime:
    """
    Reads a Redis-backed job runtime using the Sidekiq key layout.

    ``queues`` is a set of queue names and ``queue:<name>`` a list pushed at
    the head, so the oldest job sits at index -1. ``schedule``, ``retry`` and
    ``dead`` are sorted sets. ``processes`` is a set of identities, each a
    hash (``info``, ``busy``, ``quiet``, ``beat``) that expires when the
    process stops heartbeating; an identity whose hash is gone is not live.
    """

    def __init__(self, client: Any, namespace: str = "") -> None:
        self._client = client
        self._namespace = namespace

    @classmethod
    def from_url(cls, redis_url: str, namespace: str = "") -> RedisJobRuntime:
        return cls(redis.from_url(redis_url, decode_responses=True), namespace)

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}" if self._namespace else key

    def _process_identities(self) -> list[str]:
        return sorted(self._client.smembers(self._key("processes")))

    def _process_fields(self, identities: list[str]) -> list[list[str | None]]:
        pipe = self._client.pipeline(transaction=False)
        for identity in identities:
            pipe.hmget(self._key(identity), "info", "busy", "quiet")
        return pipe.execute()

    def stats(self) -> RuntimeStats:
        pipe = self._client.pipeline(transaction=False)
        pipe.scard(self._key("processes"))
        pipe.zcard(self._key("schedule"))
        pipe.zcard(self._key("retry"))
        pipe.zcard(self._key("dead"))
        processes_size, scheduled_size, retry_size, dead_size = pipe.execute()
        return RuntimeStats(
            processes_size=processes_size,
            scheduled_size=scheduled_size,
            retry_size=retry_size,
            dead_size=dead_size,
        )

    def queues(self) -> list[QueueSnapshot]:
        names = sorted(self._client.smembers(self._key("queues")))
        pipe = self._client.pipeline(transaction=False)
        for name in names:
            pipe.llen(self._key(f"queue:{name}"))
            pipe.lindex(self._key(f"queue:{name}"), -1)
        results = pipe.execute()
        now = time.time()
        snapshots = []
        for index, name in enumerate(names):
            size, oldest = results[2 * index], results[2 * index + 1]
            snapshots.append(
                QueueSnapshot(name=name, size=size, latency=_payload_latency(name, oldest, now))
            )
        return snapshots

    def processes(self) -> list[ProcessSnapshot]:
        identities = self._process_identities()
        snapshots = []
        for identity, (info, busy, quiet) in zip(identities, self._process_fields(identities)):
            if info is None:
                continue
            snapshots.append(_process_snapshot(identity, info, busy, quiet))
        return snapshots


def _payload_latency(queue: str, payload: str | None, now: float) -> float:
    """Age of the job in ``payload``; an empty queue has latency 0.0."""
    if payload is None:
        return 0.0
    try:
        job = json.loads(payload)
        enqueued_at = float(job["enqueued_at"])
    except (ValueError, TypeError, KeyError) as e:
        raise SnapshotError(f"queue:{queue}", f"unreadable oldest job: {e}") from e
    return max(0.0, now - enqueued_at)


def _process_snapshot(identity: str, info: str, busy: str | None, quiet: str | None) -> ProcessSnapshot:
    try:
        details = json.loads(info)
    except ValueError as e:
        raise SnapshotError(identity, f"info is not JSON: {e}") from e
    if not isinstance(details, dict):
        raise SnapshotError(identity, "info is not a JSON object")
    try:
        return ProcessSnapshot(
            identity=identity,
            concurrency=details.get("concurrency"),
            busy=busy,
            quiet=quiet if quiet is not None else False,
        )
    except ValidationError as e:
        raise SnapshotError(identity, str(e)) from e
