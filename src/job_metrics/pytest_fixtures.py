"""Shared pytest fixtures: Redis container and client, fresh metrics registries."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest
import redis
from testcontainers.redis import RedisContainer

from job_metrics.registry import MetricsRegistry


def _redis_url_from_container(redis_container: RedisContainer) -> str:
    host = redis_container.get_container_host_ip()
    port = redis_container.get_exposed_port(6379)
    return f"redis://{host}:{port}"


@pytest.fixture(scope="session")
def redis_container() -> Generator[RedisContainer, None, None]:
    """Start a Redis container for the test session. Skips if Docker is unavailable."""
    try:
        container = RedisContainer("redis:7-alpine")
        with container:
            yield container
    except Exception as e:  # noqa: BLE001
        pytest.skip(f"Docker not available: {e}")


@pytest.fixture
def redis_url(redis_container: RedisContainer) -> str:
    return _redis_url_from_container(redis_container)


@pytest.fixture
def redis_client(redis_url: str) -> Generator[Any, None, None]:
    """Sync Redis client (decode_responses=True). Flushes DB after each test."""
    client = redis.from_url(redis_url, decode_responses=True)
    yield client
    client.flushdb()
    client.close()


@pytest.fixture
def registry() -> MetricsRegistry:
    """Server-mode registry backed by its own CollectorRegistry."""
    return MetricsRegistry()


@pytest.fixture
def client_registry() -> MetricsRegistry:
    """Client-only registry (enqueue counter only)."""
    return MetricsRegistry(server=False)
