"""Exception types raised by job_metrics."""

from __future__ import annotations


class JobMetricsError(Exception):
    """Base class for job_metrics errors."""


class SnapshotError(JobMetricsError):
    """A polled process or job payload has missing or unparseable fields."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class UnknownMetricError(JobMetricsError, KeyError):
    """A sink write referenced a metric the registry does not hold."""

    def __str__(self) -> str:
        return f"unknown metric: {self.args[0]!r}"


class ConfigurationError(JobMetricsError):
    """Components were wired together in an unsupported way."""
