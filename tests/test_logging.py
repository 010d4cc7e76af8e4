"""Tests for JSON-lines logging."""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Generator

import pytest

from job_metrics.logging import StreamSink, configure_logging, get_logger


class ListSink:
    def __init__(self) -> None:
        self.lines: list[str] = []

    def write(self, line: str) -> None:
        self.lines.append(line)


@pytest.fixture
def sink() -> Generator[ListSink, None, None]:
    sink = ListSink()
    configure_logging(logging.DEBUG, sink)
    yield sink
    configure_logging(logging.INFO)


def test_records_are_json_with_extra_fields(sink: ListSink) -> None:
    get_logger("job_metrics.test").info("Tick complete", extra={"concurrency": 15})
    record = json.loads(sink.lines[-1])
    assert record["level"] == "INFO"
    assert record["logger"] == "job_metrics.test"
    assert record["message"] == "Tick complete"
    assert record["concurrency"] == 15
    assert "lineno" not in record


def test_exception_is_included(sink: ListSink) -> None:
    try:
        raise ValueError("bad snapshot")
    except ValueError:
        get_logger("job_metrics.test").exception("Tick failed")
    record = json.loads(sink.lines[-1])
    assert "ValueError: bad snapshot" in record["exc_info"]


def test_reconfiguring_does_not_duplicate_output(sink: ListSink) -> None:
    second = ListSink()
    configure_logging("debug", second)
    get_logger("job_metrics.test").warning("once")
    assert [json.loads(line)["message"] for line in second.lines].count("once") == 1
    assert all(json.loads(line)["message"] != "once" for line in sink.lines)


def test_stream_sink_writes_lines() -> None:
    stream = io.StringIO()
    StreamSink(stream).write('{"a": 1}')
    assert stream.getvalue() == '{"a": 1}\n'
