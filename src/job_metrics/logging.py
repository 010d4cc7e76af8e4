"""JSON-lines logging on top of the standard library ``logging`` module.

Modules obtain a plain :class:`logging.Logger` through :func:`get_logger`
and attach structured fields with ``extra=``. Each record is rendered as one
JSON object and handed to a :class:`LogSink` (stdout unless configured
otherwise), so the collector's output can be shipped by any line-based log
agent.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Protocol, TextIO

from typing_extensions import override

# Present on every LogRecord; never repeated as structured fields.
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class LogSink(Protocol):
    """Destination for rendered log lines."""

    def write(self, line: str) -> None:  # pragma: no cover
        ...


class StreamSink:
    """Write each line to a text stream (stdout by default) and flush."""

    _stream: TextIO

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout

    def write(self, line: str) -> None:
        self._stream.write(line + "\n")
        self._stream.flush()


class JsonFormatter(logging.Formatter):
    """Render a record as a single JSON object."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": record.created,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or value is None:
                continue
            payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class SinkHandler(logging.Handler):
    """Handler forwarding formatted records to a :class:`LogSink`."""

    def __init__(self, sink: LogSink) -> None:
        super().__init__()
        self.sink = sink

    @override
    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.sink.write(self.format(record))
        except Exception:  # noqa: BLE001
            self.handleError(record)


_handler: SinkHandler | None = None


def configure_logging(
    level: int | str = logging.INFO,
    sink: LogSink | None = None,
) -> None:
    """Route root logging to ``sink`` as JSON lines.

    Calling it again replaces the handler installed by the previous call
    instead of stacking a second one.
    """
    global _handler
    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = SinkHandler(sink if sink is not None else StreamSink())
    _handler.setFormatter(JsonFormatter())
    root.addHandler(_handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)


def get_logger(name: str) -> logging.Logger:
    """Return the standard logger ``name``, configuring stdout output on first use."""
    if _handler is None:
        configure_logging()
    return logging.getLogger(name)
