"""Label sets shared by the client and server middlewares."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DisplayNamed(Protocol):
    """A worker that names itself, e.g. an adapter delegating to the job it wraps."""

    def display_name(self) -> str: ...


def worker_name(worker: Any, job: Mapping[str, Any]) -> str:
    """
    Return the ``worker`` label for a job.

    Order: the worker's own ``display_name()``; the original class recorded
    under ``job["wrapped"]`` by a generic adapter; a plain string identifier
    as-is; otherwise the bare class name (``__name__``, no module).
    """
    if isinstance(worker, DisplayNamed) and not isinstance(worker, type):
        return str(worker.display_name())
    wrapped = job.get("wrapped")
    if wrapped:
        return wrapped if isinstance(wrapped, str) else _class_name(wrapped)
    if isinstance(worker, str):
        return worker
    return _class_name(worker)


def _class_name(obj: Any) -> str:
    cls = obj if isinstance(obj, type) else type(obj)
    return cls.__name__


def labelize(worker: Any, job: Mapping[str, Any], queue: str) -> dict[str, str]:
    return {"queue": queue, "worker": worker_name(worker, job)}
