"""A minimal synchronous event bus for job instrumentation.

Handlers are attached under an id to one or more event names and are called
with ``(name, metadata)`` each time a matching event executes.

Events emitted by the retry driver, once per attempt:

- ``foundation.job.start``: ``job``, ``attempt``
- ``foundation.job.stop``: ``job``, ``attempt``, ``state``, ``duration``, ``retries``
- ``foundation.job.exception``: ``job``, ``attempt``, ``state``, ``duration``,
  ``retries``, ``error_type``, ``error_message``

Example:
    >>> def handler(name, metadata):
    ...     print(name, metadata["job"].name)
    >>> telemetry.attach("printer", ["foundation.job.stop"], handler)
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, TypeAlias

logger = logging.getLogger(__name__)

Handler: TypeAlias = Callable[[str, dict[str, Any]], None]

_lock = threading.Lock()
_handlers: dict[str, tuple[frozenset[str], Handler]] = {}


def attach(handler_id: str, events: Iterable[str], handler: Handler) -> None:
    """Attach handler to events, replacing any handler with the same id."""
    events = frozenset(events)

    if not events:
        raise ValueError("events must not be empty")

    if not callable(handler):
        raise TypeError("handler must be callable")

    with _lock:
        _handlers[handler_id] = (events, handler)


def detach(handler_id: str) -> bool:
    with _lock:
        return _handlers.pop(handler_id, None) is not None


def execute(name: str, metadata: dict[str, Any]) -> None:
    with _lock:
        matching = [
            (handler_id, handler)
            for handler_id, (events, handler) in _handlers.items()
            if name in events
        ]

    for handler_id, handler in matching:
        try:
            handler(name, metadata)
        except Exception:
            logger.exception("Telemetry handler %s failed on %s", handler_id, name)
