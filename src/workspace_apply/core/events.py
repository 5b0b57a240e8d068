"""Injectable event sinks for file-operation progress.

The engine publishes through a plain callable ``(event_name, payload)``
supplied by the caller (a socket fan-out, a message bus producer, a log).
Whatever the sink does, it can never fail a file operation: ``safe_emit``
catches and logs every exception it raises.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog

Emitter = Callable[[str, dict[str, Any]], None]

_logger = structlog.get_logger(__name__)


def safe_emit(emitter: Emitter | None, event: str, payload: dict[str, Any]) -> None:
    """Deliver an event, discarding any exception raised by the sink."""
    if emitter is None:
        return
    try:
        emitter(event, payload)
    except Exception as exc:  # noqa: BLE001 - sinks must never fail a batch
        _logger.warning("emitter.error", event_name=event, error=str(exc))


class NullEmitter:
    """Sink that ignores every event."""

    def __call__(self, event: str, payload: dict[str, Any]) -> None:
        return None


class RecordingEmitter:
    """Sink that keeps every event in memory, in delivery order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, event: str, payload: dict[str, Any]) -> None:
        self.events.append((event, payload))

    def named(self, event: str) -> list[dict[str, Any]]:
        """Return payloads of all events with the given name."""
        return [payload for name, payload in self.events if name == event]

    def clear(self) -> None:
        self.events.clear()


class StructlogEmitter:
    """Sink that writes each event to a structlog logger.

    File contents are left out of the log line; only their length is kept.
    """

    def __init__(self, logger: Any = None) -> None:
        self._logger = logger or structlog.get_logger("workspace_apply.events")

    def __call__(self, event: str, payload: dict[str, Any]) -> None:
        fields = {k: v for k, v in payload.items() if k not in ("content", "results")}
        if isinstance(payload.get("content"), str):
            fields["content_length"] = len(payload["content"])
        if isinstance(payload.get("results"), list):
            fields["result_count"] = len(payload["results"])
        self._logger.info(event, **fields)


def fan_out(*emitters: Emitter | None) -> Emitter:
    """Compose several sinks; each one is guarded independently."""
    targets = [e for e in emitters if e is not None]

    def _emit(event: str, payload: dict[str, Any]) -> None:
        for target in targets:
            safe_emit(target, event, payload)

    return _emit
