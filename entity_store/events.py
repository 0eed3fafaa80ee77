from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from .common import PrintLogger, utc_now_iso


@dataclass(frozen=True)
class Event:
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    ts: str = field(default_factory=utc_now_iso)


class Subscriber(Protocol):
    def on_event(self, event: Event) -> None:
        ...


class Emitter:
    """Fan events out to subscribers in registration order."""

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(subscriber)

    def emit(self, event: Event) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            subscriber.on_event(event)


class CollectingSubscriber:
    """Keeps every event it sees; handy for run introspection and tests."""

    def __init__(self) -> None:
        self.events: List[Event] = []

    def on_event(self, event: Event) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> List[Event]:
        return [event for event in self.events if event.type == event_type]


def emit_log(
    emitter: Optional[Emitter],
    *,
    level: str,
    msg: str,
    logger: Optional[PrintLogger] = None,
    **fields: Any,
) -> None:
    if logger is not None:
        logger.log(level, msg, **fields)
    if emitter is not None:
        payload = {"level": level.upper(), "msg": msg}
        payload.update(fields)
        emitter.emit(Event(type="log", payload=payload))


def emit_state(emitter: Optional[Emitter], state: str, **fields: Any) -> None:
    if emitter is None:
        return
    payload = {"state": state}
    payload.update(fields)
    emitter.emit(Event(type="state", payload=payload))


__all__ = ["Event", "Emitter", "CollectingSubscriber", "emit_log", "emit_state"]
