"""Synchronous notification bus for dark mode controllers.

Controllers publish what happened to them (mode applied, system preference
observed, gesture classified, detached) so that other parts of an application
can react without holding a reference to every controller.

Properties:
 - Synchronous dispatch in subscription order
 - A failing handler never breaks the publish cycle (failures land in `errors`)
 - One-shot subscriptions and explicit unsubscribe handles
 - Optional tracing ring buffer of recent notifications (off by default)
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from threading import RLock
from time import perf_counter
from typing import Any, Deque, Dict, List, Protocol, Tuple

__all__ = [
    "DarkModeEvent",
    "Event",
    "EventBus",
    "EventHandler",
    "Subscription",
    "TraceEntry",
]


class DarkModeEvent(str, Enum):
    MODE_CHANGED = "dark_mode_changed"
    SYSTEM_PREFERENCE_CHANGED = "system_preference_changed"
    GESTURE_CLASSIFIED = "gesture_classified"
    DETACHED = "dark_mode_detached"
    LOG_RECORD_ADDED = "log_record_added"


@dataclass
class Event:
    name: str
    payload: Any
    timestamp: float


class EventHandler(Protocol):  # noqa: D401
    def __call__(self, event: Event) -> None: ...  # pragma: no cover - structural


@dataclass
class Subscription:
    event: str
    handler: EventHandler
    once: bool
    active: bool = True

    def cancel(self) -> None:
        self.active = False


@dataclass(frozen=True)
class TraceEntry:
    name: str
    timestamp: float
    summary: str


def _key(name: str | DarkModeEvent) -> str:
    return name.value if isinstance(name, DarkModeEvent) else name


def _summarize(payload: Any, limit: int = 40) -> str:
    if payload is None:
        return "-"
    text = str(payload)
    return text if len(text) <= limit else text[: limit - 3] + "..."


class EventBus:
    """Publish/subscribe dispatcher.

    Handlers run outside the lock (subscriber list is snapshotted first), so a
    handler may subscribe or unsubscribe while being dispatched.
    """

    DEFAULT_TRACE_CAPACITY = 50

    def __init__(self) -> None:
        self._lock = RLock()
        self._subs: Dict[str, List[Subscription]] = {}
        self._errors: List[Tuple[Event, BaseException]] = []
        self._tracing = False
        self._traces: Deque[TraceEntry] = deque(maxlen=self.DEFAULT_TRACE_CAPACITY)

    # Subscriptions ----------------------------------------------------
    def subscribe(
        self, name: str | DarkModeEvent, handler: EventHandler, *, once: bool = False
    ) -> Subscription:
        sub = Subscription(event=_key(name), handler=handler, once=once)
        with self._lock:
            self._subs.setdefault(sub.event, []).append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            bucket = self._subs.get(sub.event, [])
            remaining = [s for s in bucket if s is not sub]
            if remaining:
                self._subs[sub.event] = remaining
            else:
                self._subs.pop(sub.event, None)
        sub.active = False

    def clear(self) -> None:
        with self._lock:
            self._subs.clear()
            self._errors.clear()

    # Publishing -------------------------------------------------------
    def publish(self, name: str | DarkModeEvent, payload: Any = None) -> Event:
        evt = Event(name=_key(name), payload=payload, timestamp=perf_counter())
        with self._lock:
            subs = list(self._subs.get(evt.name, ()))
            if self._tracing:
                self._traces.append(TraceEntry(evt.name, evt.timestamp, _summarize(payload)))
        spent: List[Subscription] = []
        for sub in subs:
            if not sub.active:
                continue
            try:
                sub.handler(evt)
            except Exception as exc:  # noqa: BLE001 - isolate handler failures
                self._errors.append((evt, exc))
            else:
                if sub.once:
                    spent.append(sub)
        for sub in spent:
            self.unsubscribe(sub)
        return evt

    # Introspection ----------------------------------------------------
    def subscriber_count(self, name: str | DarkModeEvent) -> int:
        with self._lock:
            return len(self._subs.get(_key(name), ()))

    @property
    def errors(self) -> List[Tuple[Event, BaseException]]:
        with self._lock:
            return list(self._errors)

    # Tracing ----------------------------------------------------------
    def enable_tracing(self, enabled: bool = True, *, capacity: int | None = None) -> None:
        """Toggle tracing; a new ``capacity`` keeps the most recent entries."""
        with self._lock:
            self._tracing = enabled
            if capacity is not None and capacity != self._traces.maxlen:
                self._traces = deque(self._traces, maxlen=capacity)

    @property
    def tracing_enabled(self) -> bool:
        with self._lock:
            return self._tracing

    def recent_traces(self) -> List[TraceEntry]:
        with self._lock:
            return list(self._traces)

    def clear_traces(self) -> None:
        with self._lock:
            self._traces.clear()
