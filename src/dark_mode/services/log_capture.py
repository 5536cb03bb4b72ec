"""In-process capture of dark mode log records.

Attaches a ring-buffer handler to the ``dark_mode`` logger hierarchy so that
diagnostics panels (or tests) can inspect recent controller activity such as
gesture classifications and storage degradations. Each captured record is
also announced on the event bus as ``DarkModeEvent.LOG_RECORD_ADDED``.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from threading import RLock
from typing import Deque, List, Optional

from .event_bus import DarkModeEvent, EventBus
from .service_locator import services

__all__ = ["LogEntry", "LogCapture", "get_log_capture"]

ROOT_LOGGER = "dark_mode"


@dataclass(frozen=True)
class LogEntry:
    level: str
    name: str
    message: str
    created: float


class _RingBufferHandler(logging.Handler):
    def __init__(self, capture: "LogCapture") -> None:
        super().__init__(level=logging.DEBUG)
        self._capture = capture

    def emit(self, record: logging.LogRecord) -> None:  # noqa: D401
        self._capture._ingest(record)


class LogCapture:
    def __init__(self, capacity: int = 200, logger_name: str = ROOT_LOGGER) -> None:
        self._lock = RLock()
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)
        self._handler = _RingBufferHandler(self)
        self._logger = logging.getLogger(logger_name)
        self._previous_level: Optional[int] = None

    # Lifecycle --------------------------------------------------------
    @property
    def attached(self) -> bool:
        return self._handler in self._logger.handlers

    def attach(self) -> None:
        if self.attached:
            return
        self._logger.addHandler(self._handler)
        if self._logger.getEffectiveLevel() > logging.DEBUG:
            self._previous_level = self._logger.level
            self._logger.setLevel(logging.DEBUG)

    def detach(self) -> None:
        if not self.attached:
            return
        self._logger.removeHandler(self._handler)
        if self._previous_level is not None:
            self._logger.setLevel(self._previous_level)
            self._previous_level = None

    def _ingest(self, record: logging.LogRecord) -> None:
        entry = LogEntry(
            level=record.levelname,
            name=record.name,
            message=record.getMessage(),
            created=record.created,
        )
        with self._lock:
            self._entries.append(entry)
        bus = services.try_get("event_bus")
        if isinstance(bus, EventBus):
            bus.publish(DarkModeEvent.LOG_RECORD_ADDED, asdict(entry))

    # Query ------------------------------------------------------------
    def recent(self, limit: Optional[int] = None) -> List[LogEntry]:
        with self._lock:
            data = list(self._entries)
        return data[-limit:] if limit is not None else data

    def filter(
        self, *, level: str | None = None, name_contains: str | None = None
    ) -> List[LogEntry]:
        return [
            e
            for e in self.recent()
            if (not level or e.level == level) and (not name_contains or name_contains in e.name)
        ]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def export_jsonl(self, path: str | Path, *, level: str | None = None) -> int:
        """Write (filtered) entries as JSON Lines. Returns the number of lines."""
        entries = self.filter(level=level)
        with open(path, "w", encoding="utf-8") as fh:
            for e in entries:
                fh.write(json.dumps(asdict(e), sort_keys=True) + "\n")
        return len(entries)


def get_log_capture() -> LogCapture:
    return services.get_or_create("log_capture", LogCapture)
