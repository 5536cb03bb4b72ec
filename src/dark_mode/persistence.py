"""Persistence of the dark mode literal.

`PersistenceAdapter` wraps a synchronous key-value store. Any failure of the
underlying store is treated as "store unavailable": reads return None and a
failing write switches the adapter to memory-only operation.

Two concrete stores are provided for hosts without their own storage:
`MemoryStore` (process lifetime) and `JsonFileStore` (one JSON object on disk,
written atomically, corrupt files fall back to an empty store).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .host import KeyValueStore

_logger = logging.getLogger(__name__)

__all__ = [
    "PersistenceAdapter",
    "MemoryStore",
    "JsonFileStore",
    "resolve_store",
]

DEFAULT_FILENAME = "dark_mode_state.json"


def resolve_store(container: Any) -> Optional[KeyValueStore]:
    """Find the storage handle of the container's owning view, if any."""
    try:
        context = container.owner_context
        view = context.view if context is not None else None
        return view.storage if view is not None else None
    except Exception:  # noqa: BLE001 - host storage access may raise
        _logger.debug("Storage lookup failed for %r", container, exc_info=True)
        return None


class PersistenceAdapter:
    def __init__(self, store: Optional[KeyValueStore]) -> None:
        self._store = store

    @property
    def available(self) -> bool:
        return self._store is not None

    @property
    def store(self) -> Optional[KeyValueStore]:
        return self._store

    def read(self, key: str) -> Optional[str]:
        if self._store is None:
            return None
        try:
            value = self._store.get(key)
        except Exception:  # noqa: BLE001
            _logger.debug("Storage read failed for %s; continuing memory-only", key, exc_info=True)
            self._store = None
            return None
        return value if isinstance(value, str) else None

    def write(self, key: str, value: str) -> bool:
        """Store ``value``; returns False when the store is (or became) unavailable."""
        if self._store is None:
            return False
        try:
            self._store.set(key, value)
        except Exception:  # noqa: BLE001
            _logger.debug("Storage write failed for %s; continuing memory-only", key, exc_info=True)
            self._store = None
            return False
        return True


class MemoryStore:
    """Dictionary-backed store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class JsonFileStore:
    """Store persisted as a single JSON object.

    The file is re-read lazily once and rewritten (tmp file + replace) on
    every `set`. Non-string values in the file are ignored.
    """

    def __init__(self, base_dir: str | Path | None = None, filename: str = DEFAULT_FILENAME) -> None:
        base = Path(base_dir) if base_dir else Path.cwd()
        self.path = base / filename
        self._data: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._data is not None:
            return self._data
        data: Dict[str, str] = {}
        if self.path.exists():
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                _logger.debug("Ignoring unreadable store file %s", self.path)
                raw = {}
            if isinstance(raw, dict):
                data = {k: v for k, v in raw.items() if isinstance(k, str) and isinstance(v, str)}
        self._data = data
        return data

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)
