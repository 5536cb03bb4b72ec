"""Process-wide registry of shared dark mode collaborators.

Controllers bound to the same process share a few long-lived objects: the
preference-feed cache, the event bus, the runtime settings and (in a live GUI)
the host. They are looked up here by semantic string key so tests can swap
any of them without patching module globals.

Usage:
    from dark_mode.services.service_locator import services
    services.register("event_bus", EventBus())
    cache = services.get_or_create("preference_cache", PreferenceCache)

Entries are never disposed automatically; `clear()` exists for test resets.
"""

from __future__ import annotations

from contextlib import contextmanager
from threading import RLock
from typing import Any, Callable, Dict, Generator, List, Type, TypeVar

T = TypeVar("T")

__all__ = [
    "ServiceLocator",
    "services",
    "ServiceAlreadyRegisteredError",
    "ServiceNotFoundError",
]

_MISSING = object()


class ServiceAlreadyRegisteredError(RuntimeError):
    """Raised when a key is registered twice without allow_override."""


class ServiceNotFoundError(KeyError):
    """Raised when a requested key has no registered service."""


class ServiceLocator:
    """String-keyed service registry guarded by a re-entrant lock."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._entries: Dict[str, Any] = {}

    def register(self, key: str, value: Any, *, allow_override: bool = False) -> None:
        with self._lock:
            if key in self._entries and not allow_override:
                raise ServiceAlreadyRegisteredError(f"Service '{key}' already registered")
            self._entries[key] = value

    def get(self, key: str) -> Any:
        with self._lock:
            value = self._entries.get(key, _MISSING)
        if value is _MISSING:
            raise ServiceNotFoundError(key)
        return value

    def get_typed(self, key: str, expected_type: Type[T]) -> T:
        value = self.get(key)
        if not isinstance(value, expected_type):
            raise TypeError(
                f"Service '{key}' expected type {expected_type!r} but got {type(value)!r}"
            )
        return value

    def try_get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._entries.get(key, default)

    def get_or_create(self, key: str, factory: Callable[[], T]) -> T:
        """Return the service under ``key``, registering ``factory()`` on first access."""
        with self._lock:
            value = self._entries.get(key, _MISSING)
            if value is _MISSING:
                value = factory()
                self._entries[key] = value
            return value

    @contextmanager
    def override_context(self, **overrides: Any) -> Generator[None, None, None]:
        """Temporarily replace services; previous values are restored on exit.

        Example:
            with services.override_context(event_bus=FakeBus()):
                ...
        """
        with self._lock:
            previous = {key: self._entries.get(key, _MISSING) for key in overrides}
            self._entries.update(overrides)
        try:
            yield
        finally:
            with self._lock:
                for key, prior in previous.items():
                    if prior is _MISSING:
                        self._entries.pop(key, None)
                    else:
                        self._entries[key] = prior

    def unregister(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def list_keys(self) -> List[str]:
        with self._lock:
            return list(self._entries.keys())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


# Global instance shared by every controller in the process
services = ServiceLocator()
