"""Per-context cache of system color-scheme feeds.

Every controller bound to the same owning context shares one pair of feeds
(``prefers-dark`` / ``prefers-light``). Each controller subscribes its own
listener on those shared feeds and only ever removes its own.

Entries are created on first access and never evicted for the lifetime of the
context. A context that is not attached to a valid view gets a permanent empty
entry. Lookups never raise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import RLock
from typing import Any, Optional
from weakref import WeakKeyDictionary

from .config import PREFERS_DARK_QUERY, PREFERS_LIGHT_QUERY
from .host import MediaFeed, valid_context_of
from .services.service_locator import services

_logger = logging.getLogger(__name__)

__all__ = ["PreferenceFeeds", "PreferenceCache", "get_preference_cache", "EMPTY_FEEDS"]


@dataclass(frozen=True)
class PreferenceFeeds:
    prefers_dark: Optional[MediaFeed] = None
    prefers_light: Optional[MediaFeed] = None

    @property
    def empty(self) -> bool:
        return self.prefers_dark is None and self.prefers_light is None

    def feeds(self) -> tuple[MediaFeed, ...]:
        return tuple(f for f in (self.prefers_dark, self.prefers_light) if f is not None)


EMPTY_FEEDS = PreferenceFeeds()


class PreferenceCache:
    """Mapping of owning context -> shared `PreferenceFeeds`."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._entries: "WeakKeyDictionary[Any, PreferenceFeeds]" = WeakKeyDictionary()

    def get(self, context: Any) -> PreferenceFeeds:
        if context is None:
            return EMPTY_FEEDS
        try:
            with self._lock:
                cached = self._entries.get(context)
                if cached is None:
                    cached = self._create(context)
                    self._entries[context] = cached
                return cached
        except Exception:  # noqa: BLE001 - unsupported query or unhashable context
            _logger.debug("Preference feeds unavailable for %r", context, exc_info=True)
            return EMPTY_FEEDS

    def for_container(self, container: Any) -> PreferenceFeeds:
        return self.get(getattr(container, "owner_context", None))

    @staticmethod
    def _create(context: Any) -> PreferenceFeeds:
        if valid_context_of(context) is not context:
            return EMPTY_FEEDS
        view = context.view
        return PreferenceFeeds(
            prefers_dark=view.match_media(PREFERS_DARK_QUERY),
            prefers_light=view.match_media(PREFERS_LIGHT_QUERY),
        )

    def __contains__(self, context: object) -> bool:
        try:
            return context in self._entries
        except TypeError:
            return False

    def __len__(self) -> int:
        return len(self._entries)


def get_preference_cache() -> PreferenceCache:
    return services.get_or_create("preference_cache", PreferenceCache)
