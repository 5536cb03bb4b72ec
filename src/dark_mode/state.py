"""Controller state: modes, option normalization and the state store.

`StateStore` owns the two mutable fields of a controller (``mode`` and
``system_preference``). Mutations go through explicit setters which also
write the persisted literal and swap the visual markers on the container.
"""

from __future__ import annotations

import logging
import math
import re
from enum import Enum
from typing import Any, Optional
from urllib.parse import quote, urljoin, urlsplit

from .config import (
    DEFAULT_SCOPE,
    FALLBACK_LOCATION,
    LONG_PRESS_MAX_MS,
    LONG_PRESS_MIN_MS,
    DarkModeSettings,
)
from .persistence import PersistenceAdapter

_logger = logging.getLogger(__name__)

__all__ = [
    "Mode",
    "ColorScheme",
    "normalize_id",
    "resolve_scope",
    "derive_key",
    "clamp_long_press",
    "StateStore",
]

_TOKEN = re.compile(r"^\S{2,}$")
# Characters a URL pathname keeps unescaped (besides letters, digits and "_.-~").
_PATH_SAFE = "/%:@!$&'()*+,;=[]|^"


class Mode(str, Enum):
    AUTO = "auto"
    ENABLED = "enabled"
    DISABLED = "disabled"

    @classmethod
    def parse(cls, value: Any) -> Optional["Mode"]:
        """Return the mode for a persisted literal, None when unrecognized."""
        try:
            return cls(value)
        except ValueError:
            return None


class ColorScheme(str, Enum):
    DARK = "dark"
    LIGHT = "light"
    UNKNOWN = "unknown"


def normalize_id(value: Any) -> str:
    """Namespace token: two or more non-space characters, else empty."""
    if value is None:
        return ""
    text = str(value)
    return text if _TOKEN.match(text) else ""


def resolve_scope(scope: Any, location: Optional[str]) -> str:
    """Resolve ``scope`` against the owning location and keep only the path.

    Only the path of ``location`` is used, so hosts with non-hierarchical
    schemes (``qt://app/``) resolve the same way as web locations. The result
    is percent-encoded like a URL pathname.
    """
    try:
        base = urljoin(FALLBACK_LOCATION, urlsplit(location or "").path or DEFAULT_SCOPE)
        path = urlsplit(urljoin(base, str(scope) if scope else "./")).path
    except ValueError:
        _logger.debug("Unparseable scope %r against %r", scope, location)
        return DEFAULT_SCOPE
    return quote(path, safe=_PATH_SAFE) or DEFAULT_SCOPE


def derive_key(scope: str, id: str, prefix: Optional[str] = None) -> str:
    prefix = DarkModeSettings.instance.key_prefix if prefix is None else prefix
    return f"{prefix}{scope}#{id}" if id else f"{prefix}{scope}"


def clamp_long_press(value: Any, default: Optional[int] = None) -> int:
    """Round into [1500, 10000]; non-positive or non-numeric input yields the default."""
    fallback = DarkModeSettings.instance.default_long_press_ms if default is None else default
    if isinstance(value, bool) or value is None:
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if math.isnan(number) or number <= 0:
        return fallback
    if math.isinf(number):
        return LONG_PRESS_MAX_MS
    rounded = math.floor(number + 0.5)
    if rounded <= 0:
        return fallback
    return max(LONG_PRESS_MIN_MS, min(LONG_PRESS_MAX_MS, rounded))


class StateStore:
    """Mutable controller state with persistence and visual side effects."""

    def __init__(self, key: str, persistence: PersistenceAdapter, container: Any) -> None:
        self._key = key
        self._persistence = persistence
        self._container = container
        self._mode: Optional[Mode] = None
        self._system_preference = ColorScheme.UNKNOWN
        self._dark: Optional[bool] = None
        self._persisted: Optional[str] = persistence.read(key)

    @property
    def mode(self) -> Optional[Mode]:
        return self._mode

    @property
    def system_preference(self) -> ColorScheme:
        return self._system_preference

    @property
    def persisted(self) -> Optional[str]:
        """Last literal read from or written to the store."""
        return self._persisted

    @property
    def dark(self) -> Optional[bool]:
        """Currently applied visuals, None before first resolution."""
        return self._dark

    def set_system_preference(self, preference: ColorScheme) -> bool:
        """Record an observed system scheme. Returns True if it changed."""
        if preference is self._system_preference:
            return False
        self._system_preference = preference
        return True

    def set_mode(self, mode: Mode, dark: bool) -> bool:
        """Persist ``mode`` and apply ``dark`` visuals. Returns True if anything changed."""
        changed = mode is not self._mode or dark is not self._dark
        self._mode = mode
        if self._persisted != mode.value and self._persistence.write(self._key, mode.value):
            self._persisted = mode.value
        self.apply_visuals(dark)
        return changed

    def apply_visuals(self, dark: bool) -> None:
        settings = DarkModeSettings.instance
        class_list = self._container.class_list
        class_list.add(settings.dark_class if dark else settings.light_class)
        class_list.remove(settings.light_class if dark else settings.dark_class)
        self._dark = dark

    def shows_dark(self) -> bool:
        """Whether the container currently carries the dark marker."""
        return bool(self._container.class_list.contains(DarkModeSettings.instance.dark_class))
