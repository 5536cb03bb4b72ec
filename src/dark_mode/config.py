"""Configuration constants and runtime settings for dark mode controllers.

Constants cover the persisted key layout, the two visual marker classes and
the long-press bounds. `DarkModeSettings` carries the values that tests or an
application bootstrap may want to replace at runtime.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import ClassVar, Final

KEY_PREFIX: Final = "dark-mode-state@"
DARK_CLASS: Final = "dark-mode"
LIGHT_CLASS: Final = "light-mode"

PREFERS_DARK_QUERY: Final = "(prefers-color-scheme: dark)"
PREFERS_LIGHT_QUERY: Final = "(prefers-color-scheme: light)"

LONG_PRESS_MIN_MS: Final = 1500
LONG_PRESS_MAX_MS: Final = 10000
LONG_PRESS_DEFAULT_MS: Final = 2000

# Base used to resolve scopes when the owning context reports no location
FALLBACK_LOCATION: Final = "http://0.0.0.0/"
DEFAULT_SCOPE: Final = "/"

LONG_PRESS_ENV: Final = "DARK_MODE_LONG_PRESS_MS"


def _env_long_press() -> int:
    raw = os.environ.get(LONG_PRESS_ENV)
    if not raw:
        return LONG_PRESS_DEFAULT_MS
    try:
        value = int(raw)
    except ValueError:
        return LONG_PRESS_DEFAULT_MS
    if value <= 0:
        return LONG_PRESS_DEFAULT_MS
    return max(LONG_PRESS_MIN_MS, min(LONG_PRESS_MAX_MS, value))


@dataclass
class DarkModeSettings:
    """Runtime settings shared by all controllers.

    Attributes:
        dark_class: Marker applied to the container while dark visuals are active.
        light_class: Marker applied to the container while light visuals are active.
        key_prefix: Prefix of the persisted storage key.
        default_long_press_ms: Fallback used when a controller is given an
            invalid long-press timeout. Seeded from ``DARK_MODE_LONG_PRESS_MS``.
        publish_events: When True controllers publish notifications on the
            shared event bus.
    """

    # singleton used by controllers; bootstrap and tests may replace it
    instance: ClassVar["DarkModeSettings"]

    dark_class: str = DARK_CLASS
    light_class: str = LIGHT_CLASS
    key_prefix: str = KEY_PREFIX
    default_long_press_ms: int = LONG_PRESS_DEFAULT_MS
    publish_events: bool = True

    @classmethod
    def from_env(cls) -> "DarkModeSettings":
        return cls(default_long_press_ms=_env_long_press())


DarkModeSettings.instance = DarkModeSettings.from_env()
