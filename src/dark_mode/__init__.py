"""Tri-state dark mode controller with tap / long-press toggling.

Public surface:
 - `DarkModeController` and the per-document `document_dark_mode`
 - `Mode` / `ColorScheme`
 - `configure` to register shared services
 - `MemoryStore` / `JsonFileStore` persistence backends

The PyQt6 adapter lives in `dark_mode.qt` and is imported on demand.
"""

from .bootstrap import DarkModeContext, configure, reset  # noqa: F401
from .config import DarkModeSettings  # noqa: F401
from .controller import (  # noqa: F401
    DarkModeController,
    DarkModeOptions,
    InvalidContainerError,
    UnboundHandlerError,
    document_dark_mode,
)
from .gesture import Action, Phase  # noqa: F401
from .host import MediaChangeEvent, PointerEvent  # noqa: F401
from .persistence import JsonFileStore, MemoryStore  # noqa: F401
from .preferences import PreferenceCache, get_preference_cache  # noqa: F401
from .state import ColorScheme, Mode  # noqa: F401

__all__ = [
    "DarkModeController",
    "DarkModeOptions",
    "DarkModeSettings",
    "DarkModeContext",
    "InvalidContainerError",
    "UnboundHandlerError",
    "document_dark_mode",
    "configure",
    "reset",
    "Action",
    "Phase",
    "Mode",
    "ColorScheme",
    "PointerEvent",
    "MediaChangeEvent",
    "MemoryStore",
    "JsonFileStore",
    "PreferenceCache",
    "get_preference_cache",
]
