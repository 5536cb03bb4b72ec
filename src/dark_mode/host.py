"""Host collaborator protocols.

The controller never touches a concrete toolkit. Everything it needs from the
host environment (elements, owning documents, windows, color-scheme feeds,
timers and storage) is described structurally here so the PyQt6 adapter, the
in-memory fakes and any other host can be swapped freely.

Terminology
-----------
- Element: a visual node. The controller's container is one.
- Context: the document-like scope owning an element. Release-phase listeners
  are installed on contexts.
- View: the window-like object behind a context. It provides feeds, timers and
  the persistence store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, runtime_checkable

__all__ = [
    "ClassList",
    "Element",
    "Context",
    "View",
    "MediaFeed",
    "KeyValueStore",
    "Host",
    "PointerEvent",
    "MediaChangeEvent",
    "Listener",
    "valid_context_of",
]

Listener = Callable[[Any], None]


@runtime_checkable
class ClassList(Protocol):  # pragma: no cover - structural
    def add(self, name: str) -> None: ...

    def remove(self, name: str) -> None: ...

    def contains(self, name: str) -> bool: ...


@runtime_checkable
class Element(Protocol):  # pragma: no cover - structural
    owner_context: Optional["Context"]
    class_list: ClassList

    def supports_event(self, event_type: str) -> bool: ...

    def add_listener(self, event_type: str, listener: Listener, capture: bool = False) -> None: ...

    def remove_listener(
        self, event_type: str, listener: Listener, capture: bool = False
    ) -> None: ...


@runtime_checkable
class Context(Protocol):  # pragma: no cover - structural
    view: Optional["View"]
    location: Optional[str]
    root: Optional[Element]

    def add_listener(self, event_type: str, listener: Listener, capture: bool = False) -> None: ...

    def remove_listener(
        self, event_type: str, listener: Listener, capture: bool = False
    ) -> None: ...


@runtime_checkable
class MediaFeed(Protocol):  # pragma: no cover - structural
    media: str
    matches: bool

    def add_listener(self, listener: Listener) -> None: ...

    def remove_listener(self, listener: Listener) -> None: ...


@runtime_checkable
class KeyValueStore(Protocol):  # pragma: no cover - structural
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


@runtime_checkable
class View(Protocol):  # pragma: no cover - structural
    document: Optional[Context]
    storage: Optional[KeyValueStore]

    def match_media(self, query: str) -> MediaFeed: ...

    def set_timeout(self, callback: Callable[[], None], delay_ms: int) -> Any: ...

    def clear_timeout(self, handle: Any) -> None: ...


@runtime_checkable
class Host(Protocol):  # pragma: no cover - structural
    def default_container(self) -> Optional[Element]: ...


@dataclass(frozen=True)
class PointerEvent:
    """Pointer or mouse activity (``mousedown``, ``pointerup`` ...)."""

    type: str
    target: Any = None


@dataclass(frozen=True)
class MediaChangeEvent:
    """Change notification from a color-scheme feed."""

    media: str
    matches: bool
    type: str = "change"


def valid_context_of(node: Any) -> Optional[Context]:
    """Return the owning context of ``node`` if it is attached to a live view.

    ``node`` may be an element or a context. A context counts as valid only
    when its view points back at it.
    """
    if node is None:
        return None
    owner = getattr(node, "owner_context", None)
    context = owner if owner is not None else node
    view = getattr(context, "view", None)
    if view is None or getattr(view, "document", None) is not context:
        return None
    return context
