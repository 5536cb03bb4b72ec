"""PyQt6 host adapter.

Maps the host protocols onto Qt:

 - `QtElement`: a QWidget; marker classes live in the ``darkModeClasses``
   dynamic property (space separated) so QSS can select on them, e.g.
   ``QWidget[darkModeClasses~="dark-mode"]``. Down listeners are an event
   filter on the widget itself.
 - `QtContext`: a top-level window. Release listeners are an application
   event filter restricted to widgets of that window.
 - `QtView`: timers (single-shot QTimer), color-scheme feeds and storage.
 - `QtColorSchemeFeed`: ``QStyleHints.colorScheme`` / ``colorSchemeChanged``
   (Qt 6.5+). Older Qt raises from `QtView.match_media`, which the
   preference cache degrades to "no feeds".
 - `QSettingsStore`: QSettings backed key-value store.

`install_dark_mode(widget)` registers the live host and returns a controller
bound to ``widget`` with the widget acting as its toggler.
"""

from __future__ import annotations

import logging
from itertools import count
from typing import Any, Callable, Dict, List, Optional

from PyQt6.QtCore import QCoreApplication, QEvent, QObject, QSettings, Qt, QTimer
from PyQt6.QtGui import QGuiApplication
from PyQt6.QtWidgets import QApplication, QWidget

from .config import PREFERS_DARK_QUERY, PREFERS_LIGHT_QUERY
from .controller import DarkModeController
from .host import MediaChangeEvent, PointerEvent
from .services.service_locator import services

_logger = logging.getLogger(__name__)

__all__ = [
    "QtElement",
    "QtContext",
    "QtView",
    "QtColorSchemeFeed",
    "QSettingsStore",
    "QtHost",
    "install_dark_mode",
    "CLASS_PROPERTY",
]

CLASS_PROPERTY = "darkModeClasses"

_EVENT_NAMES = {
    QEvent.Type.MouseButtonPress: "mousedown",
    QEvent.Type.MouseButtonRelease: "mouseup",
}
_EVENT_TYPES = {name: qtype for qtype, name in _EVENT_NAMES.items()}


def _repolish(widget: QWidget) -> None:
    style = widget.style()
    style.unpolish(widget)
    style.polish(widget)
    widget.update()


class _QtClassList:
    def __init__(self, widget: QWidget) -> None:
        self._widget = widget

    def _names(self) -> List[str]:
        value = self._widget.property(CLASS_PROPERTY)
        return str(value).split() if value else []

    def _store(self, names: List[str]) -> None:
        self._widget.setProperty(CLASS_PROPERTY, " ".join(names))
        _repolish(self._widget)

    def add(self, name: str) -> None:
        names = self._names()
        if name not in names:
            self._store(names + [name])

    def remove(self, name: str) -> None:
        names = self._names()
        if name in names:
            self._store([n for n in names if n != name])

    def contains(self, name: str) -> bool:
        return name in self._names()


class _ListenerFilter(QObject):
    """Event filter fanning Qt mouse events out to protocol listeners."""

    def __init__(self, translate: Callable[[QObject, QEvent], Optional[PointerEvent]]) -> None:
        super().__init__()
        self._translate = translate
        self.listeners: Dict[str, List[Callable[[Any], None]]] = {}

    def add(self, event_type: str, listener: Callable[[Any], None]) -> None:
        bucket = self.listeners.setdefault(event_type, [])
        if listener not in bucket:
            bucket.append(listener)

    def remove(self, event_type: str, listener: Callable[[Any], None]) -> None:
        bucket = self.listeners.get(event_type, [])
        if listener in bucket:
            bucket.remove(listener)
        if not bucket:
            self.listeners.pop(event_type, None)

    def eventFilter(self, obj, event):  # type: ignore[override]
        name = _EVENT_NAMES.get(event.type())
        if name is None or name not in self.listeners:
            return False
        translated = self._translate(obj, event)
        if translated is not None:
            for listener in list(self.listeners.get(name, ())):
                listener(translated)
        return False


class QtElement:
    """Protocol view of a QWidget. Use `QtElement.wrap` to get the shared wrapper."""

    def __init__(self, widget: QWidget) -> None:
        self.widget = widget
        self.class_list = _QtClassList(widget)
        self._filter: Optional[_ListenerFilter] = None

    @classmethod
    def wrap(cls, widget: QWidget) -> "QtElement":
        element = getattr(widget, "_dark_mode_element", None)
        if element is None:
            element = cls(widget)
            widget._dark_mode_element = element  # type: ignore[attr-defined]
        return element

    @property
    def owner_context(self) -> "QtContext":
        return QtContext.for_window(self.widget.window())

    def supports_event(self, event_type: str) -> bool:
        return event_type.startswith("mouse")

    def add_listener(self, event_type: str, listener, capture: bool = False) -> None:
        if event_type not in _EVENT_TYPES:
            raise ValueError(f"Unsupported event type for Qt widgets: {event_type}")
        if self._filter is None:
            self._filter = _ListenerFilter(lambda obj, event: PointerEvent(_EVENT_NAMES[event.type()], self))
            self.widget.installEventFilter(self._filter)
        self._filter.add(event_type, listener)

    def remove_listener(self, event_type: str, listener, capture: bool = False) -> None:
        if self._filter is None:
            return
        self._filter.remove(event_type, listener)
        if not self._filter.listeners:
            self.widget.removeEventFilter(self._filter)
            self._filter = None

    def __repr__(self) -> str:
        return f"<QtElement {self.widget.objectName() or type(self.widget).__name__}>"


def _release_target(window: QWidget, obj: QObject, event: QEvent) -> Optional[QtElement]:
    widget: Optional[QWidget] = None
    position = getattr(event, "globalPosition", None)
    if position is not None:
        widget = QApplication.widgetAt(position().toPoint())
    if widget is None or widget.window() is not window:
        widget = obj if isinstance(obj, QWidget) else None
    probe = widget
    while probe is not None:
        element = getattr(probe, "_dark_mode_element", None)
        if element is not None:
            return element
        probe = probe.parentWidget()
    return QtElement.wrap(widget) if widget is not None else None


class QtContext:
    """Owning context of every widget inside one top-level window."""

    def __init__(self, window: QWidget) -> None:
        self.window = window
        self.view = QtView(self)
        self._filter = _ListenerFilter(self._translate)
        self._installed = False

    @classmethod
    def for_window(cls, window: QWidget) -> "QtContext":
        context = getattr(window, "_dark_mode_context", None)
        if context is None:
            context = cls(window)
            window._dark_mode_context = context  # type: ignore[attr-defined]
        return context

    @property
    def location(self) -> str:
        return f"qt://{QCoreApplication.applicationName() or 'app'}/"

    @property
    def root(self) -> QtElement:
        return QtElement.wrap(self.window)

    def _translate(self, obj: QObject, event: QEvent) -> Optional[PointerEvent]:
        if not isinstance(obj, QWidget) or obj.window() is not self.window:
            return None
        target = _release_target(self.window, obj, event)
        return PointerEvent(_EVENT_NAMES[event.type()], target)

    def add_listener(self, event_type: str, listener, capture: bool = False) -> None:
        if event_type not in _EVENT_TYPES:
            raise ValueError(f"Unsupported event type for Qt windows: {event_type}")
        self._filter.add(event_type, listener)
        app = QCoreApplication.instance()
        if not self._installed and app is not None:
            app.installEventFilter(self._filter)
            self._installed = True

    def remove_listener(self, event_type: str, listener, capture: bool = False) -> None:
        self._filter.remove(event_type, listener)
        app = QCoreApplication.instance()
        if self._installed and not self._filter.listeners and app is not None:
            app.removeEventFilter(self._filter)
            self._installed = False


class QtColorSchemeFeed:
    def __init__(self, media: str, scheme: Qt.ColorScheme) -> None:
        self.media = media
        self._scheme = scheme
        self._listeners: List[Callable[[Any], None]] = []
        hints = QGuiApplication.styleHints()
        self.matches = hints.colorScheme() == scheme
        hints.colorSchemeChanged.connect(self._on_changed)

    def _on_changed(self, scheme: Qt.ColorScheme) -> None:
        matches = scheme == self._scheme
        if matches == self.matches:
            return
        self.matches = matches
        event = MediaChangeEvent(self.media, matches)
        for listener in list(self._listeners):
            listener(event)

    def add_listener(self, listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)


class QSettingsStore:
    def __init__(self, settings: Optional[QSettings] = None, group: str = "darkMode") -> None:
        self._settings = settings if settings is not None else QSettings()
        self._group = group

    def _key(self, key: str) -> str:
        return f"{self._group}/{key}" if self._group else key

    def get(self, key: str) -> Optional[str]:
        value = self._settings.value(self._key(key))
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self._settings.setValue(self._key(key), value)
        self._settings.sync()


class QtView:
    _SCHEMES = {
        PREFERS_DARK_QUERY: "Dark",
        PREFERS_LIGHT_QUERY: "Light",
    }

    def __init__(self, document: QtContext) -> None:
        self.document = document
        self._storage: Optional[QSettingsStore] = None
        self._timers: Dict[int, QTimer] = {}
        self._ids = count(1)

    @property
    def storage(self) -> QSettingsStore:
        if self._storage is None:
            self._storage = QSettingsStore()
        return self._storage

    def match_media(self, query: str) -> QtColorSchemeFeed:
        hints = QGuiApplication.styleHints()
        if hints is None or not hasattr(hints, "colorScheme") or not hasattr(Qt, "ColorScheme"):
            raise NotImplementedError("Qt color scheme hints unavailable (requires Qt 6.5)")
        name = self._SCHEMES.get(query)
        if name is None:
            raise ValueError(f"Unsupported media query: {query}")
        return QtColorSchemeFeed(query, getattr(Qt.ColorScheme, name))

    def set_timeout(self, callback: Callable[[], None], delay_ms: int) -> int:
        handle = next(self._ids)
        timer = QTimer()
        timer.setSingleShot(True)

        def fire() -> None:
            self._timers.pop(handle, None)
            callback()

        timer.timeout.connect(fire)
        self._timers[handle] = timer
        timer.start(int(delay_ms))
        return handle

    def clear_timeout(self, handle: int) -> None:
        timer = self._timers.pop(handle, None)
        if timer is not None:
            timer.stop()
            timer.deleteLater()

    @property
    def pending_timers(self) -> int:
        return len(self._timers)


class QtHost:
    """Marks the process as a live Qt host."""

    def default_container(self) -> Optional[QtElement]:
        app = QApplication.instance()
        window = app.activeWindow() if app is not None else None
        return QtElement.wrap(window) if window is not None else None


def install_dark_mode(widget: QWidget, *, register_host: bool = True, **options: Any) -> DarkModeController:
    """Bind a controller to ``widget`` and make the widget its toggler."""
    if register_host:
        services.register("host", QtHost(), allow_override=True)
    controller = DarkModeController(QtElement.wrap(widget), **options)
    controller.bind_toggler()
    _logger.debug("Dark mode installed on %r", widget)
    return controller
