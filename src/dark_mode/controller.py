"""Tri-state dark mode controller.

A `DarkModeController` binds to one container element and keeps it marked
with exactly one of the dark / light marker classes. The persisted mode is
one of ``auto`` / ``enabled`` / ``disabled``; while ``auto`` the applied
visuals follow the system color-scheme feeds.

A quick tap on the toggler (down then up on the same target) flips the
visuals and pins the mode; holding it for ``long_press_timeout_ms`` reverts
to ``auto``. Up events are observed on every owning context a gesture touched,
so releasing the pointer outside the container (or inside an embedded frame)
is still seen.

Collaborators (storage, feeds, timers) come from the container's owning view;
the shared preference cache and event bus come from the service locator
unless injected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .config import DarkModeSettings
from .gesture import Action, GestureState, classify
from .host import Host, KeyValueStore, Listener, valid_context_of
from .persistence import PersistenceAdapter, resolve_store
from .preferences import EMPTY_FEEDS, PreferenceCache, PreferenceFeeds, get_preference_cache
from .registry import ContextRegistry
from .services.event_bus import DarkModeEvent, EventBus
from .services.service_locator import services
from .state import (
    ColorScheme,
    Mode,
    StateStore,
    clamp_long_press,
    derive_key,
    normalize_id,
    resolve_scope,
)

_logger = logging.getLogger(__name__)
_DOCUMENT_CONTROLLER_ATTR = "_dark_mode_controller"

__all__ = [
    "DarkModeController",
    "DarkModeOptions",
    "InvalidContainerError",
    "UnboundHandlerError",
    "document_dark_mode",
]


class InvalidContainerError(TypeError):
    """Raised when a controller is constructed in a live host without a usable container."""


class UnboundHandlerError(ReferenceError):
    """Raised when the event handler of an inert or detached controller is invoked."""


@dataclass(frozen=True)
class DarkModeOptions:
    id: Any = None
    scope: Any = None
    store: Optional[KeyValueStore] = None
    long_press_timeout_ms: Any = None


@dataclass(frozen=True)
class _Identity:
    id: str
    scope: str
    key: str
    container: Any
    long_press_timeout_ms: int


def _live_host() -> Optional[Host]:
    return services.try_get("host")


class DarkModeController:
    __slots__ = (
        "_identity",
        "_state",
        "_feeds",
        "_gesture",
        "_handler",
        "_bus",
        "_togglers",
        "_subscribed",
        "_detached",
    )

    def __init__(
        self,
        container: Any = None,
        options: Optional[DarkModeOptions] = None,
        *,
        preference_cache: Optional[PreferenceCache] = None,
        event_bus: Optional[EventBus] = None,
        **kwargs: Any,
    ) -> None:
        opts = options or DarkModeOptions()
        if kwargs:
            opts = DarkModeOptions(**{**opts.__dict__, **kwargs})

        host = _live_host()
        if container is None and host is not None:
            container = host.default_container()
        context = valid_context_of(container)

        self._handler: Listener = self.handle_event
        self._togglers: List[Tuple[Any, str]] = []
        self._subscribed: Tuple[Any, ...] = ()
        self._detached = False

        if container is None or context is None:
            if host is not None:
                raise InvalidContainerError("DarkModeController constructed with an invalid container.")
            # Placeholder used outside a live host (mocking)
            self._identity: Optional[_Identity] = None
            self._state: Optional[StateStore] = None
            self._feeds: PreferenceFeeds = EMPTY_FEEDS
            self._gesture: Optional[GestureState] = None
            self._bus: Optional[EventBus] = None
            return

        id = normalize_id(opts.id)
        scope = resolve_scope(opts.scope, getattr(context, "location", None))
        key = derive_key(scope, id)
        self._identity = _Identity(
            id=id,
            scope=scope,
            key=key,
            container=container,
            long_press_timeout_ms=clamp_long_press(opts.long_press_timeout_ms),
        )
        self._bus = event_bus if event_bus is not None else services.try_get("event_bus")
        cache = preference_cache if preference_cache is not None else get_preference_cache()
        self._feeds = cache.for_container(container)
        store = opts.store if opts.store is not None else resolve_store(container)
        self._state = StateStore(key, PersistenceAdapter(store), container)

        up_type = "mouseup" if container.supports_event("mouseup") else "pointerup"
        self._gesture = GestureState(registry=ContextRegistry(up_type, self._handler))

        self._initialize()
        self._subscribed = self._feeds.feeds()
        for feed in self._subscribed:
            feed.add_listener(self._handler)

    def _initialize(self) -> None:
        state = self._state
        dark_feed, light_feed = self._feeds.prefers_dark, self._feeds.prefers_light
        if dark_feed is not None and dark_feed.matches is True:
            state.set_system_preference(ColorScheme.DARK)
        elif light_feed is not None and light_feed.matches is True:
            state.set_system_preference(ColorScheme.LIGHT)

        persisted = Mode.parse(state.persisted)
        if persisted is Mode.ENABLED:
            self.apply_toggle(True)
        elif persisted is Mode.DISABLED:
            self.apply_toggle(False)
        else:
            prefers_dark = (
                self._feeds.empty
                or (dark_feed is not None and dark_feed.matches is True)
                or not (light_feed is not None and light_feed.matches is True)
            )
            self.apply_toggle(prefers_dark, True, initial=True)
        _logger.debug("%s resolved to %s", self.key, state.mode.value)

    # Accessors --------------------------------------------------------
    @property
    def inert(self) -> bool:
        return self._identity is None

    @property
    def detached(self) -> bool:
        return self._detached

    @property
    def mode(self) -> Optional[Mode]:
        return self._state.mode if self._state is not None else None

    @property
    def system_preference(self) -> Optional[ColorScheme]:
        return self._state.system_preference if self._state is not None else None

    @property
    def id(self) -> Optional[str]:
        return self._identity.id if self._identity else None

    @property
    def scope(self) -> Optional[str]:
        return self._identity.scope if self._identity else None

    @property
    def persisted_key(self) -> Optional[str]:
        return self._identity.key if self._identity else None

    key = persisted_key

    @property
    def container(self) -> Any:
        return self._identity.container if self._identity else None

    @property
    def long_press_timeout_ms(self) -> Optional[int]:
        return self._identity.long_press_timeout_ms if self._identity else None

    @property
    def preferences(self) -> PreferenceFeeds:
        return self._feeds

    @property
    def gesture(self) -> Optional[GestureState]:
        return self._gesture

    # Public operations ------------------------------------------------
    def toggle(self, state: Any = None) -> Optional[Mode]:
        """Apply ``state`` and return the resulting mode.

        ``state`` may be True/False (or ``"enabled"``/``"disabled"``) to pin the
        visuals, ``"auto"`` to follow the system preference, or None to invert
        the visuals currently shown.
        """
        if self.inert:
            return None
        return self.apply_toggle(_normalize_request(state))

    async def atoggle(self, state: Any = None) -> Optional[Mode]:
        return self.toggle(state)

    def enable(self) -> Optional[Mode]:
        return self.toggle(True)

    def disable(self) -> Optional[Mode]:
        return self.toggle(False)

    def bind_toggler(self, element: Any = None) -> Any:
        """Observe down events on ``element`` (defaults to the container)."""
        if self.inert or self._detached:
            raise UnboundHandlerError("Cannot bind a toggler to an inert or detached controller")
        element = element if element is not None else self.container
        down_type = "mousedown" if element.supports_event("mousedown") else "pointerdown"
        if (element, down_type) not in self._togglers:
            element.add_listener(down_type, self._handler)
            self._togglers.append((element, down_type))
        return element

    def detach(self) -> None:
        """Remove every listener this controller installed. Repeated calls do nothing."""
        if self.inert or self._detached:
            return
        self._detached = True
        gesture = self._gesture
        if gesture.timer is not None:
            self.cancel_long_press(gesture.timer)
            gesture.timer = None
        gesture.reset()
        removed = gesture.registry.unregister_all()
        for feed in self._subscribed:
            feed.remove_listener(self._handler)
        self._subscribed = ()
        for element, down_type in self._togglers:
            element.remove_listener(down_type, self._handler)
        self._togglers = []
        _logger.debug("%s detached (%d contexts)", self.key, removed)
        self._publish(DarkModeEvent.DETACHED, {"key": self.key})

    # Event handling ---------------------------------------------------
    def handle_event(self, event: Any = None) -> Action:
        """Single handler for toggler, release-phase and feed events."""
        if self.inert or self._detached:
            raise UnboundHandlerError("DarkModeController.handle_event invoked on an unbound controller")
        gesture = self._gesture
        gesture.registry.ensure_registered(self.container.owner_context)
        action = classify(gesture, event, self)
        _logger.debug("%s: %s -> %s", self.key, getattr(event, "type", "timeout"), action.value)
        self._publish(
            DarkModeEvent.GESTURE_CLASSIFIED,
            {"key": self.key, "action": action.value, "phase": gesture.phase.value},
        )
        return action

    on_pointer_down = handle_event
    on_pointer_up = handle_event

    # GestureSink ------------------------------------------------------
    def start_long_press(self) -> Any:
        view = self.container.owner_context.view
        return view.set_timeout(self._fire_long_press, self.long_press_timeout_ms)

    def cancel_long_press(self, handle: Any) -> None:
        self.container.owner_context.view.clear_timeout(handle)

    def _fire_long_press(self) -> None:
        if not self._detached:
            self.handle_event(None)

    def apply_toggle(
        self, requested: Any = None, auto: bool = False, *, initial: bool = False
    ) -> Optional[Mode]:
        if self.inert:
            return None
        state = self._state
        if auto and isinstance(requested, bool) and not initial:
            scheme = ColorScheme.DARK if requested else ColorScheme.LIGHT
            if state.set_system_preference(scheme):
                self._publish(
                    DarkModeEvent.SYSTEM_PREFERENCE_CHANGED,
                    {"key": self.key, "preference": scheme.value},
                )
            if state.mode is not Mode.AUTO:
                return state.mode

        if requested == "auto":
            dark = state.system_preference is not ColorScheme.LIGHT
        elif requested is not None:
            dark = bool(requested)
        else:
            dark = not state.shows_dark()

        if requested == "auto" or auto:
            mode = Mode.AUTO
        else:
            mode = Mode.ENABLED if dark else Mode.DISABLED
        if state.set_mode(mode, dark):
            self._publish(
                DarkModeEvent.MODE_CHANGED,
                {"key": self.key, "mode": mode.value, "scheme": "dark" if dark else "light"},
            )
        return mode

    def _publish(self, name: DarkModeEvent, payload: Dict[str, Any]) -> None:
        if self._bus is not None and DarkModeSettings.instance.publish_events:
            self._bus.publish(name, payload)

    def __repr__(self) -> str:
        if self.inert:
            return "<DarkModeController inert>"
        return f"<DarkModeController {self.key} mode={self.mode.value}>"


def _normalize_request(state: Any) -> Any:
    if state is None or isinstance(state, bool):
        return state
    mode = Mode.parse(state)
    if mode is None:
        raise ValueError(f"Unsupported dark mode state: {state!r}")
    if mode is Mode.AUTO:
        return "auto"
    return mode is Mode.ENABLED


def document_dark_mode(context: Any, **options: Any) -> Optional[DarkModeController]:
    """Default controller bound to ``context.root``, created once per document.

    The controller is cached on the context itself so it lives exactly as long
    as the document does.
    """
    root = getattr(context, "root", None)
    if valid_context_of(context) is not context or root is None:
        return None
    controller = getattr(context, _DOCUMENT_CONTROLLER_ATTR, None)
    if controller is None or controller.detached or controller.container is not root:
        controller = DarkModeController(root, **options)
        try:
            setattr(context, _DOCUMENT_CONTROLLER_ATTR, controller)
        except (AttributeError, TypeError):
            _logger.debug("Cannot cache the default controller on %r", context)
    return controller
