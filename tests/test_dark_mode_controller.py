import asyncio
import gc
import weakref

import pytest

from dark_mode import (
    Action,
    ColorScheme,
    DarkModeController,
    DarkModeOptions,
    InvalidContainerError,
    Mode,
    PointerEvent,
    UnboundHandlerError,
    document_dark_mode,
)
from dark_mode.preferences import PreferenceCache
from dark_mode.services.event_bus import DarkModeEvent, EventBus
from dark_mode.services.service_locator import services
from dark_mode.testing import FakeDocument, FakeHost, FakeStorage, ManualClock

KEY = "dark-mode-state@/app/"


def _markers(element):
    return list(element.class_list)


def _collect(bus, name):
    seen = []
    bus.subscribe(name, lambda evt: seen.append(evt.payload))
    return seen


# Construction -------------------------------------------------------------


def test_fresh_instance_follows_dark_system_preference(document, storage):
    button = document.create_element("toggle")
    controller = DarkModeController(button)
    assert controller.mode is Mode.AUTO
    assert controller.system_preference is ColorScheme.DARK
    assert _markers(button) == ["dark-mode"]
    assert storage.data == {KEY: "auto"}


def test_fresh_instance_light_preference(storage, clock):
    doc = FakeDocument.create(storage=storage, clock=clock, dark=False)
    button = doc.create_element()
    controller = DarkModeController(button)
    assert controller.mode is Mode.AUTO
    assert controller.system_preference is ColorScheme.LIGHT
    assert _markers(button) == ["light-mode"]


def test_no_signal_defaults_to_dark(storage):
    doc = FakeDocument.create(storage=storage, dark=None)
    controller = DarkModeController(doc.create_element())
    assert controller.system_preference is ColorScheme.UNKNOWN
    assert controller.container.class_list.contains("dark-mode")


def test_persisted_disabled_wins_over_system(clock):
    storage = FakeStorage({KEY: "disabled"})
    doc = FakeDocument.create(storage=storage, clock=clock, dark=True)
    button = doc.create_element()
    controller = DarkModeController(button)
    assert controller.mode is Mode.DISABLED
    assert _markers(button) == ["light-mode"]
    assert storage.writes == []


def test_persisted_enabled(clock):
    storage = FakeStorage({KEY: "enabled"})
    doc = FakeDocument.create(storage=storage, clock=clock, dark=False)
    controller = DarkModeController(doc.create_element())
    assert controller.mode is Mode.ENABLED
    assert controller.container.class_list.contains("dark-mode")


def test_malformed_persisted_value_treated_as_auto(clock):
    storage = FakeStorage({KEY: "sometimes"})
    doc = FakeDocument.create(storage=storage, clock=clock, dark=False)
    controller = DarkModeController(doc.create_element())
    assert controller.mode is Mode.AUTO
    assert storage.data[KEY] == "auto"


def test_memory_only_without_store():
    doc = FakeDocument.create(storage=None, dark=False)
    controller = DarkModeController(doc.create_element())
    assert controller.mode is Mode.AUTO
    assert controller.enable() is Mode.ENABLED
    assert controller.container.class_list.contains("dark-mode")


def test_failing_store_degrades_to_memory():
    doc = FakeDocument.create(storage=FakeStorage(fail=True), dark=True)
    controller = DarkModeController(doc.create_element())
    assert controller.mode is Mode.AUTO
    assert controller.disable() is Mode.DISABLED


def test_explicit_store_option_overrides_view_storage(document, storage):
    explicit = FakeStorage()
    DarkModeController(document.create_element(), store=explicit, id="nav")
    assert explicit.data == {"dark-mode-state@/app/#nav": "auto"}
    assert storage.data == {}


def test_identity_accessors(document):
    controller = DarkModeController(
        document.create_element(),
        DarkModeOptions(id="side", scope="../docs/", long_press_timeout_ms=50000),
    )
    assert controller.id == "side"
    assert controller.scope == "/docs/"
    assert controller.persisted_key == "dark-mode-state@/docs/#side"
    assert controller.key == controller.persisted_key
    assert controller.long_press_timeout_ms == 10000


def test_identity_is_read_only(document):
    controller = DarkModeController(document.create_element())
    with pytest.raises(AttributeError):
        controller.mode = Mode.ENABLED  # type: ignore[misc]
    with pytest.raises(AttributeError):
        controller.extra = 1  # type: ignore[attr-defined]


def test_inert_placeholder_outside_live_host():
    controller = DarkModeController(None)
    assert controller.inert
    assert controller.mode is None and controller.container is None
    assert controller.toggle() is None
    assert controller.apply_toggle("auto") is None
    assert controller.apply_toggle(True, True) is None
    controller.detach()
    with pytest.raises(UnboundHandlerError):
        controller.handle_event()


def test_invalid_container_in_live_host_raises():
    services.register("host", FakeHost(), allow_override=True)
    with pytest.raises(InvalidContainerError):
        DarkModeController(FakeDocument(view=None).create_element())


def test_live_host_supplies_default_container(document):
    root = document.root
    services.register("host", FakeHost(root), allow_override=True)
    controller = DarkModeController()
    assert controller.container is root


def test_unknown_option_rejected(document):
    with pytest.raises(TypeError):
        DarkModeController(document.create_element(), colour="blue")


# Toggle -------------------------------------------------------------------


def test_toggle_true_is_idempotent(document, storage):
    button = document.create_element()
    controller = DarkModeController(button)
    controller.toggle(True)
    markers, writes = _markers(button), list(storage.writes)
    assert controller.toggle(True) is Mode.ENABLED
    assert _markers(button) == markers
    assert storage.writes == writes
    assert storage.data[KEY] == "enabled"


def test_toggle_without_argument_inverts_visuals(document):
    button = document.create_element()
    controller = DarkModeController(button)
    assert controller.toggle() is Mode.DISABLED
    assert _markers(button) == ["light-mode"]
    assert controller.toggle() is Mode.ENABLED
    assert _markers(button) == ["dark-mode"]


def test_toggle_accepts_mode_literals(document):
    controller = DarkModeController(document.create_element())
    assert controller.toggle("disabled") is Mode.DISABLED
    assert controller.toggle(Mode.ENABLED) is Mode.ENABLED
    assert controller.toggle("auto") is Mode.AUTO
    with pytest.raises(ValueError):
        controller.toggle("sepia")


def test_toggle_auto_resolves_from_system_preference(storage, clock):
    doc = FakeDocument.create(storage=storage, clock=clock, dark=False)
    button = doc.create_element()
    controller = DarkModeController(button)
    controller.enable()
    assert controller.toggle("auto") is Mode.AUTO
    assert _markers(button) == ["light-mode"]


def test_atoggle_awaitable(document):
    controller = DarkModeController(document.create_element())
    assert asyncio.run(controller.atoggle(False)) is Mode.DISABLED
    assert controller.container.class_list.contains("light-mode")


# System preference ----------------------------------------------------------


def test_auto_follows_system_change_without_write(storage, clock):
    doc = FakeDocument.create(storage=storage, clock=clock, dark=False)
    button = doc.create_element()
    controller = DarkModeController(button)
    writes = list(storage.writes)

    doc.view.set_system_scheme("dark")
    assert _markers(button) == ["dark-mode"]
    assert controller.mode is Mode.AUTO
    assert controller.system_preference is ColorScheme.DARK
    assert storage.writes == writes
    assert storage.data[KEY] == "auto"


def test_pinned_mode_ignores_system_change_but_records_it(document):
    button = document.create_element()
    controller = DarkModeController(button)
    controller.enable()
    document.view.set_system_scheme("light")
    assert controller.mode is Mode.ENABLED
    assert _markers(button) == ["dark-mode"]
    assert controller.system_preference is ColorScheme.LIGHT
    controller.toggle("auto")
    assert _markers(button) == ["light-mode"]


def test_controllers_share_feeds_with_independent_listeners(document):
    a = DarkModeController(document.create_element("a"), id="a1")
    b = DarkModeController(document.create_element("b"), id="b1")
    assert a.preferences.prefers_dark is b.preferences.prefers_dark
    assert len(a.preferences.prefers_dark.listeners) == 2
    a.detach()
    assert b.preferences.prefers_dark.listeners == [b.handle_event]


# Gestures ---------------------------------------------------------------------


def test_tap_inverts_mode(document, clock):
    button = document.create_element("toggle")
    controller = DarkModeController(button)
    controller.bind_toggler()
    button.press()
    clock.advance(500)
    button.release()
    assert controller.mode is Mode.DISABLED
    assert _markers(button) == ["light-mode"]
    assert clock.pending == 0


def test_tap_yields_exactly_one_toggle_action(document, clock, dm_context):
    actions = _collect(dm_context.event_bus, DarkModeEvent.GESTURE_CLASSIFIED)
    button = document.create_element("toggle")
    controller = DarkModeController(button)
    controller.bind_toggler()
    button.press()
    button.release()
    assert [p["action"] for p in actions] == ["capture", "toggle"]


def test_long_press_reverts_to_auto(document, clock, storage):
    button = document.create_element("toggle")
    controller = DarkModeController(button, long_press_timeout_ms=1500)
    controller.bind_toggler()
    controller.disable()
    button.press()
    assert clock.advance(1500) == 1
    assert controller.mode is Mode.AUTO
    assert _markers(button) == ["dark-mode"]
    assert storage.data[KEY] == "auto"

    button.release()
    assert controller.mode is Mode.AUTO
    assert controller.gesture.action is Action.RELEASE


def test_long_press_timer_not_fired_early(document, clock):
    button = document.create_element()
    controller = DarkModeController(button)
    controller.bind_toggler()
    button.press()
    clock.advance(1999)
    assert controller.gesture.action is Action.CAPTURE
    clock.advance(1)
    assert controller.gesture.action is Action.AUTO


def test_release_on_other_target_keeps_mode(document, clock):
    button, other = document.create_element("toggle"), document.create_element("other")
    controller = DarkModeController(button)
    controller.bind_toggler()
    controller.enable()
    button.press()
    other.release()
    assert controller.gesture.action is Action.RELEASE
    assert controller.mode is Mode.ENABLED
    clock.advance(5000)
    assert controller.mode is Mode.ENABLED


def test_release_inside_embedded_document(clock, storage):
    main = FakeDocument.create(storage=storage, clock=clock, dark=True)
    frame = FakeDocument.create(clock=clock)
    button = main.create_element("toggle")
    inner = frame.create_element("inner")
    controller = DarkModeController(button)
    controller.bind_toggler()

    button.press()
    controller.handle_event(PointerEvent("mouseup", inner))
    assert controller.gesture.action is Action.RELEASE
    assert frame in controller.gesture.registry
    assert frame.listeners.count("mouseup") == 1


def test_pointer_only_container_uses_pointer_events(document, clock):
    button = document.create_element("toggle", pointer_only=True)
    controller = DarkModeController(button)
    controller.bind_toggler()
    assert button.listeners.count("pointerdown") == 1
    button.press()
    assert document.listeners.count("pointerup") == 1
    button.release()
    assert controller.mode is Mode.DISABLED


# Detach -------------------------------------------------------------------------


def test_detach_removes_every_listener(clock, storage):
    main = FakeDocument.create(storage=storage, clock=clock, dark=True)
    frame = FakeDocument.create(clock=clock)
    button = main.create_element("toggle")
    controller = DarkModeController(button)
    controller.bind_toggler()
    button.press()
    controller.handle_event(PointerEvent("mouseup", frame.create_element()))
    assert len(controller.gesture.registry) == 2

    button.press()
    controller.detach()
    assert main.listeners.count() == 0
    assert frame.listeners.count() == 0
    assert button.listeners.count() == 0
    assert controller.preferences.prefers_dark.listeners == []
    assert controller.preferences.prefers_light.listeners == []
    assert clock.pending == 0

    removed = len(main.listeners.removed) + len(frame.listeners.removed)
    controller.detach()
    assert len(main.listeners.removed) + len(frame.listeners.removed) == removed
    with pytest.raises(UnboundHandlerError):
        controller.handle_event()


def test_detach_publishes_notification(document, dm_context):
    seen = _collect(dm_context.event_bus, DarkModeEvent.DETACHED)
    controller = DarkModeController(document.create_element())
    controller.detach()
    controller.detach()
    assert seen == [{"key": KEY}]


# Notifications ------------------------------------------------------------------


def test_mode_changes_published(document, dm_context):
    seen = _collect(dm_context.event_bus, DarkModeEvent.MODE_CHANGED)
    controller = DarkModeController(document.create_element())
    controller.disable()
    controller.disable()
    assert seen == [
        {"key": KEY, "mode": "auto", "scheme": "dark"},
        {"key": KEY, "mode": "disabled", "scheme": "light"},
    ]


def test_injected_collaborators(document):
    bus, cache = EventBus(), PreferenceCache()
    seen = _collect(bus, DarkModeEvent.MODE_CHANGED)
    controller = DarkModeController(document.create_element(), preference_cache=cache, event_bus=bus)
    assert document in cache
    assert seen and controller.mode is Mode.AUTO


# Document default -----------------------------------------------------------------


def test_document_dark_mode_created_once(document):
    first = document_dark_mode(document)
    assert first.container is document.root
    assert document_dark_mode(document) is first
    assert document_dark_mode(FakeDocument(view=None)) is None


def test_document_dark_mode_does_not_outlive_document(clock, storage):
    doc = FakeDocument.create(storage=storage, clock=clock)
    controller = document_dark_mode(doc)
    assert document_dark_mode(doc) is controller
    ref = weakref.ref(doc)
    controller.detach()
    del doc, controller
    gc.collect()
    assert ref() is None
