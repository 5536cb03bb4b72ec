import pytest

from dark_mode.config import DarkModeSettings
from dark_mode.persistence import PersistenceAdapter
from dark_mode.state import (
    ColorScheme,
    Mode,
    StateStore,
    clamp_long_press,
    derive_key,
    normalize_id,
    resolve_scope,
)
from dark_mode.testing import FakeDocument, FakeStorage


def test_key_is_pure_function_of_scope_and_id():
    assert derive_key("/", "") == "dark-mode-state@/"
    assert derive_key("/docs/", "main") == "dark-mode-state@/docs/#main"
    assert derive_key("/docs/", "main") == derive_key("/docs/", "main")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("ab", "ab"),
        ("toolbar-toggle", "toolbar-toggle"),
        ("a", ""),
        ("has space", ""),
        ("", ""),
        (None, ""),
        (42, "42"),
    ],
)
def test_normalize_id(value, expected):
    assert normalize_id(value) == expected


def test_scope_resolves_against_location():
    assert resolve_scope(None, "http://example.test/app/index.html") == "/app/"
    assert resolve_scope("../", "http://example.test/app/sub/page.html") == "/app/"
    assert resolve_scope("/abs/path/", "http://example.test/app/") == "/abs/path/"


def test_scope_defaults_to_root_without_location():
    assert resolve_scope(None, None) == "/"
    assert resolve_scope("docs/", None) == "/docs/"


def test_scope_resolves_against_non_web_location():
    assert resolve_scope(None, "qt://roster/") == "/"
    assert resolve_scope("../settings/", "qt://roster/") == "/settings/"
    assert resolve_scope("panel/", "qt://roster/main/") == "/main/panel/"


def test_scope_is_percent_encoded_like_a_pathname():
    assert resolve_scope("my docs/", "http://example.test/") == "/my%20docs/"
    assert resolve_scope("/a%20b/", None) == "/a%20b/"
    assert resolve_scope("/café/", None) == "/caf%C3%A9/"
    assert derive_key(resolve_scope("my docs", None), "") == "dark-mode-state@/my%20docs"


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, 2000),
        ("abc", 2000),
        (float("nan"), 2000),
        (0, 2000),
        (-300, 2000),
        (True, 2000),
        (100, 1500),
        (1499.6, 1500),
        (3000, 3000),
        ("4000", 4000),
        (2500.5, 2501),
        (20000, 10000),
    ],
)
def test_long_press_clamped(value, expected):
    assert clamp_long_press(value) == expected


def test_long_press_default_follows_settings():
    DarkModeSettings.instance = DarkModeSettings(default_long_press_ms=3000)
    assert clamp_long_press("nope") == 3000


def test_mode_parse():
    assert Mode.parse("enabled") is Mode.ENABLED
    assert Mode.parse("auto") is Mode.AUTO
    assert Mode.parse("ENABLED") is None
    assert Mode.parse(None) is None


def test_state_store_sets_markers_and_persists_once():
    doc = FakeDocument.create()
    el = doc.create_element("toggle")
    storage = FakeStorage()
    store = StateStore("k", PersistenceAdapter(storage), el)
    assert store.mode is None and store.system_preference is ColorScheme.UNKNOWN

    assert store.set_mode(Mode.ENABLED, True) is True
    assert el.class_list.contains("dark-mode") and not el.class_list.contains("light-mode")
    assert store.set_mode(Mode.ENABLED, True) is False
    assert storage.writes == [("k", "enabled")]

    store.set_mode(Mode.DISABLED, False)
    assert el.class_list.contains("light-mode") and not el.class_list.contains("dark-mode")
    assert store.persisted == "disabled"


def test_state_store_reads_existing_literal():
    doc = FakeDocument.create()
    el = doc.create_element()
    store = StateStore("k", PersistenceAdapter(FakeStorage({"k": "disabled"})), el)
    assert store.persisted == "disabled"


def test_system_preference_change_reported():
    doc = FakeDocument.create()
    store = StateStore("k", PersistenceAdapter(None), doc.create_element())
    assert store.set_system_preference(ColorScheme.DARK) is True
    assert store.set_system_preference(ColorScheme.DARK) is False
