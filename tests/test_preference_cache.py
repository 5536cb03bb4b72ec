from dark_mode.preferences import EMPTY_FEEDS, PreferenceCache, get_preference_cache
from dark_mode.services.service_locator import services
from dark_mode.testing import FakeDocument


def test_feeds_created_once_and_shared():
    cache = PreferenceCache()
    doc = FakeDocument.create(dark=True)
    first = cache.get(doc)
    second = cache.get(doc)
    assert first is second
    assert first.prefers_dark.matches is True
    assert first.prefers_light.matches is False
    assert doc.view.match_media_calls == 2
    assert doc in cache and len(cache) == 1


def test_separate_contexts_get_separate_entries():
    cache = PreferenceCache()
    a, b = FakeDocument.create(), FakeDocument.create()
    assert cache.get(a).prefers_dark is not cache.get(b).prefers_dark


def test_detached_context_gets_permanent_empty_entry():
    cache = PreferenceCache()
    orphan = FakeDocument(view=None)
    assert cache.get(orphan) is EMPTY_FEEDS
    assert orphan in cache
    assert cache.get(orphan).empty


def test_unsupported_media_query_degrades_to_empty():
    cache = PreferenceCache()
    doc = FakeDocument.create(supports_media=False)
    feeds = cache.get(doc)
    assert feeds.empty
    assert feeds.feeds() == ()


def test_unhashable_context_never_raises():
    cache = PreferenceCache()
    assert cache.get({"not": "a context"}) is EMPTY_FEEDS
    assert cache.get(None) is EMPTY_FEEDS


def test_for_container_uses_owner_context():
    cache = PreferenceCache()
    doc = FakeDocument.create(dark=False)
    feeds = cache.for_container(doc.create_element())
    assert feeds is cache.get(doc)
    assert feeds.prefers_light.matches is True


def test_process_wide_cache_registered_lazily():
    services.unregister("preference_cache")
    cache = get_preference_cache()
    assert services.get("preference_cache") is cache
    assert get_preference_cache() is cache
