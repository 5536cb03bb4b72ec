"""Testing helpers (fake host environment)."""

from .fakes import (  # noqa: F401
    FakeClassList,
    FakeDocument,
    FakeElement,
    FakeHost,
    FakeMediaFeed,
    FakeStorage,
    FakeWindow,
    ManualClock,
)

__all__ = [
    "FakeClassList",
    "FakeDocument",
    "FakeElement",
    "FakeHost",
    "FakeMediaFeed",
    "FakeStorage",
    "FakeWindow",
    "ManualClock",
]
