# Shared fixtures. Provides a fallback 'qtbot' fixture when pytest-qt is not
# installed; Qt tests still get a QApplication running on the offscreen platform.

import os
import sys
import contextlib
import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from dark_mode.bootstrap import configure, reset
from dark_mode.testing import FakeDocument, FakeStorage, ManualClock

try:  # If pytest-qt present, do nothing (its fixture will be used)
    import pytestqt  # type: ignore  # noqa: F401
except Exception:  # pragma: no cover
    try:
        from PyQt6.QtWidgets import QApplication
    except Exception:  # pragma: no cover
        QApplication = None  # type: ignore

    @pytest.fixture
    def qtbot():  # type: ignore
        if QApplication is None:
            pytest.skip("PyQt6 not available")
        app = QApplication.instance() or QApplication(sys.argv[:1])  # type: ignore
        widgets = []

        class Bot:
            def addWidget(self, w):  # mimic pytest-qt API subset
                widgets.append(w)

            @contextlib.contextmanager
            def waitSignal(self, *args, **kwargs):  # no-op stub
                yield

        yield Bot()
        for w in widgets:
            w.close()
        app.processEvents()


@pytest.fixture(autouse=True)
def dm_context():
    """Fresh shared services for every test."""
    ctx = configure()
    yield ctx
    reset()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def document(storage, clock):
    return FakeDocument.create(storage=storage, clock=clock, dark=True)
