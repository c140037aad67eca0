import os
import sys
from pathlib import Path

import pytest

pytest.importorskip("yaml")
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
QtWidgets = pytest.importorskip("PyQt5.QtWidgets")
APP = QtWidgets.QApplication.instance() or QtWidgets.QApplication([])
pytest.importorskip("qfluentwidgets")

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from PyQt5.QtCore import QObject, pyqtSignal

from tzpanel.tools.settings_store import SettingsStore
from tzpanel.ui.controller import prefs_ctl
from tzpanel.ui.controller.prefs_ctl import PreferencesController
from tzpanel.ui.model.timezones import Person, TimezoneEntry, decode

STORED = '[{"timezone":"Europe/Paris","people":["Bob"]}]'


class FakePrefsView(QObject):
    addTimezoneRequested = pyqtSignal()
    removeTimezoneRequested = pyqtSignal(int)
    zoneChanged = pyqtSignal(int, str)
    addPersonRequested = pyqtSignal(int, str, str)
    removePersonRequested = pyqtSignal(int, int)

    def __init__(self):
        super().__init__()
        self.shown = []

    def set_entries(self, entries, titles, subtitles):
        self.shown.append(([TimezoneEntry(e.timezone, list(e.people)) for e in entries], titles, subtitles))


class FailingStore(SettingsStore):
    def _persist(self, value):
        raise RuntimeError("disk full")


@pytest.fixture
def info_bars(monkeypatch):
    shown = []
    monkeypatch.setattr(
        prefs_ctl, "show_info_bar", lambda page, level, title, content, **kw: shown.append((level, content))
    )
    return shown


def test_load_shows_stored_entries():
    view = FakePrefsView()
    controller = PreferencesController(SettingsStore(STORED), view)
    controller.load()
    entries, titles, subtitles = view.shown[-1]
    assert entries == [TimezoneEntry("Europe/Paris", [Person("Bob")])]
    assert titles == ["Paris (CET)"]
    assert subtitles == ["1 person"]


def test_successful_edit_saves_and_redraws(info_bars):
    store = SettingsStore(STORED)
    view = FakePrefsView()
    controller = PreferencesController(store, view)
    controller.load()

    view.addPersonRequested.emit(0, "Alice", "alice@example.com")
    APP.processEvents()

    assert decode(store.get())[0].people == [Person("Bob"), Person("Alice", "alice@example.com")]
    assert view.shown[-1][2] == ["2 people"]
    assert info_bars == []


def test_failed_save_reverts_to_stored_entries(info_bars):
    store = FailingStore(STORED)
    view = FakePrefsView()
    controller = PreferencesController(store, view)
    controller.load()

    view.addPersonRequested.emit(0, "Alice", "")
    view.addTimezoneRequested.emit()

    expected = [TimezoneEntry("Europe/Paris", [Person("Bob")])]
    assert controller.editor.entries == expected
    assert view.shown[-1][0] == expected
    assert store.get() == STORED
    assert [level for level, _ in info_bars] == ["error", "error"]
    assert "disk full" in info_bars[0][1]
