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

from tzpanel.tools.settings_store import SettingsStore, YamlSettingsStore
from tzpanel.ui.controller.panel_ctl import PanelController
from tzpanel.ui.model.board import AvatarHandle, BoardState
from tzpanel.util.constants import AvatarSettings, PanelSettings

ONE_ZONE = '[{"timezone":"Asia/Tokyo","people":[{"name":"Aiko","email":"aiko@example.com"}]}]'
TWO_ZONES = '[{"timezone":"UTC","people":[]},{"timezone":"Europe/Paris","people":["Bob"]}]'


class FakePanelView(QObject):
    preferencesRequested = pyqtSignal()

    def __init__(self):
        super().__init__()
        self.renders = []
        self.updates = []
        self.avatars = []

    def render_cards(self, cards, generation):
        self.renders.append(([card.timezone for card in cards], generation))

    def update_times(self, cards):
        self.updates.append([card.time_text for card in cards])

    def set_avatar(self, handle, path):
        self.avatars.append((handle, path))
        return True


def make_controller(store, avatars=False):
    view = FakePanelView()
    controller = PanelController(
        store,
        view,
        panel_settings=PanelSettings(tick_interval_seconds=60),
        avatar_settings=AvatarSettings(enabled=avatars),
    )
    return controller, view


def test_initial_render_and_timer():
    controller, view = make_controller(SettingsStore(ONE_ZONE))
    try:
        assert view.renders == [(["Asia/Tokyo"], 1)]
        assert controller.timer.isActive()
        assert controller.timer.interval() == 60000
        controller.tick()
        assert len(view.updates) == 1
        assert len(view.updates[0]) == 1
    finally:
        controller.shutdown()


def test_store_change_rebuilds_with_new_generation():
    store = SettingsStore(ONE_ZONE)
    controller, view = make_controller(store)
    try:
        store.set(TWO_ZONES)
        assert view.renders[-1] == (["UTC", "Europe/Paris"], 2)
        store.set(TWO_ZONES)
        assert len(view.renders) == 2
    finally:
        controller.shutdown()


def test_stale_avatar_is_not_applied_to_view():
    store = SettingsStore(ONE_ZONE)
    controller, view = make_controller(store)
    try:
        old_handle = AvatarHandle(1, 0, 0)
        store.set(ONE_ZONE.replace("Aiko", "Aiko T"))
        controller.avatarReady.emit(old_handle, "/tmp/old.img")
        assert view.avatars == []

        live_handle = AvatarHandle(2, 0, 0)
        controller.avatarReady.emit(live_handle, "/tmp/new.img")
        assert view.avatars == [(live_handle, "/tmp/new.img")]
        assert controller.board.cards[0].people[0].avatar_path == "/tmp/new.img"
    finally:
        controller.shutdown()


def test_shutdown_releases_timer_and_subscription():
    store = SettingsStore(ONE_ZONE)
    controller, view = make_controller(store)
    assert store.subscriber_count == 1

    controller.shutdown()
    assert not controller.timer.isActive()
    assert store.subscriber_count == 0
    assert controller.board.state is BoardState.DESTROYED

    store.set(TWO_ZONES)
    controller.tick()
    assert len(view.renders) == 1
    assert view.updates == []
    # a second shutdown is harmless
    controller.shutdown()


def test_shutdown_removes_cached_avatars():
    controller, _view = make_controller(SettingsStore(TWO_ZONES), avatars=True)
    path = controller.avatar_cache.store(b"png")
    assert path.exists()
    controller.shutdown()
    assert not path.exists()
    assert controller.avatar_client is None


def test_missing_settings_file_is_picked_up_once_created(tmp_path):
    path = tmp_path / "settings.yaml"
    controller, view = make_controller(YamlSettingsStore(path))
    try:
        assert view.renders == [([], 1)]
        assert controller._watcher.files() == []
        assert str(tmp_path) in controller._watcher.directories()

        # another process writes the file
        YamlSettingsStore(path).set(ONE_ZONE)
        controller._on_directory_changed(str(tmp_path))
        assert view.renders[-1] == (["Asia/Tokyo"], 2)
        assert str(path) in controller._watcher.files()
    finally:
        controller.shutdown()


def test_first_save_starts_watching_the_file(tmp_path):
    path = tmp_path / "settings.yaml"
    store = YamlSettingsStore(path)
    controller, view = make_controller(store)
    try:
        store.set(ONE_ZONE)
        assert path.exists()
        assert str(path) in controller._watcher.files()
        assert view.renders[-1] == (["Asia/Tokyo"], 2)
    finally:
        controller.shutdown()


def test_directory_event_without_file_is_ignored(tmp_path):
    path = tmp_path / "settings.yaml"
    controller, view = make_controller(YamlSettingsStore(path))
    try:
        (tmp_path / "unrelated.txt").write_text("x", encoding="utf-8")
        controller._on_directory_changed(str(tmp_path))
        assert len(view.renders) == 1
        assert controller._watcher.files() == []
    finally:
        controller.shutdown()
