"""Controller wiring the panel view to settings, the refresh timer and avatars."""

from __future__ import annotations

import logging
from pathlib import Path

from PyQt5.QtCore import QFileSystemWatcher, QObject, QTimer, pyqtSignal

from tzpanel.tools.avatar_client import AvatarCache, AvatarClient, AvatarFetchError
from tzpanel.tools.settings_store import SettingsStore, YamlSettingsStore
from tzpanel.ui.model.board import AvatarHandle, BoardState, ClockBoard
from tzpanel.ui.model.timezones import decode
from tzpanel.ui.view.panel import TimezonePanel
from tzpanel.util.constants import AvatarSettings, PanelSettings


class PanelController(QObject):
    """Keeps :class:`TimezonePanel` in sync with the stored timezone list."""

    avatarReady = pyqtSignal(object, str)
    preferencesRequested = pyqtSignal()

    def __init__(
        self,
        store: SettingsStore,
        view: TimezonePanel,
        *,
        panel_settings: PanelSettings | None = None,
        avatar_settings: AvatarSettings | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.store = store
        self.view = view
        self.panel_settings = panel_settings or PanelSettings()
        self.avatar_settings = avatar_settings or AvatarSettings()
        self.board = ClockBoard(
            time_format=self.panel_settings.time_format,
            placeholder=self.panel_settings.placeholder,
            avatar_size=self.avatar_settings.size,
            avatar_base_url=self.avatar_settings.base_url,
            avatar_default_image=self.avatar_settings.default_image,
            avatars_enabled=self.avatar_settings.enabled,
        )
        self.avatar_client: AvatarClient | None = None
        self.avatar_cache: AvatarCache | None = None
        if self.avatar_settings.enabled:
            self.avatar_client = AvatarClient(
                timeout=self.avatar_settings.timeout,
                max_workers=self.avatar_settings.max_workers,
            )
            self.avatar_cache = AvatarCache(
                cleanup_delay=self.avatar_settings.cleanup_delay_seconds
            )
            self.avatar_cache.sweep(max_age=self.avatar_cache.cleanup_delay)

        self.avatarReady.connect(self._on_avatar_ready)
        self.view.preferencesRequested.connect(self.preferencesRequested)

        self.timer = QTimer(self)
        self.timer.setInterval(self.panel_settings.tick_interval_seconds * 1000)
        self.timer.timeout.connect(self.tick)

        self._settings_handler_id: int | None = self.store.on_change(self._on_settings_changed)
        self._watcher: QFileSystemWatcher | None = None
        if isinstance(store, YamlSettingsStore):
            self._watcher = QFileSystemWatcher(self)
            self._watch(store.path)
            self._watcher.fileChanged.connect(self._on_file_changed)
            self._watcher.directoryChanged.connect(self._on_directory_changed)

        self.rebuild()
        self.timer.start()

    # ------------------------------------------------------------------
    def rebuild(self) -> None:
        """Full rebuild from the stored configuration."""
        if self.board.state is BoardState.DESTROYED:
            return
        config = decode(self.store.get())
        cards = self.board.rebuild(config)
        self.view.render_cards(cards, self.board.generation)
        logging.info("Timezone panel rebuilt with %s zones", len(cards))
        self._request_avatars()

    def tick(self) -> None:
        if self.board.state is not BoardState.RENDERED:
            return
        self.board.tick()
        self.view.update_times(self.board.cards)

    def shutdown(self) -> None:
        """Stop the timer, drop the settings subscription and release downloads."""
        self.timer.stop()
        if self._settings_handler_id is not None:
            self.store.disconnect(self._settings_handler_id)
            self._settings_handler_id = None
        if self._watcher is not None:
            paths = self._watcher.files() + self._watcher.directories()
            if paths:
                self._watcher.removePaths(paths)
            self._watcher = None
        self.board.destroy()
        if self.avatar_client is not None:
            self.avatar_client.close()
            self.avatar_client = None
        if self.avatar_cache is not None:
            self.avatar_cache.purge()
        logging.info("Timezone panel shut down")

    # ------------------------------------------------------------------
    def _on_settings_changed(self, _value: str) -> None:
        if isinstance(self.store, YamlSettingsStore):
            # the first save creates the file; start watching it
            self._watch(self.store.path)
        self.rebuild()

    def _watch(self, path: Path) -> None:
        """Watch *path*, or its directory until the file shows up."""
        watcher = self._watcher
        if watcher is None:
            return
        if path.exists():
            if str(path) not in watcher.files():
                watcher.addPath(str(path))
            return
        parent = path.parent
        if parent.is_dir() and str(parent) not in watcher.directories():
            watcher.addPath(str(parent))

    def _on_file_changed(self, path: str) -> None:
        store = self.store
        if isinstance(store, YamlSettingsStore):
            # editors that replace the file drop it from the watch list
            self._watch(store.path)
            store.reload()

    def _on_directory_changed(self, path: str) -> None:
        store = self.store
        if not isinstance(store, YamlSettingsStore) or not store.path.exists():
            return
        self._watch(store.path)
        store.reload()

    def _request_avatars(self) -> None:
        client = self.avatar_client
        if client is None:
            return
        for handle, url in self.board.pending_avatars():
            client.submit(self._fetch_avatar, handle, url)

    def _fetch_avatar(self, handle: AvatarHandle, url: str) -> None:
        """Worker-thread job; the result is delivered through ``avatarReady``."""
        client, cache = self.avatar_client, self.avatar_cache
        if client is None or cache is None:
            return
        try:
            data = client.fetch(url)
            path = cache.store(data)
        except AvatarFetchError as exc:
            logging.debug("Avatar download skipped for %s: %s", handle, exc)
            return
        except OSError as exc:
            logging.debug("Avatar cache write failed for %s: %s", handle, exc)
            return
        self.avatarReady.emit(handle, str(path))

    def _on_avatar_ready(self, handle: AvatarHandle, path: str) -> None:
        if self.board.apply_avatar(handle, path):
            self.view.set_avatar(handle, path)
