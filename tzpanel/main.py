# !/usr/bin/env python
# -*-coding:utf-8 -*-
"""Tray entry point: the panel icon, its popup and the preferences window."""

import logging
import os
import sys
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path

from PyQt5.QtCore import QObject, QStandardPaths
from PyQt5.QtGui import QCursor
from PyQt5.QtWidgets import QAction, QApplication, QMenu, QSystemTrayIcon
from qfluentwidgets import FluentIcon, Theme, setTheme

from tzpanel.tools.settings_store import YamlSettingsStore
from tzpanel.ui.controller.panel_ctl import PanelController
from tzpanel.ui.controller.prefs_ctl import PreferencesController
from tzpanel.ui.view.panel import TimezonePanel
from tzpanel.ui.view.prefs import PreferencesWindow
from tzpanel.util.constants import (
    get_avatar_settings,
    get_data_dir,
    get_log_dir,
    get_panel_settings,
    load_config,
)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def log_exception(exc_type, exc_value, exc_tb):
    logging.error("".join(traceback.format_exception(exc_type, exc_value, exc_tb)))


def setup_logging(config: dict, log_dir: Path) -> None:
    """Console plus rotating file logging, level from the ``logging`` section."""
    section = config.get("logging") or {}
    level = logging.getLevelName(str(section.get("level", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)
    try:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, section.get("filename") or "tzpanel.log"),
            maxBytes=1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
    except OSError as exc:
        logging.warning("File logging disabled: %s", exc)
        return
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)


class TimezoneTray(QObject):
    """Owns the tray icon, the panel popup and the preferences window."""

    def __init__(self, app: QApplication, config: dict, data_dir: Path) -> None:
        super().__init__(app)
        settings_name = (config.get("settings") or {}).get("filename") or "settings.yaml"
        self.store = YamlSettingsStore(data_dir / settings_name)

        self.panel = TimezonePanel()
        self.panel_ctl = PanelController(
            self.store,
            self.panel,
            panel_settings=get_panel_settings(config=config),
            avatar_settings=get_avatar_settings(config=config),
            parent=self,
        )
        self.panel_ctl.preferencesRequested.connect(self.open_preferences)

        self.prefs_window: PreferencesWindow | None = None
        self.prefs_ctl: PreferencesController | None = None

        self.tray = QSystemTrayIcon(FluentIcon.DATE_TIME.icon(), self)
        self.tray.setToolTip("Timezones")
        menu = QMenu()
        prefs_action = QAction("Preferences", menu)
        prefs_action.triggered.connect(self.open_preferences)
        menu.addAction(prefs_action)
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(app.quit)
        menu.addAction(quit_action)
        self._menu = menu
        self.tray.setContextMenu(menu)
        self.tray.activated.connect(self._on_tray_activated)
        self.tray.show()

        app.aboutToQuit.connect(self.shutdown)

    def _on_tray_activated(self, reason) -> None:
        if reason != QSystemTrayIcon.Trigger:
            return
        if self.panel.isVisible():
            self.panel.hide()
            return
        self.panel_ctl.tick()
        self.panel.move(QCursor.pos())
        self.panel.show()

    def open_preferences(self) -> None:
        if self.prefs_window is None:
            self.prefs_window = PreferencesWindow()
            self.prefs_ctl = PreferencesController(self.store, self.prefs_window, parent=self)
        self.prefs_ctl.load()
        self.prefs_window.show()
        self.prefs_window.raise_()
        self.prefs_window.activateWindow()

    def shutdown(self) -> None:
        self.panel_ctl.shutdown()
        self.tray.hide()


def main() -> int:
    app = QApplication(sys.argv)
    app.setApplicationName("tzpanel")
    data_dir = get_data_dir(QStandardPaths.writableLocation(QStandardPaths.AppConfigLocation))
    config = load_config(base_dir=data_dir)
    setup_logging(config, get_log_dir(data_dir))
    sys.excepthook = log_exception

    app.setQuitOnLastWindowClosed(False)
    setTheme(Theme.DARK)
    if not QSystemTrayIcon.isSystemTrayAvailable():
        logging.error("No system tray available; timezone panel cannot start")
        return 1
    tray = TimezoneTray(app, config, data_dir)
    logging.info("Timezone panel started with settings %s", tray.store.path)
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
