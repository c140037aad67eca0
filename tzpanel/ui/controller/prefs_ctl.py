"""Controller binding the preferences window to :class:`TimezoneEditor`."""

from __future__ import annotations

import logging
from typing import Any, Callable

from PyQt5.QtCore import QObject, QTimer

from tzpanel.tools.settings_store import SettingsStore
from tzpanel.ui.model.editor import TimezoneEditor
from tzpanel.ui.view.prefs import PreferencesWindow
from . import show_info_bar


class PreferencesController(QObject):
    """Routes window signals to editor operations and redraws after each edit."""

    def __init__(
        self,
        store: SettingsStore,
        view: PreferencesWindow,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.view = view
        self.editor = TimezoneEditor(store)

        view.addTimezoneRequested.connect(lambda: self._edit(self.editor.add_timezone))
        view.removeTimezoneRequested.connect(
            lambda index: self._edit(self.editor.remove_timezone, index)
        )
        view.zoneChanged.connect(
            lambda index, zone: self._edit(self.editor.set_timezone, index, zone)
        )
        view.addPersonRequested.connect(
            lambda index, name, email: self._edit(self.editor.add_person, index, name, email)
        )
        view.removePersonRequested.connect(
            lambda index, person_index: self._edit(self.editor.remove_person, index, person_index)
        )

    def load(self) -> None:
        self.editor.load()
        self.refresh()

    def refresh(self) -> None:
        count = len(self.editor.entries)
        self.view.set_entries(
            self.editor.entries,
            [self.editor.title(index) for index in range(count)],
            [self.editor.subtitle(index) for index in range(count)],
        )

    def _edit(self, operation: Callable[..., Any], *args: Any) -> None:
        try:
            result = operation(*args)
        except RuntimeError as exc:
            logging.error("Failed to save timezones: %s", exc)
            show_info_bar(self.view, "error", "Error", f"Failed to save timezones: {exc}")
            # the edit already changed the in-memory list; go back to what is stored
            self.load()
            return
        if result is False:
            return
        # rows emit the signal that triggered this edit; redraw once they return
        QTimer.singleShot(0, self.refresh)
