"""View module for the timezone panel popup.

This module contains the *pure UI* for the panel:

- A horizontally scrollable row of zone cards (time, zone name, people)
- A "No timezones configured" message when the list is empty
- A Preferences button

What to show comes from :class:`tzpanel.ui.model.board.ClockBoard`; timers,
settings and downloads are wired in :mod:`tzpanel.ui.controller.panel_ctl`.
"""

from __future__ import annotations

import logging

from PyQt5.QtCore import Qt, pyqtSignal
from PyQt5.QtGui import QPixmap
from PyQt5.QtWidgets import (
    QFrame,
    QHBoxLayout,
    QLabel,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)
from qfluentwidgets import BodyLabel, FluentIcon, PushButton

from tzpanel.ui.model.board import EMPTY_MESSAGE, AvatarHandle, ZoneCard
from .theme import (
    AVATAR_DISPLAY_SIZE,
    CARD_MARGIN,
    CARD_PADDING,
    apply_theme,
    style_person_label,
    style_time_label,
    style_zone_label,
)


class ZoneCardWidget(QFrame):
    """One column of the panel: time, zone name and the people in that zone."""

    def __init__(self, card: ZoneCard, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setObjectName("timezoneWidget")
        layout = QVBoxLayout(self)
        layout.setContentsMargins(CARD_PADDING, CARD_PADDING, CARD_PADDING, CARD_PADDING)
        layout.setSpacing(2)

        self.time_label = QLabel(card.time_text, self)
        style_time_label(self.time_label)
        layout.addWidget(self.time_label)

        self.zone_label = QLabel(card.title, self)
        style_zone_label(self.zone_label)
        layout.addWidget(self.zone_label)

        self.avatar_labels: list[QLabel] = []
        for person in card.people:
            row = QHBoxLayout()
            row.setContentsMargins(0, 0, 0, 0)
            row.setSpacing(6)
            avatar = QLabel(self)
            avatar.setFixedSize(AVATAR_DISPLAY_SIZE, AVATAR_DISPLAY_SIZE)
            avatar.setVisible(False)
            row.addWidget(avatar)
            name = QLabel(person.name, self)
            style_person_label(name)
            row.addWidget(name)
            row.addStretch(1)
            layout.addLayout(row)
            self.avatar_labels.append(avatar)
        layout.addStretch(1)

    def set_time(self, text: str) -> None:
        self.time_label.setText(text)


class TimezonePanel(QWidget):
    """Popup listing every configured zone side by side."""

    preferencesRequested = pyqtSignal()

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent, Qt.Popup | Qt.FramelessWindowHint)
        self.setObjectName("timezonePanel")
        self._generation = 0
        self._cards: list[ZoneCardWidget] = []

        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)
        layout.setSpacing(8)

        self.empty_label = BodyLabel(EMPTY_MESSAGE, self)
        self.empty_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.empty_label)

        self.scroll_area = QScrollArea(self)
        self.scroll_area.setObjectName("timezoneScroll")
        self.scroll_area.setWidgetResizable(True)
        self.scroll_area.setFrameShape(QFrame.NoFrame)
        self.scroll_area.setHorizontalScrollBarPolicy(Qt.ScrollBarAsNeeded)
        self.scroll_area.setVerticalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.container = QWidget(self.scroll_area)
        self.container.setObjectName("timezoneContainer")
        self.row_layout = QHBoxLayout(self.container)
        self.row_layout.setContentsMargins(0, 0, 0, 0)
        self.row_layout.setSpacing(CARD_MARGIN)
        self.scroll_area.setWidget(self.container)
        layout.addWidget(self.scroll_area)

        separator = QFrame(self)
        separator.setFrameShape(QFrame.HLine)
        layout.addWidget(separator)

        self.prefs_btn = PushButton("Preferences", self, FluentIcon.SETTING)
        self.prefs_btn.clicked.connect(self._on_prefs_clicked)
        layout.addWidget(self.prefs_btn)

        apply_theme(self)

    # ------------------------------------------------------------------
    def render_cards(self, cards: list[ZoneCard], generation: int) -> None:
        """Throw away every card widget and build new ones."""
        self.clear()
        self._generation = generation
        for card in cards:
            widget = ZoneCardWidget(card, self.container)
            self.row_layout.addWidget(widget)
            self._cards.append(widget)
        self.row_layout.addStretch(1)
        empty = not cards
        self.empty_label.setVisible(empty)
        self.scroll_area.setVisible(not empty)
        self.adjustSize()

    def clear(self) -> None:
        self._cards = []
        while self.row_layout.count():
            item = self.row_layout.takeAt(0)
            widget = item.widget()
            if widget is not None:
                widget.setParent(None)
                widget.deleteLater()

    def update_times(self, cards: list[ZoneCard]) -> None:
        for widget, card in zip(self._cards, cards):
            widget.set_time(card.time_text)

    def set_avatar(self, handle: AvatarHandle, path: str) -> bool:
        """Show the avatar image at *path*; returns False when nothing changed."""
        if handle.generation != self._generation:
            return False
        try:
            label = self._cards[handle.card_index].avatar_labels[handle.person_index]
        except IndexError:
            return False
        pixmap = QPixmap(path)
        if pixmap.isNull():
            logging.debug("Avatar at %s is not a readable image", path)
            return False
        label.setPixmap(
            pixmap.scaled(
                label.width(), label.height(), Qt.KeepAspectRatio, Qt.SmoothTransformation
            )
        )
        label.setVisible(True)
        return True

    def _on_prefs_clicked(self) -> None:
        self.hide()
        self.preferencesRequested.emit()
