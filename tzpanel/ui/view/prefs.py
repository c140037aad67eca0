"""Preferences window: edit the configured timezones and their people."""
from __future__ import annotations

from PyQt5.QtCore import QSignalBlocker, Qt, pyqtSignal
from PyQt5.QtWidgets import (
    QHBoxLayout,
    QScrollArea,
    QFrame,
    QVBoxLayout,
    QWidget,
)
from qfluentwidgets import (
    BodyLabel,
    CaptionLabel,
    CardWidget,
    ComboBox,
    FluentIcon,
    LineEdit,
    PushButton,
    StrongBodyLabel,
    TransparentToolButton,
)

from tzpanel.ui.model.timezones import Person, TimezoneEntry, display_name
from tzpanel.util.constants import COMMON_TIMEZONES
from .theme import ACCENT_COLOR, STYLE_BASE, TEXT_COLOR


class PersonRow(QWidget):
    """A person line with a remove button."""

    removeRequested = pyqtSignal()

    def __init__(self, person: Person, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        text = person.name if not person.email else f"{person.name} <{person.email}>"
        self.label = BodyLabel(text, self)
        layout.addWidget(self.label)
        layout.addStretch(1)
        self.remove_btn = TransparentToolButton(FluentIcon.DELETE, self)
        self.remove_btn.clicked.connect(self.removeRequested)
        layout.addWidget(self.remove_btn)


class TimezoneRow(CardWidget):
    """
    Card for one configured zone.

    Shows the zone title and a people count, a zone picker, the people list
    and a small form to add a person.  The card only emits signals; the
    window forwards them with the card's index.
    """

    removeRequested = pyqtSignal()
    zoneChanged = pyqtSignal(str)
    addPersonRequested = pyqtSignal(str, str)
    removePersonRequested = pyqtSignal(int)

    def __init__(
        self,
        entry: TimezoneEntry,
        title: str,
        subtitle: str,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 12, 16, 12)
        layout.setSpacing(8)

        header = QHBoxLayout()
        titles = QVBoxLayout()
        self.title_label = StrongBodyLabel(title, self)
        self.subtitle_label = CaptionLabel(subtitle, self)
        titles.addWidget(self.title_label)
        titles.addWidget(self.subtitle_label)
        header.addLayout(titles)
        header.addStretch(1)
        self.remove_btn = TransparentToolButton(FluentIcon.DELETE, self)
        self.remove_btn.clicked.connect(self.removeRequested)
        header.addWidget(self.remove_btn)
        layout.addLayout(header)

        zone_row = QHBoxLayout()
        zone_row.addWidget(BodyLabel("Timezone", self))
        zone_row.addStretch(1)
        self.zone_combo = ComboBox(self)
        self.zone_combo.setMinimumWidth(220)
        self._populate_zones(entry.timezone)
        self.zone_combo.currentIndexChanged.connect(self._on_zone_index_changed)
        zone_row.addWidget(self.zone_combo)
        layout.addLayout(zone_row)

        for index, person in enumerate(entry.people):
            row = PersonRow(person, self)
            row.removeRequested.connect(lambda index=index: self.removePersonRequested.emit(index))
            layout.addWidget(row)

        add_row = QHBoxLayout()
        self.name_edit = LineEdit(self)
        self.name_edit.setPlaceholderText("Enter person name")
        self.name_edit.returnPressed.connect(self._on_add_person)
        add_row.addWidget(self.name_edit)
        self.email_edit = LineEdit(self)
        self.email_edit.setPlaceholderText("Email (optional, for avatar)")
        self.email_edit.returnPressed.connect(self._on_add_person)
        add_row.addWidget(self.email_edit)
        self.add_person_btn = PushButton("Add Person", self, FluentIcon.ADD)
        self.add_person_btn.clicked.connect(self._on_add_person)
        add_row.addWidget(self.add_person_btn)
        layout.addLayout(add_row)

    def _populate_zones(self, current: str) -> None:
        ids = [zone_id for zone_id, _label in COMMON_TIMEZONES]
        with QSignalBlocker(self.zone_combo):
            if current not in ids:
                # keep zones set outside the curated list selectable as-is
                self.zone_combo.addItem(display_name(current) or current, userData=current)
            for zone_id, label in COMMON_TIMEZONES:
                self.zone_combo.addItem(label, userData=zone_id)
            for index in range(self.zone_combo.count()):
                if self.zone_combo.itemData(index) == current:
                    self.zone_combo.setCurrentIndex(index)
                    break

    def _on_zone_index_changed(self, index: int) -> None:
        zone_id = self.zone_combo.itemData(index)
        if zone_id:
            self.zoneChanged.emit(str(zone_id))

    def _on_add_person(self) -> None:
        name = self.name_edit.text().strip()
        if not name:
            return
        self.addPersonRequested.emit(name, self.email_edit.text().strip())


class PreferencesWindow(QWidget):
    """Top-level preferences window listing one card per configured zone."""

    addTimezoneRequested = pyqtSignal()
    removeTimezoneRequested = pyqtSignal(int)
    zoneChanged = pyqtSignal(int, str)
    addPersonRequested = pyqtSignal(int, str, str)
    removePersonRequested = pyqtSignal(int, int)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setObjectName("preferencesWindow")
        self.setWindowTitle("Timezones")
        self.resize(640, 560)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(12)

        self.title_label = StrongBodyLabel("Configured Timezones", self)
        self.title_label.setStyleSheet(
            f"""
            {STYLE_BASE} color:{TEXT_COLOR};
            border-left: 4px solid {ACCENT_COLOR};
            padding-left: 8px;
            """
        )
        layout.addWidget(self.title_label)
        layout.addWidget(CaptionLabel("Pick a zone for each card and manage its people", self))

        self.scroll_area = QScrollArea(self)
        self.scroll_area.setWidgetResizable(True)
        self.scroll_area.setFrameShape(QFrame.NoFrame)
        self.rows_host = QWidget(self.scroll_area)
        self.rows_layout = QVBoxLayout(self.rows_host)
        self.rows_layout.setContentsMargins(0, 0, 0, 0)
        self.rows_layout.setSpacing(8)
        self.rows_layout.setAlignment(Qt.AlignTop)
        self.scroll_area.setWidget(self.rows_host)
        layout.addWidget(self.scroll_area, 1)

        self.add_timezone_btn = PushButton("Add Timezone", self, FluentIcon.ADD)
        self.add_timezone_btn.clicked.connect(self.addTimezoneRequested)
        layout.addWidget(self.add_timezone_btn)

        self.rows: list[TimezoneRow] = []

    def set_entries(self, entries: list[TimezoneEntry], titles: list[str], subtitles: list[str]) -> None:
        """Rebuild every card from *entries*."""
        for row in self.rows:
            row.setParent(None)
            row.deleteLater()
        self.rows = []
        for index, entry in enumerate(entries):
            row = TimezoneRow(entry, titles[index], subtitles[index], self.rows_host)
            row.removeRequested.connect(lambda index=index: self.removeTimezoneRequested.emit(index))
            row.zoneChanged.connect(lambda zone, index=index: self.zoneChanged.emit(index, zone))
            row.addPersonRequested.connect(
                lambda name, email, index=index: self.addPersonRequested.emit(index, name, email)
            )
            row.removePersonRequested.connect(
                lambda person_index, index=index: self.removePersonRequested.emit(index, person_index)
            )
            self.rows_layout.addWidget(row)
            self.rows.append(row)
