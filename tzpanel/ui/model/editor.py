"""Editable timezone list behind the preferences window."""

from __future__ import annotations

import logging

from tzpanel.tools.settings_store import SettingsStore
from tzpanel.util.constants import DEFAULT_TIMEZONE
from .autosave import autosave
from .timezones import (
    Configuration,
    Person,
    TimezoneEntry,
    decode,
    encode,
    people_summary,
    resolve_zone,
    zone_title,
)


class TimezoneEditor:
    """Holds the working configuration and writes every edit to the store."""

    def __init__(self, store: SettingsStore) -> None:
        self.store = store
        self.entries: Configuration = []
        self._loading = False

    def load(self) -> Configuration:
        """Read the stored list; an empty list shows one unsaved UTC entry."""
        self._loading = True
        try:
            self.entries = decode(self.store.get())
            if not self.entries:
                self.add_timezone()
        finally:
            self._loading = False
        return self.entries

    def save(self) -> None:
        self.store.set(encode(self.entries))
        logging.info("Timezones saved (%s entries)", len(self.entries))

    # ------------------------------------------------------------------
    def _entry(self, index: int) -> TimezoneEntry | None:
        if 0 <= index < len(self.entries):
            return self.entries[index]
        logging.debug("timezone index %s out of range", index)
        return None

    @autosave
    def add_timezone(self, zone: str = DEFAULT_TIMEZONE) -> TimezoneEntry:
        entry = TimezoneEntry(timezone=zone)
        self.entries.append(entry)
        return entry

    @autosave
    def remove_timezone(self, index: int) -> bool:
        if self._entry(index) is None:
            return False
        del self.entries[index]
        return True

    @autosave
    def set_timezone(self, index: int, zone: str) -> bool:
        """Change the zone of one entry; unresolvable ids are rejected."""
        entry = self._entry(index)
        zone = (zone or "").strip()
        if entry is None or resolve_zone(zone) is None:
            logging.warning("Rejected timezone %r for entry %s", zone, index)
            return False
        if entry.timezone == zone:
            return False
        entry.timezone = zone
        return True

    @autosave
    def add_person(self, index: int, name: str, email: str | None = None) -> bool:
        entry = self._entry(index)
        name = (name or "").strip()
        if entry is None or not name:
            return False
        entry.people.append(Person(name=name, email=(email or "").strip() or None))
        return True

    @autosave
    def remove_person(self, index: int, person_index: int) -> bool:
        entry = self._entry(index)
        if entry is None or not 0 <= person_index < len(entry.people):
            return False
        del entry.people[person_index]
        return True

    # ------------------------------------------------------------------
    def title(self, index: int) -> str:
        entry = self._entry(index)
        return zone_title(entry.timezone) if entry else ""

    def subtitle(self, index: int) -> str:
        entry = self._entry(index)
        return people_summary(len(entry.people)) if entry else ""


__all__ = ["TimezoneEditor"]
