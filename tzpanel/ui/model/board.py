"""Render state for the timezone panel.

:class:`ClockBoard` turns a :data:`Configuration` into the text the panel
shows and tracks which render pass is live.  Every :meth:`ClockBoard.rebuild`
starts a new *generation*; avatar downloads carry the generation they were
issued for, so a download finishing after the cards were rebuilt is simply
ignored by :meth:`ClockBoard.apply_avatar`.

The board holds no Qt objects; the view reads ``cards`` after each call and
updates its widgets accordingly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable

from tzpanel.util.constants import (
    AVATAR_BASE_URL,
    AVATAR_DEFAULT_IMAGE,
    AVATAR_SIZE,
    TIME_FORMAT,
    TIME_PLACEHOLDER,
)
from .avatar import avatar_url
from .timezones import TimezoneEntry, display_name, format_zone_time

EMPTY_MESSAGE = "No timezones configured"


class BoardState(Enum):
    IDLE = "idle"
    RENDERED = "rendered"
    DESTROYED = "destroyed"


@dataclass(frozen=True)
class AvatarHandle:
    """Identifies one person slot within one render pass."""

    generation: int
    card_index: int
    person_index: int


@dataclass
class PersonCard:
    name: str
    email: str | None = None
    avatar_url: str | None = None
    avatar_path: str | None = None


@dataclass
class ZoneCard:
    timezone: str
    title: str
    time_text: str
    people: list[PersonCard] = field(default_factory=list)


class ClockBoard:
    """State machine behind the panel: idle, rendered, destroyed."""

    def __init__(
        self,
        *,
        clock: Callable[[], datetime | None] | None = None,
        time_format: str = TIME_FORMAT,
        placeholder: str = TIME_PLACEHOLDER,
        avatar_size: int = AVATAR_SIZE,
        avatar_base_url: str = AVATAR_BASE_URL,
        avatar_default_image: str = AVATAR_DEFAULT_IMAGE,
        avatars_enabled: bool = True,
    ) -> None:
        self._clock = clock or (lambda: None)
        self.time_format = time_format
        self.placeholder = placeholder
        self.avatar_size = avatar_size
        self.avatar_base_url = avatar_base_url
        self.avatar_default_image = avatar_default_image
        self.avatars_enabled = avatars_enabled
        self.state = BoardState.IDLE
        self.generation = 0
        self.cards: list[ZoneCard] = []

    # ------------------------------------------------------------------
    @property
    def is_empty(self) -> bool:
        return not self.cards

    def _time_text(self, timezone_id: str, now: datetime | None) -> str:
        return format_zone_time(
            timezone_id, now, fmt=self.time_format, placeholder=self.placeholder
        )

    def _build_card(self, entry: TimezoneEntry, now: datetime | None) -> ZoneCard:
        people = []
        for person in entry.people:
            url = None
            if self.avatars_enabled:
                url = avatar_url(
                    person.email,
                    self.avatar_size,
                    base_url=self.avatar_base_url,
                    default_image=self.avatar_default_image,
                )
            people.append(PersonCard(name=person.name, email=person.email, avatar_url=url))
        return ZoneCard(
            timezone=entry.timezone,
            title=display_name(entry.timezone),
            time_text=self._time_text(entry.timezone, now),
            people=people,
        )

    def rebuild(self, config: Iterable[TimezoneEntry]) -> list[ZoneCard]:
        """Discard every card and derive a fresh set from *config*."""
        if self.state is BoardState.DESTROYED:
            logging.debug("rebuild ignored: board destroyed")
            return []
        self.generation += 1
        now = self._clock()
        self.cards = [self._build_card(entry, now) for entry in config]
        self.state = BoardState.RENDERED
        logging.debug("board rebuilt: generation=%s cards=%s", self.generation, len(self.cards))
        return self.cards

    def tick(self, now: datetime | None = None) -> list[str]:
        """Refresh the time labels in place; structure is left untouched."""
        if self.state is not BoardState.RENDERED:
            return []
        if now is None:
            now = self._clock()
        for card in self.cards:
            card.time_text = self._time_text(card.timezone, now)
        return [card.time_text for card in self.cards]

    def pending_avatars(self) -> list[tuple[AvatarHandle, str]]:
        """Avatar downloads to issue for the live generation."""
        if self.state is not BoardState.RENDERED:
            return []
        pending = []
        for card_index, card in enumerate(self.cards):
            for person_index, person in enumerate(card.people):
                if person.avatar_url and not person.avatar_path:
                    handle = AvatarHandle(self.generation, card_index, person_index)
                    pending.append((handle, person.avatar_url))
        return pending

    def person_for(self, handle: AvatarHandle) -> PersonCard | None:
        """The live person card for *handle*, or None when it is stale."""
        if self.state is not BoardState.RENDERED or handle.generation != self.generation:
            return None
        if not 0 <= handle.card_index < len(self.cards):
            return None
        people = self.cards[handle.card_index].people
        if not 0 <= handle.person_index < len(people):
            return None
        return people[handle.person_index]

    def apply_avatar(self, handle: AvatarHandle, path: str) -> bool:
        """Attach a downloaded avatar; stale handles are a no-op."""
        person = self.person_for(handle)
        if person is None:
            logging.debug("Ignoring stale avatar for %s (live generation %s)", handle, self.generation)
            return False
        person.avatar_path = path
        return True

    def displayed_text(self) -> list[str]:
        """Every string the panel shows for the current state."""
        if self.state is not BoardState.RENDERED:
            return []
        if not self.cards:
            return [EMPTY_MESSAGE]
        text: list[str] = []
        for card in self.cards:
            text.append(card.time_text)
            text.append(card.title)
            text.extend(person.name for person in card.people)
        return text

    def destroy(self) -> None:
        self.cards = []
        self.state = BoardState.DESTROYED


__all__ = [
    "AvatarHandle",
    "BoardState",
    "ClockBoard",
    "EMPTY_MESSAGE",
    "PersonCard",
    "ZoneCard",
]
