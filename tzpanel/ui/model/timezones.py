"""Timezone configuration model shared by the panel and the preferences window.

The persisted value is a JSON array of ``{"timezone": ..., "people": [...]}``
objects stored under a single settings key.  People are written in the
canonical object form ``{"name": ..., "email": ...}`` but older values may
still hold bare strings; both are accepted on the way in, only the object
form comes back out.

Decoding never raises to the caller: malformed input is logged and treated as
an empty configuration so the panel always has something to render.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tzpanel.util.constants import (
    COMMON_TIMEZONES,
    DEFAULT_TIMEZONE,
    TIME_FORMAT,
    TIME_PLACEHOLDER,
)


class ConfigDecodeError(ValueError):
    """Raised internally when the stored configuration cannot be parsed."""


@dataclass(frozen=True)
class Person:
    """Someone shown under a timezone card."""

    name: str
    email: str | None = None

    def to_dict(self) -> dict[str, str]:
        data = {"name": self.name}
        if self.email:
            data["email"] = self.email
        return data


@dataclass
class TimezoneEntry:
    """One configured zone and the people attached to it."""

    timezone: str = DEFAULT_TIMEZONE
    people: list[Person] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timezone": self.timezone,
            "people": [person.to_dict() for person in self.people],
        }


Configuration = list[TimezoneEntry]


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def person_from_raw(raw: Any) -> Person | None:
    """Normalise a persisted person (legacy string or object) or return None."""
    if isinstance(raw, str):
        name = raw.strip()
        return Person(name=name) if name else None
    if isinstance(raw, dict):
        name = _clean(raw.get("name"))
        if not name:
            return None
        email = _clean(raw.get("email")) or None
        return Person(name=name, email=email)
    return None


def entry_from_raw(raw: Any) -> TimezoneEntry | None:
    if not isinstance(raw, dict):
        return None
    zone = raw.get("timezone")
    if not isinstance(zone, str) or not zone.strip():
        zone = DEFAULT_TIMEZONE
    people_raw = raw.get("people")
    people: list[Person] = []
    if isinstance(people_raw, list):
        for item in people_raw:
            person = person_from_raw(item)
            if person is None:
                logging.debug("Dropping invalid person %r in %s", item, zone)
                continue
            people.append(person)
    return TimezoneEntry(timezone=zone.strip(), people=people)


def _parse(raw: str | None) -> list[Any]:
    if raw is None or not str(raw).strip():
        return []
    try:
        data = json.loads(raw)
    except (TypeError, ValueError, RecursionError) as exc:
        raise ConfigDecodeError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise ConfigDecodeError(f"expected a JSON array, got {type(data).__name__}")
    return data


def decode(raw: str | None) -> Configuration:
    """Parse the stored timezone list; never raises."""
    try:
        items = _parse(raw)
    except ConfigDecodeError as exc:
        logging.warning("Failed to parse timezones: %s", exc)
        return []
    config: Configuration = []
    for item in items:
        entry = entry_from_raw(item)
        if entry is None:
            logging.warning("Skipping invalid timezone entry %r", item)
            continue
        config.append(entry)
    return config


def encode(config: Iterable[TimezoneEntry]) -> str:
    """Serialise *config* in canonical form."""
    return json.dumps(
        [entry.to_dict() for entry in config],
        ensure_ascii=False,
        separators=(",", ":"),
    )


def display_name(timezone_id: str) -> str:
    """Readable city name for a zone id, e.g. ``America/New_York`` -> ``New York``."""
    parts = timezone_id.split("/")
    if len(parts) > 1:
        return parts[-1].replace("_", " ")
    return timezone_id


_CURATED_TITLES = dict(COMMON_TIMEZONES)


def zone_title(timezone_id: str) -> str:
    return _CURATED_TITLES.get(timezone_id) or display_name(timezone_id)


def people_summary(count: int) -> str:
    return f"{count} {'person' if count == 1 else 'people'}"


def resolve_zone(timezone_id: str) -> ZoneInfo | None:
    """Return the zone for *timezone_id*, or None when it cannot be resolved."""
    if not isinstance(timezone_id, str) or not timezone_id.strip():
        return None
    try:
        return ZoneInfo(timezone_id)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None


def format_zone_time(
    timezone_id: str,
    now: datetime | None = None,
    *,
    fmt: str = TIME_FORMAT,
    placeholder: str = TIME_PLACEHOLDER,
) -> str:
    """Wall-clock time in *timezone_id*; *placeholder* for unknown zones."""
    zone = resolve_zone(timezone_id)
    if zone is None:
        return placeholder
    instant = now if now is not None else datetime.now(timezone.utc)
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(zone).strftime(fmt)


__all__ = [
    "ConfigDecodeError",
    "Configuration",
    "Person",
    "TimezoneEntry",
    "decode",
    "display_name",
    "encode",
    "entry_from_raw",
    "format_zone_time",
    "people_summary",
    "person_from_raw",
    "resolve_zone",
    "zone_title",
]
