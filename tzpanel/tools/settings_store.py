"""Single-key settings store holding the encoded timezone list.

``SettingsStore`` keeps the value in memory; ``YamlSettingsStore`` mirrors it
into a YAML document on disk so that edits survive restarts and so that
changes written by another process can be picked up through :meth:`reload`.
Subscribers registered with :meth:`SettingsStore.on_change` fire whenever the
stored value actually changes, whether through :meth:`set` or :meth:`reload`.
"""

from __future__ import annotations

import itertools
import logging
import os
from pathlib import Path
from typing import Callable

from tzpanel.util.constants import SETTINGS_KEY, _read_yaml_dict, _write_yaml_dict

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], None]


class SettingsStore:
    """In-memory string setting with change notification."""

    def __init__(self, value: str = "", *, key: str = SETTINGS_KEY) -> None:
        self.key = key
        self._value = value or ""
        self._callbacks: dict[int, ChangeCallback] = {}
        self._ids = itertools.count(1)

    def get(self) -> str:
        return self._value

    def set(self, value: str) -> None:
        value = value or ""
        if value == self._value:
            return
        self._persist(value)
        self._value = value
        self._notify()

    def on_change(self, callback: ChangeCallback) -> int:
        """Register *callback*; returns an id for :meth:`disconnect`."""
        handler_id = next(self._ids)
        self._callbacks[handler_id] = callback
        return handler_id

    def disconnect(self, handler_id: int) -> None:
        self._callbacks.pop(handler_id, None)

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    # ------------------------------------------------------------------
    def _persist(self, value: str) -> None:
        """Hook for subclasses writing the value somewhere durable."""

    def _replace(self, value: str) -> None:
        if value == self._value:
            return
        self._value = value
        self._notify()

    def _notify(self) -> None:
        value = self._value
        for handler_id, callback in list(self._callbacks.items()):
            try:
                callback(value)
            except Exception:
                logger.exception("settings subscriber %s failed for key %s", handler_id, self.key)


class YamlSettingsStore(SettingsStore):
    """Settings store backed by a YAML file (one string value under ``key``)."""

    def __init__(self, path: str | os.PathLike[str], *, key: str = SETTINGS_KEY) -> None:
        self.path = Path(path)
        super().__init__(self._read(self.path, key), key=key)

    @staticmethod
    def _read(path: Path, key: str) -> str:
        try:
            data = _read_yaml_dict(path)
        except RuntimeError as exc:
            logger.warning("Failed to read settings %s: %s", path, exc)
            return ""
        value = data.get(key)
        if value is None:
            return ""
        if not isinstance(value, str):
            logger.warning("Settings key %s in %s is not a string; ignoring", key, path)
            return ""
        return value

    def _persist(self, value: str) -> None:
        try:
            data = _read_yaml_dict(self.path)
        except RuntimeError as exc:
            logger.warning("Rewriting unreadable settings file %s: %s", self.path, exc)
            data = {}
        data[self.key] = value
        _write_yaml_dict(self.path, data)
        logger.debug("settings %s written to %s", self.key, self.path)

    def reload(self) -> bool:
        """Re-read the file; returns True when the value changed."""
        value = self._read(self.path, self.key)
        if value == self.get():
            return False
        logger.info("settings %s changed on disk", self.key)
        self._replace(value)
        return True


__all__ = ["SettingsStore", "YamlSettingsStore"]
