"""Avatar download client and transient on-disk cache."""
from __future__ import annotations

import logging
import os
import tempfile
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import suppress
from pathlib import Path
from typing import Callable, TypeVar

import requests

from tzpanel.util.constants import AVATAR_CLEANUP_DELAY_SECONDS, AVATAR_TEMP_PREFIX

logger = logging.getLogger(__name__)

T = TypeVar("T")

Scheduler = Callable[[float, Callable[[], None]], None]


class AvatarFetchError(RuntimeError):
    """Downloading an avatar failed (network, HTTP status or payload)."""


class AvatarClient:
    """Small wrapper around a ``requests`` session and a worker pool."""

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        max_workers: int = 2,
        session: requests.Session | None = None,
    ) -> None:
        self._timeout = timeout
        self._session = session or requests.Session()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="tzpanel-avatar",
        )

    # ------------------------------------------------------------------
    def close(self) -> None:
        """Release the pool and the session; running downloads finish on their own."""

        self._executor.shutdown(wait=False)
        self._session.close()

    def submit(self, func: Callable[..., T], *args, **kwargs) -> Future[T]:
        """Run *func* on the worker pool."""

        return self._executor.submit(func, *args, **kwargs)

    def fetch(self, url: str) -> bytes:
        """Return the image bytes at *url*."""

        try:
            response = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.debug("avatar request failed: %s -> %s", url, exc)
            raise AvatarFetchError(f"request failed: {exc}") from exc
        try:
            if not 200 <= response.status_code < 300:
                raise AvatarFetchError(f"HTTP {response.status_code} for {url}")
            content_type = response.headers.get("Content-Type", "")
            if content_type and not content_type.lower().startswith("image/"):
                raise AvatarFetchError(f"unexpected content type {content_type!r}")
            data = response.content
            if not data:
                raise AvatarFetchError("empty avatar payload")
            return data
        finally:
            response.close()


def _timer_scheduler(delay: float, callback: Callable[[], None]) -> None:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()


class AvatarCache:
    """Writes downloaded avatars to temp files that delete themselves later.

    Files still on disk when the panel shuts down are removed by
    :meth:`purge`; :meth:`sweep` clears leftovers of an earlier run that
    never got that far.
    """

    def __init__(
        self,
        *,
        cleanup_delay: float = AVATAR_CLEANUP_DELAY_SECONDS,
        directory: str | os.PathLike[str] | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.cleanup_delay = cleanup_delay
        self.directory = str(directory) if directory is not None else None
        self._schedule = scheduler or _timer_scheduler
        self._lock = threading.Lock()
        self._paths: set[Path] = set()
        self._closed = False

    def store(self, data: bytes) -> Path:
        """Write *data* to a new temp file and schedule its removal."""
        with self._lock:
            if self._closed:
                raise OSError("avatar cache is closed")
            fd, name = tempfile.mkstemp(prefix=AVATAR_TEMP_PREFIX, suffix=".img", dir=self.directory)
            path = Path(name)
            self._paths.add(path)
        self._schedule(self.cleanup_delay, lambda: self.discard(path))
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        return path

    def discard(self, path: Path) -> None:
        with self._lock:
            self._paths.discard(path)
        with suppress(OSError):
            path.unlink()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._paths)

    def purge(self) -> int:
        """Delete every file this cache still owns and refuse new ones."""
        with self._lock:
            self._closed = True
            paths, self._paths = self._paths, set()
        for path in paths:
            with suppress(OSError):
                path.unlink()
        if paths:
            logger.debug("removed %s cached avatars", len(paths))
        return len(paths)

    def sweep(self, max_age: float | None = None) -> int:
        """Remove avatar files left in the cache directory, optionally only older ones."""
        directory = Path(self.directory or tempfile.gettempdir())
        cutoff = time.time() - max_age if max_age is not None else None
        with self._lock:
            owned = set(self._paths)
        removed = 0
        for path in directory.glob(f"{AVATAR_TEMP_PREFIX}*"):
            if path in owned or not path.is_file():
                continue
            try:
                if cutoff is not None and path.stat().st_mtime > cutoff:
                    continue
                path.unlink()
            except OSError as exc:
                logger.debug("could not remove stale avatar %s: %s", path, exc)
                continue
            removed += 1
        if removed:
            logger.info("removed %s stale avatar files from %s", removed, directory)
        return removed


__all__ = ["AvatarCache", "AvatarClient", "AvatarFetchError"]
