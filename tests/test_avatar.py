import hashlib
import os
import sys
import time
from pathlib import Path

import pytest

pytest.importorskip("yaml")
requests = pytest.importorskip("requests")

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tzpanel.tools.avatar_client import AvatarCache, AvatarClient, AvatarFetchError
from tzpanel.ui.model.avatar import avatar_url, email_hash


class FakeResponse:
    def __init__(self, status_code=200, content=b"\x89PNG", content_type="image/png"):
        self.status_code = status_code
        self.content = content
        self.headers = {"Content-Type": content_type} if content_type else {}
        self.closed = False

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        pass


def test_avatar_url_absent_for_blank_email():
    assert avatar_url("", 32) is None
    assert avatar_url("  ", 32) is None
    assert avatar_url(None, 32) is None


def test_avatar_url_normalizes_case_and_whitespace():
    assert avatar_url("A@B.com", 32) == avatar_url("a@b.com", 32)
    assert avatar_url("  a@b.com \n", 32) == avatar_url("a@b.com", 32)


def test_avatar_url_contains_sha256_size_and_default():
    expected_hash = hashlib.sha256(b"a@b.com").hexdigest()
    url = avatar_url("a@b.com", 48, base_url="https://avatars.example/avatar", default_image="mp")
    assert url == f"https://avatars.example/avatar/{expected_hash}?s=48&d=mp"
    assert email_hash("A@B.com ") == expected_hash
    assert len(expected_hash) == 64


def test_fetch_returns_image_bytes():
    response = FakeResponse(content=b"imagebytes")
    session = FakeSession(response)
    client = AvatarClient(timeout=3, session=session)
    try:
        assert client.fetch("https://avatars.example/x") == b"imagebytes"
    finally:
        client.close()
    assert session.calls == [("https://avatars.example/x", 3)]
    assert response.closed


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(status_code=404),
        FakeResponse(content_type="text/html"),
        FakeResponse(content=b""),
    ],
)
def test_fetch_rejects_bad_responses(response):
    client = AvatarClient(session=FakeSession(response))
    try:
        with pytest.raises(AvatarFetchError):
            client.fetch("https://avatars.example/x")
    finally:
        client.close()


def test_fetch_wraps_transport_errors():
    client = AvatarClient(session=FakeSession(error=requests.ConnectionError("offline")))
    try:
        with pytest.raises(AvatarFetchError, match="offline"):
            client.fetch("https://avatars.example/x")
    finally:
        client.close()


def test_cache_writes_file_and_schedules_cleanup(tmp_path):
    scheduled = []
    cache = AvatarCache(
        cleanup_delay=60,
        directory=tmp_path,
        scheduler=lambda delay, callback: scheduled.append((delay, callback)),
    )
    path = cache.store(b"png-data")
    assert path.read_bytes() == b"png-data"
    assert path.parent == tmp_path
    assert [delay for delay, _ in scheduled] == [60]

    scheduled[0][1]()
    assert not path.exists()
    # removing again is silently ignored
    scheduled[0][1]()


def test_cache_purge_removes_owned_files_and_closes(tmp_path):
    cache = AvatarCache(directory=tmp_path, scheduler=lambda delay, callback: None)
    first = cache.store(b"one")
    second = cache.store(b"two")
    assert cache.pending == 2

    assert cache.purge() == 2
    assert not first.exists()
    assert not second.exists()
    assert cache.pending == 0
    with pytest.raises(OSError):
        cache.store(b"late")
    assert list(tmp_path.iterdir()) == []


def test_cache_discard_forgets_path(tmp_path):
    cache = AvatarCache(directory=tmp_path, scheduler=lambda delay, callback: None)
    path = cache.store(b"one")
    cache.discard(path)
    assert cache.pending == 0
    assert cache.purge() == 0


def test_cache_sweep_removes_leftovers_from_earlier_runs(tmp_path):
    stale = tmp_path / "tzpanel_avatar_old.img"
    stale.write_bytes(b"old")
    os.utime(stale, (time.time() - 3600, time.time() - 3600))
    fresh = tmp_path / "tzpanel_avatar_new.img"
    fresh.write_bytes(b"new")
    unrelated = tmp_path / "other.img"
    unrelated.write_bytes(b"keep")
    cache = AvatarCache(directory=tmp_path, scheduler=lambda delay, callback: None)
    owned = cache.store(b"mine")
    os.utime(owned, (time.time() - 3600, time.time() - 3600))

    assert cache.sweep(max_age=60) == 1
    assert not stale.exists()
    assert fresh.exists()
    assert unrelated.exists()
    assert owned.exists()

    assert cache.sweep() == 1
    assert not fresh.exists()
    assert owned.exists()
