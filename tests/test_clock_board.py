import re
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

pytest.importorskip("yaml")

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tzpanel.ui.model.board import EMPTY_MESSAGE, AvatarHandle, BoardState, ClockBoard
from tzpanel.ui.model.timezones import Person, TimezoneEntry, format_zone_time, resolve_zone

INSTANT = datetime(2024, 1, 15, 9, 5, 30, tzinfo=timezone.utc)


def make_config():
    return [
        TimezoneEntry("UTC", [Person("Alice", "alice@example.com")]),
        TimezoneEntry("Asia/Tokyo", [Person("Bob"), Person("Cho", "cho@example.com")]),
        TimezoneEntry("Mars/Olympus_Mons", [Person("Dee")]),
    ]


def make_board(**kwargs):
    return ClockBoard(clock=lambda: INSTANT, **kwargs)


def test_format_zone_time_utc_is_zero_padded_24h():
    assert format_zone_time("UTC", INSTANT) == "09:05"
    late = datetime(2024, 1, 15, 23, 59, tzinfo=timezone.utc)
    assert format_zone_time("UTC", late) == "23:59"
    assert re.fullmatch(r"\d{2}:\d{2}", format_zone_time("UTC"))


def test_format_zone_time_converts_zone():
    assert format_zone_time("Asia/Tokyo", INSTANT) == "18:05"


def test_format_zone_time_placeholder_for_unknown_zone():
    assert resolve_zone("Mars/Olympus_Mons") is None
    assert resolve_zone("") is None
    assert format_zone_time("Mars/Olympus_Mons", INSTANT) == "--:--"
    assert format_zone_time("", INSTANT, placeholder="??") == "??"


def test_board_starts_idle():
    board = make_board()
    assert board.state is BoardState.IDLE
    assert board.displayed_text() == []
    assert board.tick(INSTANT) == []


def test_rebuild_renders_cards():
    board = make_board()
    cards = board.rebuild(make_config())
    assert board.state is BoardState.RENDERED
    assert [card.title for card in cards] == ["UTC", "Tokyo", "Olympus Mons"]
    assert [card.time_text for card in cards] == ["09:05", "18:05", "--:--"]
    assert board.displayed_text() == [
        "09:05", "UTC", "Alice",
        "18:05", "Tokyo", "Bob", "Cho",
        "--:--", "Olympus Mons", "Dee",
    ]


def test_rebuild_is_idempotent():
    board = make_board()
    board.rebuild(make_config())
    first = board.displayed_text()
    board.rebuild(make_config())
    assert board.displayed_text() == first
    assert len(board.cards) == 3


def test_empty_configuration_shows_message():
    board = make_board()
    board.rebuild([])
    assert board.is_empty
    assert board.displayed_text() == [EMPTY_MESSAGE]


def test_tick_updates_times_only():
    board = make_board()
    cards = board.rebuild(make_config())
    later = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    assert board.tick(later) == ["10:30", "19:30", "--:--"]
    assert board.cards is cards
    assert board.cards[1].people[0].name == "Bob"


def test_pending_avatars_only_for_people_with_email():
    board = make_board()
    board.rebuild(make_config())
    pending = board.pending_avatars()
    assert [handle for handle, _ in pending] == [
        AvatarHandle(1, 0, 0),
        AvatarHandle(1, 1, 1),
    ]
    assert all(url.startswith("https://") for _, url in pending)


def test_avatars_disabled_requests_nothing():
    board = make_board(avatars_enabled=False)
    board.rebuild(make_config())
    assert board.pending_avatars() == []


def test_apply_avatar_for_live_generation():
    board = make_board()
    board.rebuild(make_config())
    handle, _ = board.pending_avatars()[0]
    assert board.apply_avatar(handle, "/tmp/avatar.img")
    assert board.cards[0].people[0].avatar_path == "/tmp/avatar.img"
    assert AvatarHandle(1, 0, 0) not in [h for h, _ in board.pending_avatars()]


def test_stale_avatar_after_rebuild_is_ignored():
    board = make_board()
    board.rebuild(make_config())
    stale_handle, _ = board.pending_avatars()[0]
    board.rebuild(make_config())
    assert not board.apply_avatar(stale_handle, "/tmp/old.img")
    assert all(p.avatar_path is None for card in board.cards for p in card.people)


def test_out_of_range_avatar_handle_is_ignored():
    board = make_board()
    board.rebuild(make_config())
    assert not board.apply_avatar(AvatarHandle(board.generation, 9, 0), "/tmp/x.img")
    assert not board.apply_avatar(AvatarHandle(board.generation, 0, 5), "/tmp/x.img")


def test_destroy_is_terminal():
    board = make_board()
    board.rebuild(make_config())
    handle, _ = board.pending_avatars()[0]
    board.destroy()
    assert board.state is BoardState.DESTROYED
    assert board.rebuild(make_config()) == []
    assert board.state is BoardState.DESTROYED
    assert board.tick(INSTANT) == []
    assert not board.apply_avatar(handle, "/tmp/x.img")
    assert board.displayed_text() == []
