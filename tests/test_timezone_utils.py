from datetime import datetime, timedelta, timezone

import pytest

from firstgoal.utils.timezone_utils import (
    GameState,
    classify_game,
    ensure_utc,
    format_game_time,
    has_started,
    is_upcoming,
    next_upcoming,
)

NOW = datetime(2025, 3, 1, 19, 0, tzinfo=timezone.utc)
WINDOW = timedelta(hours=3)


@pytest.mark.parametrize(
    "offset, expected",
    [
        (timedelta(minutes=30), GameState.UPCOMING),
        (timedelta(0), GameState.IN_PROGRESS),
        (timedelta(minutes=-90), GameState.IN_PROGRESS),
        (timedelta(hours=-3), GameState.PAST),
        (timedelta(days=-2), GameState.PAST),
    ],
)
def test_classify_game(offset, expected):
    assert classify_game(NOW + offset, NOW, window=WINDOW) is expected


def test_start_equal_to_now_has_started():
    assert not is_upcoming(NOW, NOW)
    assert has_started(NOW, NOW)


def test_naive_datetimes_are_taken_as_utc():
    naive = datetime(2025, 3, 1, 19, 0)
    assert ensure_utc(naive) == NOW
    assert classify_game(naive + timedelta(minutes=1), NOW, WINDOW) is GameState.UPCOMING


def test_ensure_utc_converts_other_zones():
    mountain = timezone(timedelta(hours=-7))
    assert ensure_utc(datetime(2025, 3, 1, 12, 0, tzinfo=mountain)) == NOW
    assert ensure_utc(None) is None


def test_next_upcoming_picks_nearest_future_game():
    games = [
        {"id": 1, "start": NOW - timedelta(hours=1)},
        {"id": 2, "start": NOW + timedelta(days=2)},
        {"id": 3, "start": NOW + timedelta(hours=5)},
    ]
    chosen = next_upcoming(games, NOW, key=lambda g: g["start"])
    assert chosen["id"] == 3


def test_next_upcoming_none_when_everything_started():
    games = [{"start": NOW - timedelta(minutes=1)}, {"start": NOW}]
    assert next_upcoming(games, NOW, key=lambda g: g["start"]) is None


def test_format_game_time_uses_app_timezone(app):
    # America/Denver is UTC-7 in March before DST
    assert format_game_time(NOW, "%H:%M") == "12:00"
    assert format_game_time(None) == "TBD"


def test_window_comes_from_config(app):
    app.config["GAME_IN_PROGRESS_WINDOW_HOURS"] = 1
    assert classify_game(NOW - timedelta(minutes=90), NOW) is GameState.PAST
