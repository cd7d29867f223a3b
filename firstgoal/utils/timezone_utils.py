"""
Timezone and game clock utilities for the First-Goal Pick'em application
"""

import enum
from datetime import datetime, timedelta, timezone

import pytz
from flask import current_app, has_app_context

DEFAULT_IN_PROGRESS_WINDOW = timedelta(hours=3)


class GameState(enum.Enum):
    UPCOMING = "upcoming"
    IN_PROGRESS = "in_progress"
    PAST = "past"


def get_app_timezone():
    """Get the application's configured timezone"""
    timezone_name = "UTC"
    if has_app_context():
        timezone_name = current_app.config.get("TIMEZONE", "UTC")
    try:
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def get_utc_time():
    """Get current time in UTC"""
    return datetime.now(timezone.utc)


def ensure_utc(dt):
    """Return dt as an aware UTC datetime; naive values are taken as UTC"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def convert_to_app_timezone(dt):
    """Convert a datetime to the application's timezone"""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(get_app_timezone())


def format_game_time(dt, format_str="%a %m/%d at %I:%M %p"):
    """Format a game time in the application's timezone"""
    if dt is None:
        return "TBD"
    return convert_to_app_timezone(dt).strftime(format_str)


def in_progress_window():
    if has_app_context():
        hours = current_app.config.get("GAME_IN_PROGRESS_WINDOW_HOURS")
        if hours is not None:
            return timedelta(hours=hours)
    return DEFAULT_IN_PROGRESS_WINDOW


def classify_game(start_time, now, window=None):
    """Classify a game relative to now.

    UPCOMING while the start is strictly in the future, IN_PROGRESS from
    kickoff until ``window`` has elapsed, PAST afterwards.
    """
    if window is None:
        window = in_progress_window()
    start_time = ensure_utc(start_time)
    now = ensure_utc(now)

    if start_time > now:
        return GameState.UPCOMING
    if now < start_time + window:
        return GameState.IN_PROGRESS
    return GameState.PAST


def is_upcoming(start_time, now):
    return ensure_utc(start_time) > ensure_utc(now)


def has_started(start_time, now):
    """Verification eligibility: the scheduled start is not in the future"""
    return not is_upcoming(start_time, now)


def next_upcoming(games, now, key=lambda game: game.game_time):
    """The single nearest upcoming game, or None"""
    upcoming = [game for game in games if is_upcoming(key(game), now)]
    if not upcoming:
        return None
    return min(upcoming, key=lambda game: ensure_utc(key(game)))
