import logging
import time
from datetime import datetime, timezone
from functools import wraps

import requests
from sqlalchemy.exc import SQLAlchemyError

from firstgoal import db
from firstgoal.errors import UpstreamFailure
from firstgoal.models import Game, Player
from firstgoal.models.player import POSITION_CODES
from firstgoal.utils.timezone_utils import ensure_utc, get_utc_time

logger = logging.getLogger(__name__)

FINAL_GAME_STATES = ("OFF", "FINAL")
# Regular season and playoffs; preseason fixtures are not pickable
SCHEDULED_GAME_TYPES = (2, 3)


def rate_limit_decorator(max_retries=3, base_delay=1.0, backoff_factor=2.0):
    """
    Decorator to handle API rate limiting with exponential backoff
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return func(self, *args, **kwargs)
                except requests.exceptions.HTTPError as e:
                    status = e.response.status_code if e.response is not None else None
                    # Client errors other than 429 will not improve on retry
                    if status is not None and status < 500 and status != 429:
                        raise
                    last_error = e
                except (
                    requests.exceptions.Timeout,
                    requests.exceptions.ConnectionError,
                ) as e:
                    last_error = e

                delay = base_delay * (backoff_factor**attempt)
                logger.warning(
                    f"Request failed: {last_error}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                )
                if attempt < max_retries - 1:
                    time.sleep(delay)

            raise last_error

        return wrapper

    return decorator


def _localized(value):
    """Feed strings come as {"default": "..."} or plain"""
    if isinstance(value, dict):
        return value.get("default")
    return value


def _parse_feed_time(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone(
        timezone.utc
    )


def parse_roster(payload):
    """Flatten a roster response into player dicts"""
    players = []
    for group in ("forwards", "defensemen", "goalies"):
        for entry in payload.get(group) or []:
            position = POSITION_CODES.get(entry.get("positionCode"))
            number = entry.get("sweaterNumber")
            if position is None or number is None:
                logger.debug(f"Skipping roster entry without position/number: {entry}")
                continue

            first_name = _localized(entry.get("firstName")) or ""
            last_name = _localized(entry.get("lastName")) or ""
            players.append(
                {
                    "name": f"{first_name} {last_name}".strip(),
                    "first_name": first_name,
                    "last_name": last_name,
                    "number": int(number),
                    "position": position,
                }
            )
    return players


def _team_name(team):
    name = " ".join(
        part
        for part in (_localized(team.get("placeName")), _localized(team.get("commonName")))
        if part
    )
    return name or team.get("abbrev")


def parse_schedule(payload, team_abbrev):
    """Turn a club schedule response into fixture dicts"""
    fixtures = []
    for entry in payload.get("games") or []:
        if entry.get("gameType") not in SCHEDULED_GAME_TYPES:
            continue

        home = entry.get("homeTeam") or {}
        away = entry.get("awayTeam") or {}
        is_home = home.get("abbrev") == team_abbrev
        opponent = away if is_home else home

        fixtures.append(
            {
                "external_id": str(entry["id"]),
                "opponent": _team_name(opponent),
                "game_time": _parse_feed_time(entry["startTimeUTC"]),
                "is_home": is_home,
                "location": _localized(entry.get("venue")),
            }
        )
    return fixtures


def parse_first_goal(payload, team_abbrev):
    """
    Return the team's first goal scorer from a finished game, or None.

    None covers games still in progress and games where the team never
    scored.
    """
    if payload.get("gameState") not in FINAL_GAME_STATES:
        return None

    for period in (payload.get("summary") or {}).get("scoring") or []:
        for goal in period.get("goals") or []:
            if _localized(goal.get("teamAbbrev")) != team_abbrev:
                continue
            first_name = _localized(goal.get("firstName")) or ""
            last_name = _localized(goal.get("lastName")) or ""
            return {
                "name": f"{first_name} {last_name}".strip(),
                "first_name": first_name,
                "last_name": last_name,
                "number": goal.get("sweaterNumber"),
            }
    return None


class NHLFeed:
    """
    Client for the third-party schedule/roster feed with rate limiting and
    retries
    """

    def __init__(self, api_base_url=None, team_abbrev="COL", session=None):
        self.api_base_url = (api_base_url or "https://api-web.nhle.com/v1").rstrip("/")
        self.team_abbrev = team_abbrev
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "FirstGoal-Pickem/1.0"})

        self.last_request_time = 0
        self.min_request_interval = 0.5  # Minimum 500ms between requests

    @classmethod
    def from_config(cls, app_config, session=None):
        return cls(
            api_base_url=app_config.get("NHL_API_BASE_URL"),
            team_abbrev=app_config.get("NHL_TEAM_ABBREV", "COL"),
            session=session,
        )

    def _enforce_rate_limit(self):
        time_since_last = time.time() - self.last_request_time
        if time_since_last < self.min_request_interval:
            time.sleep(self.min_request_interval - time_since_last)
        self.last_request_time = time.time()

    @rate_limit_decorator(max_retries=3, base_delay=2.0)
    def _make_api_request(self, path):
        """Make API request with rate limiting and retry logic"""
        self._enforce_rate_limit()
        url = f"{self.api_base_url}/{path.lstrip('/')}"
        response = self.session.get(url, timeout=30)
        response.raise_for_status()
        return response

    def _get_json(self, path):
        try:
            return self._make_api_request(path).json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise UpstreamFailure(f"Feed request failed for {path}", cause=e) from e

    def fetch_roster(self):
        return parse_roster(self._get_json(f"roster/{self.team_abbrev}/current"))

    def fetch_schedule(self):
        return parse_schedule(
            self._get_json(f"club-schedule-season/{self.team_abbrev}/now"),
            self.team_abbrev,
        )

    def fetch_first_goal_scorer(self, external_id):
        return parse_first_goal(
            self._get_json(f"gamecenter/{external_id}/landing"), self.team_abbrev
        )


class RosterSync:
    """Keeps the players table in line with the current roster"""

    def __init__(self, cache, feed=None):
        self.cache = cache
        self.feed = feed

    def sync_roster(self, players=None):
        """
        Deactivate everyone, then upsert the roster by (name, number, position).

        Args:
            players: roster dicts; fetched from the feed when omitted

        Returns:
            tuple: (success, message)
        """
        try:
            if players is None:
                players = self.feed.fetch_roster()

            Player.query.update({Player.is_active: False})

            created = updated = 0
            for data in players:
                player = Player.query.filter_by(
                    name=data["name"], number=data["number"], position=data["position"]
                ).first()

                if player is None:
                    player = Player(
                        name=data["name"],
                        number=data["number"],
                        position=data["position"],
                    )
                    db.session.add(player)
                    created += 1
                else:
                    updated += 1

                player.first_name = data.get("first_name")
                player.last_name = data.get("last_name")
                player.is_active = True

            db.session.commit()
            self.cache.invalidate("players")

            message = f"Synced roster: {created} new, {updated} existing players"
            logger.info(message)
            return True, message

        except (SQLAlchemyError, UpstreamFailure) as e:
            db.session.rollback()
            logger.error(f"Error syncing roster: {e}")
            return False, str(e)


class ScheduleSync:
    """Keeps the games table in line with the feed schedule"""

    def __init__(self, cache, feed=None, clock=None):
        self.cache = cache
        self.feed = feed
        self.clock = clock or get_utc_time

    def sync_schedule(self, fixtures=None):
        """
        Insert new fixtures, refresh existing ones and drop unverified games
        the feed no longer lists (postponed or moved games come back under
        their new start time).

        Returns:
            tuple: (success, message)
        """
        try:
            if fixtures is None:
                fixtures = self.feed.fetch_schedule()
            if not fixtures:
                return True, "No fixtures to sync"

            fixture_keys = {
                (ensure_utc(data["game_time"]), data["opponent"]) for data in fixtures
            }
            window_start = min(key[0] for key in fixture_keys)
            window_end = max(key[0] for key in fixture_keys)
            feed_ids = {
                str(data["external_id"]) for data in fixtures if data.get("external_id")
            }

            # Removals first so a moved game can reclaim its external id
            stale = Game.query.filter(
                Game.verified.is_(False),
                db.or_(
                    db.and_(
                        Game.game_time >= window_start, Game.game_time <= window_end
                    ),
                    Game.external_id.in_(sorted(feed_ids)),
                ),
            ).all()

            removed = 0
            for game in stale:
                if (game.start_time, game.opponent) not in fixture_keys:
                    logger.info(f"Removing game no longer on the schedule: {game}")
                    db.session.delete(game)
                    removed += 1
            db.session.flush()

            created = updated = 0
            for data in fixtures:
                game_time = ensure_utc(data["game_time"])
                game = Game.query.filter_by(
                    game_time=game_time, opponent=data["opponent"]
                ).first()
                if game is None:
                    game = Game(game_time=game_time, opponent=data["opponent"])
                    db.session.add(game)
                    created += 1
                else:
                    updated += 1

                game.is_home = data.get("is_home", True)
                game.location = data.get("location")
                external_id = data.get("external_id")
                if external_id and self._external_id_free(external_id, game):
                    game.external_id = external_id

            db.session.commit()
            self.cache.invalidate("games")

            message = (
                f"Synced schedule: {created} new, {updated} existing, {removed} removed"
            )
            logger.info(message)
            return True, message

        except (SQLAlchemyError, UpstreamFailure) as e:
            db.session.rollback()
            logger.error(f"Error syncing schedule: {e}")
            return False, str(e)

    @staticmethod
    def _external_id_free(external_id, game):
        holder = Game.query.filter_by(external_id=external_id).first()
        return holder is None or holder is game
