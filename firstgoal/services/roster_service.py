"""Cached reads of the roster and the schedule."""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional

from firstgoal import db
from firstgoal.errors import GameNotFound
from firstgoal.models import Game, Player
from firstgoal.utils.cache_utils import cached_query
from firstgoal.utils.timezone_utils import (
    classify_game,
    get_utc_time,
    next_upcoming,
)


@dataclass(frozen=True)
class PlayerSnapshot:
    id: int
    name: str
    number: int
    position: str
    is_active: bool

    @classmethod
    def from_model(cls, player):
        return cls(
            id=player.id,
            name=player.name,
            number=player.number,
            position=player.position,
            is_active=player.is_active,
        )

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class GameSnapshot:
    id: int
    opponent: str
    game_time: datetime
    is_home: bool
    location: Optional[str]
    verified: bool
    correct_player_id: Optional[int]

    @classmethod
    def from_model(cls, game):
        return cls(
            id=game.id,
            opponent=game.opponent,
            game_time=game.start_time,
            is_home=game.is_home,
            location=game.location,
            verified=game.verified,
            correct_player_id=game.correct_player_id,
        )

    def to_dict(self, now=None):
        data = asdict(self)
        data["game_time"] = self.game_time.isoformat()
        if now is not None:
            data["state"] = classify_game(self.game_time, now).value
        return data


class RosterService:
    """Roster and schedule reads; snapshots are cached, never ORM rows"""

    def __init__(self, cache, clock=None, ttl=300):
        self.cache = cache
        self.clock = clock or get_utc_time
        self.ttl = ttl

    @cached_query("players", "ttl")
    def get_players(self):
        """Active players ordered by position then jersey number"""
        players = Player.query.filter_by(is_active=True).all()
        players.sort(key=lambda player: player.sort_key)
        return tuple(PlayerSnapshot.from_model(player) for player in players)

    @cached_query("games", "ttl")
    def get_games(self):
        games = Game.query.order_by(Game.game_time).all()
        return tuple(GameSnapshot.from_model(game) for game in games)

    def get_next_game(self, force_refresh=False):
        """The nearest upcoming game, or None"""
        return next_upcoming(self.get_games(force_refresh=force_refresh), self.clock())

    def get_game(self, game_id):
        """Uncached single-row lookup"""
        game = db.session.get(Game, game_id)
        if game is None:
            raise GameNotFound(game_id)
        return game

    def get_past_unverified_games(self):
        """Games whose start has elapsed and that still await verification"""
        return (
            Game.query.filter(
                Game.verified.is_(False), Game.game_time <= self.clock()
            )
            .order_by(Game.game_time.desc())
            .all()
        )
